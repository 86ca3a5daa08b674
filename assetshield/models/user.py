# assetshield/models/user.py

from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from assetshield import db

PASSWORD_HASH_METHOD = "pbkdf2:sha256:600000"


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(40), nullable=True)

    role = db.Column(db.String(20), default="customer", nullable=False)  # "admin" / "customer"
    password_hash = db.Column(db.String(255), nullable=False)

    # Two-factor (admins)
    totp_secret = db.Column(db.String(64), nullable=True)
    is_2fa_enabled = db.Column(db.Boolean, default=False, nullable=False)
    totp_last_counter = db.Column(db.BigInteger, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def get_id(self):
        return str(self.id)

    # Password helpers (salted PBKDF2-SHA256, constant-time check)
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password, method=PASSWORD_HASH_METHOD)

    def check_password(self, password: str) -> bool:
        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    # Two-factor helpers
    def enable_2fa(self, secret: str, counter: int):
        self.totp_secret = secret
        self.is_2fa_enabled = True
        self.totp_last_counter = counter

    def disable_2fa(self):
        self.totp_secret = None
        self.is_2fa_enabled = False
        self.totp_last_counter = None

    def is_admin(self):
        return (self.role or "").lower() == "admin"

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_2fa_enabled": bool(self.is_2fa_enabled),
        }

    def __repr__(self):
        return f"<User {self.email}>"
