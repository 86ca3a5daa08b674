# assetshield/auth.py
# Customer accounts + shared auth helpers (login manager, admin guard, audit log)
import logging
from functools import wraps

from flask import Blueprint, jsonify, request, session
from flask_login import LoginManager, current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError

from assetshield import db, limiter
from assetshield.forms import LoginForm, RegisterForm
from assetshield.models.security_event import SecurityEvent
from assetshield.models.user import User

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
login_manager = LoginManager()
login_manager.session_protection = "strong"


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


# ------------------------------------------------------
# Admin-only decorator
# ------------------------------------------------------
def admin_required(f):
    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin() or not session.get("admin_verified"):
            return jsonify({"error": "Administrator permissions required"}), 403
        return f(*args, **kwargs)
    return decorated


# ------------------------------------------------------
# Request helpers
# ------------------------------------------------------
def client_ip() -> str:
    ip_raw = (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For")
        or request.remote_addr
        or ""
    )
    return ip_raw.split(",")[0].strip() or "unknown"


def form_errors(form):
    return jsonify({"error": "Invalid request", "errors": form.errors}), 400


# ------------------------------------------------------
# Security event logger
# ------------------------------------------------------
def log_security_event(event_type: str, risk_level: str = "low", action_taken=None, **data):
    """Persist an audit row. Never pass passwords, secrets or submitted codes in ``data``."""
    ip = client_ip()
    log.info("security event %s from %s", event_type, ip)
    try:
        entry = SecurityEvent(
            event_type=event_type,
            ip_address=ip,
            user_agent=(request.headers.get("User-Agent") or "")[:255],
            event_data=data,
            risk_level=risk_level,
            action_taken=action_taken,
        )
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        log.exception("could not record security event %s", event_type)
        db.session.rollback()


# ------------------------------------------------------
# Registration
# ------------------------------------------------------
@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    form = RegisterForm()
    if not form.validate_on_submit():
        return form_errors(form)

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        return jsonify({"error": "User already exists with this email"}), 409

    user = User(
        email=email,
        name=f"{form.first_name.data.strip()} {form.last_name.data.strip()}",
        phone=(form.phone.data or "").strip() or None,
        role="customer",
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    log_security_event("customer_registered", user_id=user.id)

    return jsonify({
        "success": True,
        "message": "Account created successfully",
        "user": user.to_dict(),
    }), 201


# ------------------------------------------------------
# LOGIN
# ------------------------------------------------------
@auth_bp.route("/login", methods=["POST"])
@limiter.limit("20 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return form_errors(form)

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email, role="customer").first()

    if not user or not user.check_password(form.password.data):
        log_security_event("customer_login_failed", risk_level="medium", action_taken="login_rejected")
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(user)
    log_security_event("customer_login_success", user_id=user.id)
    return jsonify({"success": True, "user": user.to_dict()})


# ------------------------------------------------------
# LOGOUT
# ------------------------------------------------------
@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    session.pop("admin_verified", None)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/csrf")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
