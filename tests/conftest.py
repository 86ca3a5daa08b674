import pytest

from assetshield import create_app, db
from assetshield.models.user import User
from assetshield.ratelimit import InMemoryRateLimiter

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse-battery-staple"


def make_app(tmp_path, **overrides):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {},
        "SESSION_TYPE": "filesystem",
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
        "WTF_CSRF_ENABLED": False,
        "RATELIMIT_ENABLED": False,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture()
def login_limiter():
    return InMemoryRateLimiter(max_attempts=3, window_seconds=900)


@pytest.fixture()
def app(tmp_path, login_limiter):
    app = make_app(tmp_path, LOGIN_RATE_LIMITER=login_limiter)

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_user(app):
    with app.app_context():
        user = User(email=ADMIN_EMAIL, name="Site Admin", role="admin")
        user.set_password(ADMIN_PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture()
def enrolled_admin(app, admin_user):
    """Admin with 2FA enabled; returns the Base32 secret."""
    from assetshield.totp import generate_secret

    secret = generate_secret()
    with app.app_context():
        user = db.session.get(User, admin_user)
        user.enable_2fa(secret, counter=None)
        db.session.commit()
    return secret


@pytest.fixture()
def admin_login(client):
    def _login(totp=None, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
        payload = {"email": email, "password": password}
        if totp is not None:
            payload["totp"] = totp
        return client.post("/admin/api/login", json=payload)
    return _login
