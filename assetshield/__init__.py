# assetshield/__init__.py

import logging
import os
from datetime import timedelta

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_session import Session
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from assetshield.ratelimit import InMemoryRateLimiter

# ======================================================
# Load environment first
# ======================================================
load_dotenv()

db = SQLAlchemy()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[os.getenv("RATELIMIT_DEFAULT", "200 per hour")],
    storage_uri="memory://",
)

log = logging.getLogger(__name__)

API_PREFIXES = ("/api/", "/admin/api/")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def create_app(test_config=None):
    app = Flask(__name__)

    # ==================================================
    # Security / Keys
    # ==================================================
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY")

    # ==================================================
    # Database (SQLite locally, any SQLAlchemy URL in production)
    # ==================================================
    database_url = os.getenv("DATABASE_URL", "sqlite:///assetshield.db")
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    if database_url.startswith("sqlite"):
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {}
    else:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
            "pool_pre_ping": True,
            "pool_recycle": 1800,
        }

    # ==================================================
    # Session Persistence
    # ==================================================
    app.config["SESSION_TYPE"] = os.getenv("SESSION_TYPE", "filesystem")
    app.config["SESSION_FILE_DIR"] = os.getenv(
        "SESSION_FILE_DIR", os.path.join(app.instance_path, "sessions")
    )
    app.config["SESSION_PERMANENT"] = True
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Strict"
    app.config["SESSION_COOKIE_SECURE"] = _env_flag("SESSION_COOKIE_SECURE")

    # ==================================================
    # Two-factor / admin login throttling
    # ==================================================
    app.config["TOTP_ISSUER"] = os.getenv("TOTP_ISSUER", "AssetShield Admin")
    app.config["ADMIN_LOGIN_MAX_ATTEMPTS"] = int(os.getenv("ADMIN_LOGIN_MAX_ATTEMPTS", "5"))
    app.config["ADMIN_LOGIN_WINDOW_SECONDS"] = int(os.getenv("ADMIN_LOGIN_WINDOW_SECONDS", "900"))
    app.config["ADMIN_LOGIN_STORAGE_URI"] = os.getenv("ADMIN_LOGIN_STORAGE_URI", "memory://")

    # Number of reverse proxies whose X-Forwarded-* headers are trusted
    app.config["TRUSTED_PROXY_COUNT"] = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))

    # ==================================================
    # CSRF + Rate Limiting
    # ==================================================
    app.config["WTF_CSRF_ENABLED"] = True
    app.config["WTF_CSRF_CHECK_DEFAULT"] = False
    app.config["RATELIMIT_HEADERS_ENABLED"] = True

    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    if not app.config.get("SECRET_KEY"):
        if not app.testing:
            app.logger.warning("SECRET_KEY is not set; using an ephemeral key, sessions will not survive restarts")
        app.config["SECRET_KEY"] = os.urandom(32).hex()

    proxies = app.config["TRUSTED_PROXY_COUNT"]
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies, x_proto=proxies)

    if app.config["SESSION_TYPE"] == "filesystem":
        os.makedirs(app.config["SESSION_FILE_DIR"], exist_ok=True)

    Session(app)
    csrf.init_app(app)
    limiter.init_app(app)
    db.init_app(app)

    # LOGIN_RATE_LIMITER replaces the limiter outright (tests, custom stores)
    app.extensions["login_rate_limiter"] = app.config.get("LOGIN_RATE_LIMITER") or InMemoryRateLimiter(
        max_attempts=app.config["ADMIN_LOGIN_MAX_ATTEMPTS"],
        window_seconds=app.config["ADMIN_LOGIN_WINDOW_SECONDS"],
        storage_uri=app.config["ADMIN_LOGIN_STORAGE_URI"],
    )

    # ==================================================
    # Blueprints
    # ==================================================
    from assetshield.auth import auth_bp, login_manager
    from assetshield.admin import admin_bp
    from assetshield.routes.assessment import assessment_bp

    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(assessment_bp)

    # ==================================================
    # Database Initialization (tables)
    # ==================================================
    from assetshield import models  # noqa: F401

    with app.app_context():
        db.create_all()

    # ==================================================
    # JSON errors for API paths
    # ==================================================
    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if not request.path.startswith(API_PREFIXES):
            return exc
        response = jsonify({"error": exc.description or exc.name})
        response.status_code = exc.code or 500
        return response

    @app.errorhandler(429)
    def handle_throttled(exc):
        return jsonify({"error": "Too many requests. Please try again later."}), 429

    @app.errorhandler(500)
    def handle_server_error(exc):
        log.error(
            "Unhandled error on %s", request.path,
            exc_info=getattr(exc, "original_exception", None) or exc,
        )
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    # ==================================================
    # Security Headers
    # ==================================================
    @app.after_request
    def apply_security_headers(response):
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data:; "
            "object-src 'none'; "
            "base-uri 'self'; "
            "form-action 'self'; "
            "frame-ancestors 'none';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        if request.is_secure or request.headers.get("X-Forwarded-Proto") == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        if request.path.startswith(API_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        return response

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app
