# assetshield/admin.py
# Admin login with TOTP second factor, 2FA enrollment and audit views.
import base64
import io
import logging

import click
import qrcode
from flask import Blueprint, current_app, jsonify, request, session
from flask_limiter.util import get_remote_address
from flask_login import current_user, login_user, logout_user
from sqlalchemy import or_, update

from assetshield import db, limiter
from assetshield.auth import admin_required, form_errors, log_security_event
from assetshield.forms import AdminLoginForm, TotpCodeForm
from assetshield.models.assessment import Assessment
from assetshield.models.security_event import SecurityEvent
from assetshield.models.user import User
from assetshield.totp import InvalidSecret, build_provisioning_uri, generate_secret, match_counter

log = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

INVALID_2FA = "Invalid 2FA code"
MAX_LIST_LIMIT = 200


# ======================================================
# HELPERS
# ======================================================
def _login_limiter():
    return current_app.extensions["login_rate_limiter"]


def _accept_code(secret: str, code: str, last_counter=None):
    """
    Return the matched time counter for ``code`` or None.

    A counter at or before ``last_counter`` was already used and is refused.
    """
    code = (code or "").strip().replace(" ", "")
    try:
        counter = match_counter(secret, code)
    except InvalidSecret:
        log.error("stored TOTP secret is not valid Base32; treating 2FA as failed")
        return None
    if counter is None:
        return None
    if last_counter is not None and counter <= last_counter:
        return None
    return counter


def _claim_counter(user_id: int, counter: int) -> bool:
    """
    Record ``counter`` as the last used code for the user.

    Conditional UPDATE, so only one of several concurrent requests carrying
    the same code can win.
    """
    result = db.session.execute(
        update(User)
        .where(
            User.id == user_id,
            or_(User.totp_last_counter.is_(None), User.totp_last_counter < counter),
        )
        .values(totp_last_counter=counter)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def _qr_png_base64(uri: str) -> str:
    img = qrcode.make(uri)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _list_limit(default: int = 50) -> int:
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit or default, MAX_LIST_LIMIT))


# ======================================================
# LOGIN / LOGOUT
# ======================================================
@admin_bp.route("/api/login", methods=["POST"])
@limiter.limit("30 per minute")
def admin_login():
    # Peer address only; X-Forwarded-For is honoured through ProxyFix when configured
    attempts_key = f"admin_login:{get_remote_address()}"
    attempts = _login_limiter()

    if not attempts.check_and_increment(attempts_key):
        log_security_event("admin_login_throttled", risk_level="high", action_taken="rate_limited")
        return jsonify({
            "error": "Too many login attempts. Please try again later.",
            "retry_after": attempts.retry_after(attempts_key),
        }), 429

    form = AdminLoginForm()
    if not form.validate_on_submit():
        return form_errors(form)

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email, role="admin").first()

    if not user or not user.check_password(form.password.data):
        log_security_event(
            "admin_login_failed", risk_level="high", action_taken="login_rejected",
            attempted_email=email,
        )
        return jsonify({"error": "Invalid admin credentials"}), 401

    if user.is_2fa_enabled:
        if not form.totp.data:
            return jsonify({"requires_2fa": True, "error": "Two-factor authentication required"}), 401

        counter = _accept_code(user.totp_secret, form.totp.data, user.totp_last_counter)
        if counter is None or not _claim_counter(user.id, counter):
            log_security_event(
                "admin_2fa_failed", risk_level="high", action_taken="2fa_rejected",
                user_id=user.id,
            )
            return jsonify({"error": INVALID_2FA}), 401

    session.clear()
    login_user(user)
    session["admin_verified"] = True
    attempts.reset(attempts_key)

    log_security_event(
        "admin_login_success", action_taken="admin_access_granted",
        user_id=user.id, has_2fa=bool(user.is_2fa_enabled),
    )
    return jsonify({"success": True, "user": user.to_dict()})


@admin_bp.route("/api/logout", methods=["POST"])
@admin_required
def admin_logout():
    log_security_event("admin_logout", user_id=current_user.id)
    session.clear()
    logout_user()
    return jsonify({"success": True})


# ======================================================
# 2FA ENROLLMENT
# ======================================================
@admin_bp.route("/api/2fa/start", methods=["POST"])
@admin_required
def start_2fa():
    secret = generate_secret()
    session["pending_2fa_secret"] = secret

    otp_uri = build_provisioning_uri(secret, current_app.config["TOTP_ISSUER"], current_user.email)
    return jsonify({
        "secret": secret,
        "otpauth_uri": otp_uri,
        "qr_png_base64": _qr_png_base64(otp_uri),
    })


@admin_bp.route("/api/2fa/confirm", methods=["POST"])
@admin_required
def confirm_2fa():
    secret = session.get("pending_2fa_secret")
    if not secret:
        return jsonify({"error": "No 2FA setup in progress. Start again."}), 400

    form = TotpCodeForm()
    if not form.validate_on_submit():
        return form_errors(form)

    counter = _accept_code(secret, form.totp.data)
    if counter is None:
        log_security_event("admin_2fa_setup_failed", risk_level="medium", user_id=current_user.id)
        return jsonify({"error": INVALID_2FA}), 400

    user = db.session.get(User, current_user.id)
    user.enable_2fa(secret, counter)
    db.session.commit()
    session.pop("pending_2fa_secret", None)

    log_security_event("admin_2fa_enabled", action_taken="2fa_enabled", user_id=user.id)
    return jsonify({"success": True, "is_2fa_enabled": True})


@admin_bp.route("/api/2fa/disable", methods=["POST"])
@admin_required
def disable_2fa():
    """
    Turn 2FA off after checking a fresh code.

    The code must come from a later 30-second window than the last accepted
    one, so the code just used to log in is refused; wait for the next code.
    """
    user = db.session.get(User, current_user.id)
    if not user.is_2fa_enabled:
        return jsonify({"error": "Two-factor authentication is not enabled"}), 400

    form = TotpCodeForm()
    if not form.validate_on_submit():
        return form_errors(form)

    counter = _accept_code(user.totp_secret, form.totp.data, user.totp_last_counter)
    if counter is None or not _claim_counter(user.id, counter):
        log_security_event("admin_2fa_failed", risk_level="high", action_taken="2fa_rejected", user_id=user.id)
        return jsonify({
            "error": INVALID_2FA,
            "hint": "Each code works once; wait for the next code if you just used this one.",
        }), 400

    user.disable_2fa()
    db.session.commit()
    log_security_event("admin_2fa_disabled", risk_level="medium", action_taken="2fa_disabled", user_id=user.id)
    return jsonify({"success": True, "is_2fa_enabled": False})


# ======================================================
# AUDIT / DATA VIEWS
# ======================================================
@admin_bp.route("/api/security-events")
@admin_required
def security_events():
    events = (
        SecurityEvent.query
        .order_by(SecurityEvent.created_at.desc(), SecurityEvent.id.desc())
        .limit(_list_limit())
        .all()
    )
    return jsonify({"events": [e.to_dict() for e in events]})


@admin_bp.route("/api/assessments")
@admin_required
def assessments():
    rows = (
        Assessment.query
        .order_by(Assessment.created_at.desc(), Assessment.id.desc())
        .limit(_list_limit())
        .all()
    )
    return jsonify({"assessments": [a.to_dict() for a in rows]})


# ======================================================
# CLI: flask --app assetshield admin create EMAIL
# ======================================================
@admin_bp.cli.command("create")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--name", default=None, help="Display name for the account.")
def create_admin(email, password, name):
    """Create an administrator account, or promote and reset an existing one."""
    email = email.strip().lower()
    if len(password) < 12:
        raise click.BadParameter("admin passwords must be at least 12 characters", param_hint="--password")

    user = User.query.filter_by(email=email).first()
    created = user is None
    if created:
        user = User(email=email)
        db.session.add(user)
    user.role = "admin"
    user.name = name or user.name
    user.set_password(password)
    db.session.commit()

    click.echo(f"{'Created' if created else 'Updated'} admin {email}")
