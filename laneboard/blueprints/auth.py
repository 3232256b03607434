"""Auth blueprint — /auth/*

JSON session endpoints for the SPA. Registration is gated on the
ALLOWED_SIGNUP_DOMAIN config value (empty = open signup).

Route Map:
  GET  /auth/csrf-token  — CSRF token for X-CSRFToken headers
  POST /auth/register    — create account + log in
  POST /auth/login       — email + password login
  POST /auth/logout      — end session
  GET  /auth/me          — current user profile
  PUT  /auth/profile     — update display name
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash, generate_password_hash

from laneboard.extensions import db, limiter
from laneboard.models.user import User
from laneboard.services.sanitize import normalize_email, sanitize

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


def _user_dict(user):
    return {
        "id": user.id,
        "email": user.email,
        "name": user.display_name,
    }


def _email_domain_allowed(email):
    domain = current_app.config.get("ALLOWED_SIGNUP_DOMAIN") or ""
    if not domain:
        return True
    return email.endswith(f"@{domain}")


@auth_bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


# ──────────────────────────────────────────────
# POST /auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    """Domain-gated registration. Logs the new user in on success."""
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    full_name = sanitize(str(data.get("name") or ""))

    # --- Validation ---
    errors = []

    if not email or "@" not in email:
        errors.append("A valid email is required.")
    elif not _email_domain_allowed(email):
        errors.append("Only allowed email addresses can register.")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

    if email and User.query.filter_by(email=email).first():
        errors.append("An account with this email already exists.")

    if errors:
        return jsonify({"error": errors[0], "errors": errors}), 400

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        full_name=full_name or None,
    )
    db.session.add(user)
    db.session.commit()

    login_user(user)
    return jsonify(_user_dict(user)), 201


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("15 per minute")
def login():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required."}), 400

    user = User.query.filter_by(email=email).first()

    if user is None or not check_password_hash(user.password_hash, password):
        return jsonify({"error": "Invalid email or password."}), 401

    if not user.is_active:
        return jsonify({"error": "Your account has been deactivated."}), 403

    login_user(user, remember=bool(data.get("remember")))
    return jsonify(_user_dict(user))


@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(_user_dict(current_user))


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    """Set the display name; blank falls back to the email local part."""
    data = request.get_json(silent=True) or {}
    name = sanitize(str(data.get("name") or ""))
    current_user.full_name = name or None
    db.session.commit()
    return jsonify(_user_dict(current_user))
