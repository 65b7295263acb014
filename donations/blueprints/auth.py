"""Auth blueprint — /auth/*

Session login/logout for admin operators (JSON or form POST).
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from donations.extensions import limiter
from donations.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _request_data():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


# ──────────────────────────────────────────────
# GET /auth/csrf
# ──────────────────────────────────────────────

@auth_bp.route("/csrf")
def csrf_token():
    """Token for the X-CSRFToken header on admin POSTs."""
    return jsonify(csrf_token=generate_csrf())


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("15 per minute")
def login():
    """Standard email + password login."""
    data = _request_data()
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""
    remember = bool(data.get("remember"))

    if not email or not password:
        return jsonify(ok=False, error="Email and password are required."), 400

    user = User.query.filter_by(email=email).first()

    if user is None or not user.check_password(password):
        return jsonify(ok=False, error="Invalid email or password."), 401

    if not user.is_active:
        return jsonify(ok=False, error="Your account has been deactivated."), 403

    login_user(user, remember=remember)
    return jsonify(ok=True, email=user.email, is_admin=bool(user.is_admin)), 200


# ──────────────────────────────────────────────
# POST /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify(ok=True), 200


@auth_bp.route("/me")
def me():
    if not current_user.is_authenticated:
        return jsonify(authenticated=False), 200
    return jsonify(
        authenticated=True,
        email=current_user.email,
        is_admin=bool(current_user.is_admin),
    ), 200
