# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/counterpos/routes/auth.py
"""
Authentication API routes

The session is a signed JWT in an httpOnly cookie. Accounts are created by
operators (flask users create); there is no self-registration endpoint.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and set the session cookie.

    Body: {"email": str, "password": str, "rememberMe": bool?}

    rememberMe keeps the cookie for TOKEN_TTL_DAYS; otherwise it is a
    browser-session cookie (the token itself still expires).
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        token = auth_service.issue_token(user)

        config = current_app.config
        response = jsonify({"user": user.to_dict(), "message": "Login successful"})
        response.set_cookie(
            config["TOKEN_COOKIE_NAME"],
            token,
            httponly=True,
            secure=config["TOKEN_COOKIE_SECURE"],
            samesite="Lax",
            path="/",
            max_age=config["TOKEN_TTL_DAYS"] * 24 * 60 * 60 if data.get("rememberMe") else None,
        )
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Clear the session cookie. Always succeeds."""
    response = jsonify({"message": "Logged out"})
    response.delete_cookie(current_app.config["TOKEN_COOKIE_NAME"], path="/")
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user profile."""
    return jsonify({"user": g.current_user.to_dict()}), 200
