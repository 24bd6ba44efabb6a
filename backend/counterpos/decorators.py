# Overview: Request decorators for API routes.

from functools import wraps
from flask import jsonify, g

from .extensions import db
from .gate import request_token
from .models import User
from .services.auth_service import TokenError, decode_token


def require_auth(f):
    """
    Require a valid session token and load the account.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.user_id: Its id, the tenant key for every query

    Reuses the claims the route gate already decoded when present.

    SECURITY: Returns 401 if:
    - No token (cookie or Authorization header)
    - Invalid or expired token
    - User deleted or deactivated after the token was issued
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = g.get("token_claims")
        if claims is None:
            token, _ = request_token()
            try:
                claims = decode_token(token)
            except TokenError:
                return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, claims["userId"])
        if not user or not user.is_active:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.user_id = user.id

        return f(*args, **kwargs)

    return decorated_function
