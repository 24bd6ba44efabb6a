# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
a signed JWT, carried in an httpOnly cookie, as the session.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12 unless BCRYPT_ROUNDS overrides)
- Minimum 8 characters, mixed case, digit and special char on creation
- Tokens are HS256 JWTs signed with JWT_SECRET and expire after TOKEN_TTL_DAYS
- Role and subscription state are embedded in the token so the route gate
  decides without a database round-trip
"""

from datetime import timedelta
import re

import bcrypt
import jwt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_ADMIN, SUBSCRIPTION_STATUSES, SUBSCRIPTION_TRIAL
from counterpos.time_utils import parse_iso_datetime, utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class TokenError(Exception):
    """Raised when a session token is missing, malformed, expired or forged."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor BCRYPT_ROUNDS, 12 by default).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    email: str,
    password: str,
    name: str | None = None,
    role: str = ROLE_ADMIN,
    subscription_status: str = SUBSCRIPTION_TRIAL,
    trial_days: int | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    TRIAL accounts get trial_ends_at = now + trial_days (TRIAL_DAYS config
    when omitted).

    Raises:
        ValueError: unknown role/status or email already registered
        PasswordValidationError: If password doesn't meet requirements
    """
    email = email.strip().lower()
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if subscription_status not in SUBSCRIPTION_STATUSES:
        raise ValueError(f"Unknown subscription status: {subscription_status}")

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ValueError("Email already exists")

    trial_ends_at = None
    if subscription_status == SUBSCRIPTION_TRIAL:
        days = trial_days if trial_days is not None else current_app.config["TRIAL_DAYS"]
        trial_ends_at = utcnow() + timedelta(days=days)

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
        subscription_status=subscription_status,
        trial_ends_at=trial_ends_at,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns the active User if credentials are valid, None otherwise.
    Updates last_login_at on success.
    """
    user = (
        db.session.query(User)
        .filter(User.email == email.strip().lower(), User.is_active.is_(True))
        .first()
    )
    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def issue_token(user: User) -> str:
    """Sign a session token carrying identity, role and subscription state."""
    config = current_app.config
    claims = {
        "userId": user.id,
        "role": user.role,
        "name": user.name,
        "email": user.email,
        "subscriptionStatus": user.subscription_status,
        "trialEndsAt": user.trial_ends_at.isoformat() if user.trial_ends_at else None,
        "exp": utcnow() + timedelta(days=config["TOKEN_TTL_DAYS"]),
    }
    return jwt.encode(claims, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_token(token: str | None) -> dict:
    """
    Verify signature and expiry and return the claims.

    trialEndsAt is returned as a UTC-naive datetime (or None).

    Raises TokenError for anything that is not a valid, unexpired token.
    """
    if not token:
        raise TokenError("Missing token")

    config = current_app.config
    try:
        claims = jwt.decode(token, config["JWT_SECRET"], algorithms=[config["JWT_ALGORITHM"]])
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e

    if "userId" not in claims or "role" not in claims:
        raise TokenError("Token missing required claims")

    try:
        claims["trialEndsAt"] = parse_iso_datetime(claims.get("trialEndsAt"))
    except ValueError as e:
        raise TokenError("Malformed trialEndsAt claim") from e

    return claims
