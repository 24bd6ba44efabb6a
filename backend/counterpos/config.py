# backend/counterpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Signs the session cookie; create_app falls back to SECRET_KEY when unset
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_ALGORITHM = "HS256"
    TOKEN_COOKIE_NAME = os.environ.get("TOKEN_COOKIE_NAME", "token")
    TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "7"))
    TOKEN_COOKIE_SECURE = os.environ.get("FLASK_ENV") == "production"

    # SQLite DB stored next to the process by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///counterpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Length of the trial granted to accounts created from the CLI
    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", "14"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
