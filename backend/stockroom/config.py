# backend/stockroom/config.py
from __future__ import annotations
import os
from datetime import timedelta


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens (signed JWT, stateless)
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.environ.get("JWT_EXPIRE_DAYS", "7")))

    # Header carrying the active store for tenant-scoped requests
    TENANT_HEADER = os.environ.get("TENANT_HEADER", "X-Store-Id")

    # Total attempts for a ledger transaction (1 = no retry)
    LEDGER_COMMIT_ATTEMPTS = int(os.environ.get("LEDGER_COMMIT_ATTEMPTS", "2"))

    DEFAULT_TEAM_CAPACITY = int(os.environ.get("DEFAULT_TEAM_CAPACITY", "50"))
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "INR")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    }
