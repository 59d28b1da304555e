# backend/stockroom/routes/system.py
"""
System health endpoint.

Health checks the database and token signing so a deployment can be probed
without credentials. Nothing here is tenant-scoped.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Store, User, UserStoreRole
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        user_count = db.session.query(User).count()
        membership_count = db.session.query(UserStoreRole).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "users": user_count,
                "memberships": membership_count,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_token_service_health() -> dict:
    """Tokens can only be issued when a signing key is configured."""
    if not current_app.config.get("JWT_SECRET_KEY"):
        return {"status": "unhealthy", "error": "JWT_SECRET_KEY is not configured"}

    expires = current_app.config.get("JWT_ACCESS_TOKEN_EXPIRES")
    return {
        "status": "healthy",
        "details": {
            "token_lifetime_seconds": int(expires.total_seconds()) if expires else None,
        }
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    token_health = check_token_service_health()

    all_checks = [database_health, token_health]
    unhealthy = any(check["status"] == "unhealthy" for check in all_checks)

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "token_service": token_health,
        }
    }

    return response, 503 if unhealthy else 200

