# Overview: Service-layer operations for security events; append-only denial log.

"""
Security Event Logging

WHY: Denied gate checks are the signal that someone is probing store ids or
reaching for operations above their role. Every denial is appended to
security_events with the caller, the store they named, and the request.

DESIGN PRINCIPLES:
- Log denials only: successful checks are not logged
- Best-effort: a failed write is logged and dropped, never turned into a
  different response for the caller
- Called before any domain work, so the session holds nothing else to commit
"""

from __future__ import annotations

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool = False,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    store_id: int | None = None,
) -> SecurityEvent | None:
    """
    event_type examples:
    - NO_TENANT_ACCESS
    - INSUFFICIENT_ROLE
    - OWNER_CHECK_FAILED
    - LOGIN_FAILED
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        resource = resource or request.path
        action = action or request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        store_id=store_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    )

    try:
        db.session.add(event)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Failed to record security event %s for user %s", event_type, user_id)
        return None

    return event


def list_security_events(*, store_id: int | None = None, user_id: int | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent)
    if store_id is not None:
        query = query.filter(SecurityEvent.store_id == store_id)
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
