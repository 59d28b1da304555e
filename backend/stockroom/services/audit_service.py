# Overview: Service-layer operations for the audit log; best-effort writes and admin reads.

"""
Audit Log Service

WHY: Admins need to see who changed what in their store. Every create, update,
delete and role change writes one AuditLog row with before/after snapshots.

DESIGN:
- record() runs AFTER the primary operation has committed. The primary
  change is already durable; the audit row is a side channel.
- A failed audit write rolls back only itself, logs a warning, and returns
  None. It never turns a successful operation into a failed response.
- Reads are store-scoped and filtered server-side.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog
from ..time_utils import utcnow


ACTIONS = ("CREATE", "UPDATE", "DELETE", "ROLE_CHANGE")

MAX_PAGE_SIZE = 100


def record(
    *,
    store_id: int,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog | None:
    """Append an audit row. Failures are swallowed and logged."""
    try:
        entry = AuditLog(
            store_id=store_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            occurred_at=utcnow(),
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Audit write failed (%s %s id=%s store=%s): %s",
            action, entity_type, entity_id, store_id, exc,
        )
        return None


def list_logs(
    *,
    store_id: int,
    action: str | None = None,
    entity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    query = db.session.query(AuditLog).filter(AuditLog.store_id == store_id)

    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if start is not None:
        query = query.filter(AuditLog.occurred_at >= start)
    if end is not None:
        query = query.filter(AuditLog.occurred_at <= end)

    total = query.count()
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    rows = (
        query.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "items": [row.to_dict() for row in rows],
        "count": len(rows),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def summarize(*, store_id: int) -> dict[str, int]:
    """Counts keyed by ACTION_entity (e.g. CREATE_product)."""
    rows = (
        db.session.query(AuditLog.action, AuditLog.entity_type, func.count(AuditLog.id))
        .filter(AuditLog.store_id == store_id)
        .group_by(AuditLog.action, AuditLog.entity_type)
        .all()
    )
    return {f"{action}_{entity_type}": count for action, entity_type, count in rows}
