# Overview: Flask API routes for the store audit log (admin only).

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_store_access
from ..errors import InvalidInput
from ..services import audit_service
from ..time_utils import parse_iso_datetime
from ..validation import parse_positive_int


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


def _date_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise InvalidInput(f"{name} must be an ISO-8601 date")


@audit_bp.get("/<int:storeId>/logs")
@require_auth
@require_store_access("audit.view")
def list_logs(storeId: int):
    """
    Query params:
    - action: CREATE | UPDATE | DELETE | ROLE_CHANGE
    - entity_type: product | sale | purchase | store | user_store_role
    - start_date / end_date: ISO-8601
    - limit (default 50, max 100) / offset
    """
    action = request.args.get("action")
    if action and action not in audit_service.ACTIONS:
        raise InvalidInput(f"action must be one of: {', '.join(audit_service.ACTIONS)}")

    result = audit_service.list_logs(
        store_id=g.store_id,
        action=action,
        entity_type=request.args.get("entity_type"),
        start=_date_arg("start_date"),
        end=_date_arg("end_date"),
        limit=parse_positive_int(request.args.get("limit"), "limit", default=50, maximum=audit_service.MAX_PAGE_SIZE),
        offset=parse_positive_int(request.args.get("offset"), "offset", default=0),
    )
    return jsonify(result), 200


@audit_bp.get("/<int:storeId>/summary")
@require_auth
@require_store_access("audit.view")
def summary(storeId: int):
    return jsonify(audit_service.summarize(store_id=g.store_id)), 200
