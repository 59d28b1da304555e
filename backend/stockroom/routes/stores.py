# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_store_access, require_owner_or_admin
from ..models import Store
from ..permissions import ADMIN
from ..services import auth_service, store_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_store


STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "address", "currency", "tax_percent", "admin_pin", "team_capacity"},
    required_on_create={"name"},
)

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
def list_stores():
    """Stores the caller belongs to, each with the caller's role."""
    return jsonify(auth_service.list_user_stores(g.current_user.id)), 200


@stores_bp.post("")
@require_auth
def create_store():
    patch = validate_payload(model=Store, payload=request.get_json(silent=True), policy=STORE_POLICY, partial=False)
    enforce_rules_store(patch)
    store = store_service.create_store(owner=g.current_user, patch=patch)
    data = store.to_dict(include_pin=True)
    data["role"] = ADMIN
    return jsonify(data), 201


@stores_bp.get("/<int:storeId>")
@require_auth
@require_store_access("stores.view")
def get_store(storeId: int):
    store = store_service.get_store(g.store_id)
    data = store.to_dict(include_pin=g.role == ADMIN)
    data["role"] = g.role
    return jsonify(data), 200


@stores_bp.put("/<int:storeId>")
@require_auth
@require_store_access("stores.update")
def update_store(storeId: int):
    patch = validate_payload(model=Store, payload=request.get_json(silent=True), policy=STORE_POLICY, partial=True)
    enforce_rules_store(patch)
    store = store_service.update_store(g.store_id, patch=patch, updated_by=g.current_user.id)
    return jsonify(store.to_dict(include_pin=True)), 200


@stores_bp.delete("/<int:storeId>")
@require_auth
@require_store_access("stores.delete")
@require_owner_or_admin
def delete_store(storeId: int):
    store_service.delete_store(g.store_id, user_id=g.current_user.id)
    return jsonify({"message": "Store deleted successfully"}), 200
