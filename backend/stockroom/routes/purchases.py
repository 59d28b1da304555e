# Overview: Flask API routes for purchases operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_store_access
from ..models import Purchase
from ..services import inventory_service
from ..validation import ModelValidationPolicy, validate_payload, parse_positive_int
from ..views import purchase_dict


PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "cost_price_cents", "supplier_name"},
    required_on_create={"product_id", "quantity", "cost_price_cents"},
)

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
@require_store_access("purchases.view")
def list_purchases():
    limit = parse_positive_int(request.args.get("limit"), "limit", default=100, maximum=inventory_service.MAX_PAGE_SIZE)
    skip = parse_positive_int(request.args.get("skip"), "skip", default=0)
    purchases = inventory_service.list_purchases(store_id=g.store_id, limit=limit, skip=skip)
    return jsonify([purchase_dict(p, g.role) for p in purchases]), 200


@purchases_bp.get("/<int:purchase_id>")
@require_auth
@require_store_access("purchases.view")
def get_purchase(purchase_id: int):
    purchase = inventory_service.get_purchase(store_id=g.store_id, purchase_id=purchase_id)
    return jsonify(purchase_dict(purchase, g.role)), 200


@purchases_bp.post("")
@require_auth
@require_store_access("purchases.create")
def create_purchase():
    data = validate_payload(model=Purchase, payload=request.get_json(silent=True), policy=PURCHASE_POLICY, partial=False)

    purchase = inventory_service.create_purchase(
        store_id=g.store_id,
        product_id=data["product_id"],
        quantity=data["quantity"],
        cost_price_cents=data["cost_price_cents"],
        supplier_name=data.get("supplier_name"),
        created_by=g.current_user.id,
        idempotency_key=request.headers.get("Idempotency-Key"),
    )
    return jsonify(purchase_dict(purchase, g.role)), 201


@purchases_bp.delete("/<int:purchase_id>")
@require_auth
@require_store_access("purchases.delete")
def delete_purchase(purchase_id: int):
    inventory_service.delete_purchase(store_id=g.store_id, purchase_id=purchase_id, deleted_by=g.current_user.id)
    return jsonify({"message": "Purchase deleted successfully"}), 200
