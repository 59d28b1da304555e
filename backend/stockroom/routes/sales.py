# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes (stock out).

MULTI-TENANT: the sale's store is the store resolved by the gate; the
referenced product must belong to it.

Clients may send an Idempotency-Key header on POST; a repeated key answers
409 duplicate_sale instead of selling twice.
"""

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_store_access
from ..models import Sale
from ..services import inventory_service
from ..validation import ModelValidationPolicy, validate_payload, parse_positive_int
from ..views import sale_dict


SALE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "selling_price_cents", "customer_name"},
    required_on_create={"product_id", "quantity", "selling_price_cents"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_store_access("sales.view")
def list_sales():
    """
    Query params:
    - limit: int (optional, default 100, max 500)
    - skip: int (optional, default 0)
    """
    limit = parse_positive_int(request.args.get("limit"), "limit", default=100, maximum=inventory_service.MAX_PAGE_SIZE)
    skip = parse_positive_int(request.args.get("skip"), "skip", default=0)
    sales = inventory_service.list_sales(store_id=g.store_id, limit=limit, skip=skip)
    return jsonify([sale_dict(s, g.role) for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_store_access("sales.view")
def get_sale(sale_id: int):
    sale = inventory_service.get_sale(store_id=g.store_id, sale_id=sale_id)
    return jsonify(sale_dict(sale, g.role)), 200


@sales_bp.post("")
@require_auth
@require_store_access("sales.create")
def create_sale():
    data = validate_payload(model=Sale, payload=request.get_json(silent=True), policy=SALE_POLICY, partial=False)

    sale = inventory_service.create_sale(
        store_id=g.store_id,
        product_id=data["product_id"],
        quantity=data["quantity"],
        selling_price_cents=data["selling_price_cents"],
        customer_name=data.get("customer_name"),
        created_by=g.current_user.id,
        idempotency_key=request.headers.get("Idempotency-Key"),
    )
    return jsonify(sale_dict(sale, g.role)), 201


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_store_access("sales.delete")
def delete_sale(sale_id: int):
    inventory_service.delete_sale(store_id=g.store_id, sale_id=sale_id, deleted_by=g.current_user.id)
    return jsonify({"message": "Sale deleted successfully"}), 200
