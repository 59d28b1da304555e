# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the store resolved by the
gate (X-Store-Id header, or store_id in body/query). A product id from any
other store answers 404.

SECURITY: All routes require authentication and store membership.
- Reads: any member (staff get the staff projection, without cost price)
- Writes: admin, coadmin
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_store_access
from ..models import Product
from ..services import products_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from ..views import product_dict

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "sku",
        "description",
        "stock",
        "cost_price_cents",
        "selling_price_cents",
        "low_stock_threshold",
    },
    required_on_create={"name", "cost_price_cents", "selling_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_store_access("products.view")
def list_products():
    """
    List the store's products.

    Query params:
    - search: str (optional) - name/SKU substring, case-insensitive
    - sort: str (optional) - name|sku|stock|selling_price_cents|created_at, '-' prefix for descending
    """
    products = products_service.list_products(
        store_id=g.store_id,
        search=request.args.get("search"),
        sort=request.args.get("sort"),
    )
    items = [product_dict(p, g.role) for p in products]
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_store_access("products.view")
def get_product(product_id: int):
    product = products_service.get_product(store_id=g.store_id, product_id=product_id)
    return jsonify(product_dict(product, g.role)), 200


@products_bp.post("")
@require_auth
@require_store_access("products.create")
def create_product_route():
    patch = validate_payload(model=Product, payload=request.get_json(silent=True), policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = products_service.create_product(store_id=g.store_id, patch=patch, created_by=g.current_user.id)
    return jsonify(product_dict(created, g.role)), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_store_access("products.update")
def update_product_route(product_id: int):
    patch = validate_payload(model=Product, payload=request.get_json(silent=True), policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    updated = products_service.update_product(
        store_id=g.store_id,
        product_id=product_id,
        patch=patch,
        updated_by=g.current_user.id,
    )
    return jsonify(product_dict(updated, g.role)), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_store_access("products.delete")
def delete_product_route(product_id: int):
    products_service.delete_product(store_id=g.store_id, product_id=product_id, deleted_by=g.current_user.id)
    return jsonify({"ok": True, "message": "Product deleted successfully"}), 200
