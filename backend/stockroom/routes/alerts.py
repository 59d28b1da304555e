# Overview: Flask API routes for low-stock alerts.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_store_access
from ..services import inventory_service
from ..views import product_dict


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("/<int:storeId>/low-stock")
@require_auth
@require_store_access("alerts.view")
def low_stock(storeId: int):
    """Products at or below their low-stock threshold, lowest stock first."""
    products = inventory_service.list_low_stock(store_id=g.store_id)
    return jsonify([product_dict(p, g.role) for p in products]), 200


@alerts_bp.get("/<int:storeId>/low-stock/count")
@require_auth
@require_store_access("alerts.view")
def low_stock_count(storeId: int):
    return jsonify({"count": inventory_service.count_low_stock(store_id=g.store_id)}), 200
