# Overview: Per-role read projections for products and ledger rows.

"""
Role-specific views of store data.

WHY: Staff may sell but must not see what the store paid for stock. Rather
than deleting keys from dicts at every call site, each role gets an explicit
view type and a single projection function chooses it.

- admin / coadmin -> ProductView (includes cost_price_cents)
- staff           -> StaffProductView (no cost field at all)
"""

from __future__ import annotations

from dataclasses import dataclass, asdict

from .models import Product, Sale, Purchase
from .permissions import MANAGEMENT_ROLES
from .time_utils import to_utc_z


@dataclass(frozen=True)
class StaffProductView:
    id: int
    store_id: int
    name: str
    sku: str | None
    description: str | None
    stock: int
    selling_price_cents: int
    low_stock_threshold: int
    is_low_stock: bool
    created_at: str | None
    updated_at: str | None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProductView(StaffProductView):
    cost_price_cents: int = 0


def can_view_cost(role: str | None) -> bool:
    return role in MANAGEMENT_ROLES


def project_product(product: Product, role: str | None) -> StaffProductView:
    """Return the view of `product` appropriate for `role`."""
    base = dict(
        id=product.id,
        store_id=product.store_id,
        name=product.name,
        sku=product.sku,
        description=product.description,
        stock=product.stock,
        selling_price_cents=product.selling_price_cents,
        low_stock_threshold=product.low_stock_threshold,
        is_low_stock=product.is_low_stock,
        created_at=to_utc_z(product.created_at),
        updated_at=to_utc_z(product.updated_at),
    )
    if can_view_cost(role):
        return ProductView(cost_price_cents=product.cost_price_cents, **base)
    return StaffProductView(**base)


def product_dict(product: Product, role: str | None) -> dict:
    return project_product(product, role).to_dict()


def _product_summary(product: Product | None, role: str | None) -> dict | None:
    if product is None:
        return None
    summary = {
        "id": product.id,
        "name": product.name,
        "sku": product.sku,
        "selling_price_cents": product.selling_price_cents,
    }
    if can_view_cost(role):
        summary["cost_price_cents"] = product.cost_price_cents
    return summary


def sale_dict(sale: Sale, role: str | None) -> dict:
    data = sale.to_dict()
    data["product"] = _product_summary(sale.product, role)
    return data


def purchase_dict(purchase: Purchase, role: str | None) -> dict:
    # Purchases are only readable by management roles; role is still honored.
    data = purchase.to_dict()
    data["product"] = _product_summary(purchase.product, role)
    return data
