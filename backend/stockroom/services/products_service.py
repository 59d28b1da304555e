# backend/stockroom/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are store-scoped.
- every query filters by the resolved store_id
- a product id from another store is NotFound, never Forbidden
- SKU uniqueness is per store; NULL SKUs are exempt

STOCK: create may set an initial stock. Any later stock change through
update_product is an explicit adjustment and goes through
inventory_service.set_stock under the same row lock as the ledger.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInput, NotFound, SkuTaken
from ..extensions import db
from ..models import Product, Sale, Purchase
from . import audit_service, inventory_service
from .concurrency import lock_for_update, run_in_transaction, run_read

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "sku",
    "description",
    "cost_price_cents",
    "selling_price_cents",
    "low_stock_threshold",
}

SORT_FIELDS = {
    "name": Product.name,
    "sku": Product.sku,
    "stock": Product.stock,
    "selling_price_cents": Product.selling_price_cents,
    "created_at": Product.created_at,
}

DEFAULT_SORT = "-created_at"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_sku_available(store_id: int, sku: str | None, *, exclude_id: int | None = None) -> None:
    if sku is None:
        return
    query = db.session.query(Product.id).filter(Product.store_id == store_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise SkuTaken()


def _order_clause(sort: str | None):
    sort = sort or DEFAULT_SORT
    descending = sort.startswith("-")
    key = sort.lstrip("-")
    column = SORT_FIELDS.get(key)
    if column is None:
        raise InvalidInput(f"sort must be one of: {', '.join(sorted(SORT_FIELDS))} (prefix with - for descending)")
    return column.desc() if descending else column.asc()


def list_products(*, store_id: int, search: str | None = None, sort: str | None = None) -> list[Product]:
    """
    Store-scoped product listing.

    search: case-insensitive substring match on name or SKU
    sort: field name, prefixed with '-' for descending (default -created_at)
    """
    order = _order_clause(sort)

    def _read():
        query = db.session.query(Product).filter(Product.store_id == store_id)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        return query.order_by(order, Product.id.asc()).all()

    return run_read(_read, operation="list_products")


def get_product(*, store_id: int, product_id: int) -> Product:
    product = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.store_id == store_id)
        .first()
    )
    if product is None:
        raise NotFound("Product not found")
    return product


def create_product(*, store_id: int, patch: dict, created_by: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        SkuTaken: SKU already used in this store
    """
    _ensure_sku_available(store_id, patch.get("sku"))

    stock = patch.get("stock")
    if stock is None:
        stock = 0

    p = Product(store_id=store_id, stock=stock)
    apply_product_patch(p, patch)
    if p.low_stock_threshold is None:
        p.low_stock_threshold = 10

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SkuTaken()

    audit_service.record(
        store_id=store_id,
        user_id=created_by,
        action="CREATE",
        entity_type="product",
        entity_id=p.id,
        new_values=p.to_dict(),
    )
    return p


def update_product(*, store_id: int, product_id: int, patch: dict, updated_by: int | None = None) -> Product:
    """
    Update a product's fields; a `stock` key is applied as an explicit
    adjustment in the same transaction.
    """
    state: dict = {}

    def _unit() -> Product:
        p = lock_for_update(
            db.session.query(Product).filter(Product.id == product_id, Product.store_id == store_id)
        ).first()
        if p is None:
            raise NotFound("Product not found")

        state["old"] = p.to_dict()

        if "sku" in patch and patch["sku"] != p.sku:
            _ensure_sku_available(store_id, patch["sku"], exclude_id=p.id)

        apply_product_patch(p, patch)
        try:
            db.session.flush()
        except IntegrityError:
            raise SkuTaken()

        if "stock" in patch and patch["stock"] is not None:
            inventory_service.set_stock(store_id=store_id, product_id=p.id, new_stock=patch["stock"])
        return p

    product = run_in_transaction(_unit, operation="update_product")

    audit_service.record(
        store_id=store_id,
        user_id=updated_by,
        action="UPDATE",
        entity_type="product",
        entity_id=product.id,
        old_values=state.get("old"),
        new_values=product.to_dict(),
    )
    return product


def delete_product(*, store_id: int, product_id: int, deleted_by: int | None = None) -> dict:
    """
    Hard-delete a product together with its sales and purchases.

    Ledger rows for the product are removed in the same transaction so no
    sale or purchase is left pointing at a missing product.
    """
    def _unit() -> dict:
        p = lock_for_update(
            db.session.query(Product).filter(Product.id == product_id, Product.store_id == store_id)
        ).first()
        if p is None:
            raise NotFound("Product not found")

        snapshot = p.to_dict()

        db.session.query(Sale).filter(
            Sale.store_id == store_id, Sale.product_id == p.id
        ).delete(synchronize_session=False)
        db.session.query(Purchase).filter(
            Purchase.store_id == store_id, Purchase.product_id == p.id
        ).delete(synchronize_session=False)

        db.session.query(Product).filter(
            Product.id == p.id, Product.store_id == store_id
        ).delete(synchronize_session=False)
        return snapshot

    snapshot = run_in_transaction(_unit, operation="delete_product")

    audit_service.record(
        store_id=store_id,
        user_id=deleted_by,
        action="DELETE",
        entity_type="product",
        entity_id=snapshot["id"],
        old_values=snapshot,
    )
    return snapshot
