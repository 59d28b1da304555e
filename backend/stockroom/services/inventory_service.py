# Overview: Service-layer operations for inventory; the stock ledger and its mutation protocol.

"""
Stockroom Inventory Ledger Invariants (authoritative)

Stock model:
- Product.stock is the stored on-hand count for a product in its store.
- It changes only through this module: sale-out, purchase-in, deletion
  reversals and explicit adjustments.
- Net effect: stock == initial + sum(purchases) - sum(sales) + adjustments.

Business invariants:
- Stock never goes negative. Every decrement is a conditional UPDATE
  (WHERE stock >= qty), the product row is locked (SELECT ... FOR UPDATE on
  engines that honor it), and products carry CHECK (stock >= 0).
- A ledger row (Sale / Purchase) and its stock delta are one unit of work.
  A reader never observes one without the other; any failure rolls back both.
- A sale or purchase must reference a product in the SAME store. A product in
  another store is reported as NotFound, exactly like a missing one.
- Purchases overwrite Product.cost_price_cents with the purchase cost
  (last cost wins).

Deletion policy:
- Deleting a sale always restores its quantity.
- Deleting a purchase always removes its quantity, and is rejected with
  InsufficientStock (nothing changes) if that would take stock below zero.
- Deleting a purchase does not roll back the product's cost price.

Duplicate submissions:
- Each ledger row carries a dedupe_key, unique per store. Without a client
  Idempotency-Key it is product + quantity + unit price + recording user +
  customer/supplier + the minute of submission; with one, the key itself.

Failure semantics:
- InvalidInput / NotFound / InsufficientStock / Duplicate* are client errors
  and never retried.
- OperationalError / StaleDataError roll back and are retried once
  (LEDGER_COMMIT_ATTEMPTS), then surface as TransactionFailed.

Audit:
- Each mutation appends an AuditLog row AFTER commit (best-effort).
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import (
    DuplicatePurchase,
    DuplicateSale,
    InsufficientStock,
    InvalidInput,
    NotFound,
)
from ..extensions import db
from ..models import Product, Sale, Purchase
from ..time_utils import minute_bucket, utcnow
from ..validation import enforce_rules_purchase, enforce_rules_sale
from . import audit_service
from .concurrency import lock_for_update, run_in_transaction, run_read


MAX_IDEMPOTENCY_KEY_LENGTH = 200

MAX_PAGE_SIZE = 500


# =============================================================================
# HELPERS
# =============================================================================

def _ensure_product_in_store(store_id: int, product_id, *, lock: bool = False) -> Product:
    """
    Load a product scoped to the store.

    Cross-store and missing products are indistinguishable: both NotFound.
    """
    if not isinstance(product_id, int) or isinstance(product_id, bool):
        raise InvalidInput("product_id must be an integer")

    query = db.session.query(Product).filter(Product.id == product_id, Product.store_id == store_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFound("Product not found")
    return product


def _current_stock(store_id: int, product_id: int) -> int:
    value = (
        db.session.query(Product.stock)
        .filter(Product.id == product_id, Product.store_id == store_id)
        .scalar()
    )
    return int(value or 0)


def _decrement_stock(store_id: int, product_id: int, quantity: int) -> None:
    """
    Atomic decrement with a floor: the WHERE clause re-checks stock at write
    time, so two concurrent writers cannot both pass on a stale read.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.store_id == store_id,
            Product.stock >= quantity,
        )
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStock(available=_current_stock(store_id, product_id), requested=quantity)


def _increment_stock(store_id: int, product_id: int, quantity: int, *, cost_price_cents: int | None = None) -> None:
    values = {"stock": Product.stock + quantity}
    if cost_price_cents is not None:
        values["cost_price_cents"] = cost_price_cents

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.store_id == store_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound("Product not found")


def _clean_name(value, field: str) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > 120:
        raise InvalidInput(f"{field} exceeds max length 120")
    return text or None


def build_dedupe_key(
    *,
    store_id: int,
    product_id: int,
    quantity: int,
    unit_price_cents: int,
    created_by: int | None,
    counterparty: str | None,
    at,
    idempotency_key: str | None = None,
) -> str:
    """
    Fingerprint for a logical submission.

    Without an Idempotency-Key, two submissions collide only when the same
    user records the same product, quantity, unit price and counterparty in
    the same UTC minute. A client-supplied key replaces the fingerprint.
    """
    if idempotency_key:
        key = str(idempotency_key).strip()
        if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise InvalidInput(f"Idempotency-Key cannot exceed {MAX_IDEMPOTENCY_KEY_LENGTH} characters")
        if key:
            return f"idem:{key}"
    party = (counterparty or "").strip().lower()
    return f"{store_id}:{product_id}:{quantity}:{unit_price_cents}:{created_by or ''}:{party}:{minute_bucket(at)}"


# =============================================================================
# SALES (stock out)
# =============================================================================

def create_sale(
    *,
    store_id: int,
    product_id: int,
    quantity: int,
    selling_price_cents: int,
    created_by: int,
    customer_name: str | None = None,
    idempotency_key: str | None = None,
) -> Sale:
    """
    Record a sale and decrement stock as one unit of work.

    Raises:
        InvalidInput: quantity <= 0, missing/negative price
        NotFound: product missing or in another store
        InsufficientStock: quantity exceeds current stock (stock unchanged)
        DuplicateSale: same logical sale already recorded
        TransactionFailed: commit failed after one transparent retry
    """
    enforce_rules_sale(quantity=quantity, selling_price_cents=selling_price_cents)
    customer_name = _clean_name(customer_name, "customer_name")

    now = utcnow()
    dedupe_key = build_dedupe_key(
        store_id=store_id,
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=selling_price_cents,
        created_by=created_by,
        counterparty=customer_name,
        at=now,
        idempotency_key=idempotency_key,
    )

    def _unit() -> Sale:
        product = _ensure_product_in_store(store_id, product_id, lock=True)

        if product.stock < quantity:
            raise InsufficientStock(available=product.stock, requested=quantity)

        if db.session.query(Sale.id).filter_by(store_id=store_id, dedupe_key=dedupe_key).first():
            raise DuplicateSale()

        sale = Sale(
            store_id=store_id,
            product_id=product.id,
            quantity=quantity,
            selling_price_cents=selling_price_cents,
            total_amount_cents=quantity * selling_price_cents,
            customer_name=customer_name,
            created_by=created_by,
            created_at=now,
            dedupe_key=dedupe_key,
        )
        db.session.add(sale)
        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateSale()

        _decrement_stock(store_id, product.id, quantity)
        return sale

    sale = run_in_transaction(_unit, operation="create_sale")

    audit_service.record(
        store_id=store_id,
        user_id=created_by,
        action="CREATE",
        entity_type="sale",
        entity_id=sale.id,
        new_values=sale.to_dict(),
    )
    return sale


def delete_sale(*, store_id: int, sale_id: int, deleted_by: int | None = None) -> dict:
    """
    Delete a sale and restore its quantity to the product.

    Returns a snapshot of the deleted sale.
    """
    def _unit() -> dict:
        sale = lock_for_update(
            db.session.query(Sale).filter(Sale.id == sale_id, Sale.store_id == store_id)
        ).first()
        if sale is None:
            raise NotFound("Sale not found")

        snapshot = sale.to_dict()
        product_id = sale.product_id
        quantity = sale.quantity

        db.session.delete(sale)
        db.session.flush()
        _increment_stock(store_id, product_id, quantity)
        return snapshot

    snapshot = run_in_transaction(_unit, operation="delete_sale")

    audit_service.record(
        store_id=store_id,
        user_id=deleted_by,
        action="DELETE",
        entity_type="sale",
        entity_id=snapshot["id"],
        old_values=snapshot,
    )
    return snapshot


def get_sale(*, store_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter(Sale.id == sale_id, Sale.store_id == store_id).first()
    if sale is None:
        raise NotFound("Sale not found")
    return sale


def list_sales(*, store_id: int, limit: int = 100, skip: int = 0) -> list[Sale]:
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    def _read():
        return (
            db.session.query(Sale)
            .filter(Sale.store_id == store_id)
            .order_by(Sale.created_at.desc(), Sale.id.desc())
            .offset(max(skip, 0))
            .limit(limit)
            .all()
        )

    return run_read(_read, operation="list_sales")


# =============================================================================
# PURCHASES (stock in)
# =============================================================================

def create_purchase(
    *,
    store_id: int,
    product_id: int,
    quantity: int,
    cost_price_cents: int,
    created_by: int,
    supplier_name: str | None = None,
    idempotency_key: str | None = None,
) -> Purchase:
    """
    Record a purchase, increment stock and set the product's cost price to
    this purchase's cost, as one unit of work.
    """
    enforce_rules_purchase(quantity=quantity, cost_price_cents=cost_price_cents)
    supplier_name = _clean_name(supplier_name, "supplier_name")

    now = utcnow()
    dedupe_key = build_dedupe_key(
        store_id=store_id,
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=cost_price_cents,
        created_by=created_by,
        counterparty=supplier_name,
        at=now,
        idempotency_key=idempotency_key,
    )

    def _unit() -> Purchase:
        product = _ensure_product_in_store(store_id, product_id, lock=True)

        if db.session.query(Purchase.id).filter_by(store_id=store_id, dedupe_key=dedupe_key).first():
            raise DuplicatePurchase()

        purchase = Purchase(
            store_id=store_id,
            product_id=product.id,
            quantity=quantity,
            cost_price_cents=cost_price_cents,
            total_amount_cents=quantity * cost_price_cents,
            supplier_name=supplier_name,
            created_by=created_by,
            created_at=now,
            dedupe_key=dedupe_key,
        )
        db.session.add(purchase)
        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicatePurchase()

        _increment_stock(store_id, product.id, quantity, cost_price_cents=cost_price_cents)
        return purchase

    purchase = run_in_transaction(_unit, operation="create_purchase")

    audit_service.record(
        store_id=store_id,
        user_id=created_by,
        action="CREATE",
        entity_type="purchase",
        entity_id=purchase.id,
        new_values=purchase.to_dict(),
    )
    return purchase


def delete_purchase(*, store_id: int, purchase_id: int, deleted_by: int | None = None) -> dict:
    """
    Delete a purchase and remove its quantity from the product.

    Raises InsufficientStock (and changes nothing) if the product no longer
    holds enough stock to give the purchased quantity back.
    """
    def _unit() -> dict:
        purchase = lock_for_update(
            db.session.query(Purchase).filter(Purchase.id == purchase_id, Purchase.store_id == store_id)
        ).first()
        if purchase is None:
            raise NotFound("Purchase not found")

        snapshot = purchase.to_dict()
        product_id = purchase.product_id
        quantity = purchase.quantity

        _ensure_product_in_store(store_id, product_id, lock=True)
        _decrement_stock(store_id, product_id, quantity)

        db.session.delete(purchase)
        db.session.flush()
        return snapshot

    snapshot = run_in_transaction(_unit, operation="delete_purchase")

    audit_service.record(
        store_id=store_id,
        user_id=deleted_by,
        action="DELETE",
        entity_type="purchase",
        entity_id=snapshot["id"],
        old_values=snapshot,
    )
    return snapshot


def get_purchase(*, store_id: int, purchase_id: int) -> Purchase:
    purchase = (
        db.session.query(Purchase)
        .filter(Purchase.id == purchase_id, Purchase.store_id == store_id)
        .first()
    )
    if purchase is None:
        raise NotFound("Purchase not found")
    return purchase


def list_purchases(*, store_id: int, limit: int = 100, skip: int = 0) -> list[Purchase]:
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    def _read():
        return (
            db.session.query(Purchase)
            .filter(Purchase.store_id == store_id)
            .order_by(Purchase.created_at.desc(), Purchase.id.desc())
            .offset(max(skip, 0))
            .limit(limit)
            .all()
        )

    return run_read(_read, operation="list_purchases")


# =============================================================================
# ADJUSTMENTS AND ALERTS
# =============================================================================

def set_stock(*, store_id: int, product_id: int, new_stock: int) -> int:
    """
    Explicit stock adjustment to an absolute value, inside the caller's unit
    of work. Returns the previous stock.
    """
    if not isinstance(new_stock, int) or isinstance(new_stock, bool) or new_stock < 0:
        raise InvalidInput("stock must be a non-negative integer")

    product = _ensure_product_in_store(store_id, product_id, lock=True)
    previous = product.stock
    delta = new_stock - previous

    if delta > 0:
        _increment_stock(store_id, product_id, delta)
    elif delta < 0:
        _decrement_stock(store_id, product_id, -delta)
    return previous


def list_low_stock(*, store_id: int) -> list[Product]:
    def _read():
        return (
            db.session.query(Product)
            .filter(
                Product.store_id == store_id,
                Product.stock <= Product.low_stock_threshold,
            )
            .order_by(Product.stock.asc(), Product.name.asc())
            .all()
        )

    return run_read(_read, operation="list_low_stock")


def count_low_stock(*, store_id: int) -> int:
    return run_read(
        lambda: db.session.query(Product)
        .filter(
            Product.store_id == store_id,
            Product.stock <= Product.low_stock_threshold,
        )
        .count(),
        operation="count_low_stock",
    )
