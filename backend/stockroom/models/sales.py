from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Stock-out ledger row.

    Inserted in the same transaction that decrements Product.stock; a reader
    never sees one without the other. Deleting a sale restores its quantity.

    dedupe_key fingerprints the logical submission (client idempotency key, or
    product + quantity + customer + minute). The unique constraint turns a rapid
    double submit into DuplicateSale instead of a second stock decrement.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "dedupe_key", name="uq_sales_store_dedupe"),
        db.Index("ix_sales_store_created", "store_id", "created_at"),
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity"),
        db.CheckConstraint("selling_price_cents >= 0", name="ck_sales_selling_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(120), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    dedupe_key = db.Column(db.String(255), nullable=False)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))
    creator = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "customer_name": self.customer_name,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """
    Stock-in ledger row.

    Inserted in the same transaction that increments Product.stock and
    overwrites Product.cost_price_cents (last cost wins). Deleting a purchase
    removes its quantity again, refusing if that would take stock below zero.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("store_id", "dedupe_key", name="uq_purchases_store_dedupe"),
        db.Index("ix_purchases_store_created", "store_id", "created_at"),
        db.CheckConstraint("quantity >= 1", name="ck_purchases_quantity"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_purchases_cost_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    supplier_name = db.Column(db.String(120), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    dedupe_key = db.Column(db.String(255), nullable=False)

    product = db.relationship("Product", backref=db.backref("purchases", lazy=True))
    creator = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "cost_price_cents": self.cost_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "supplier_name": self.supplier_name,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
