from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

STORE_TYPES = (
    "Warehouse & Logistics",
    "Retail Shop",
    "Godown",
    "Branch",
    "Distribution Center",
    # Legacy values kept for existing rows
    "shop",
    "godown",
    "branch",
)


class Store(db.Model):
    """
    Tenant root: every product, sale and purchase belongs to exactly one store.

    DESIGN:
    - owner_id is the founding identity; exactly one owner per store
    - Authority to act on a store comes only from a UserStoreRole row
    - admin_pin is the join secret used by co-admin/staff signup; unique when set
    - Deletion goes through store_service.delete_store (explicit ordered cascade)
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.CheckConstraint("tax_percent >= 0 AND tax_percent <= 100", name="ck_stores_tax_percent"),
        db.CheckConstraint("team_capacity >= 1", name="ck_stores_team_capacity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(64), nullable=False, default="Retail Shop")
    address = db.Column(db.String(255), nullable=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    currency = db.Column(db.String(3), nullable=False, default="INR")
    tax_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    admin_pin = db.Column(db.String(32), nullable=True, unique=True)
    team_capacity = db.Column(db.Integer, nullable=False, default=50)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", foreign_keys=[owner_id])

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self, *, include_pin: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "owner_id": self.owner_id,
            "currency": self.currency,
            "tax_percent": float(self.tax_percent or 0),
            "team_capacity": self.team_capacity,
            "has_admin_pin": bool(self.admin_pin),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_pin:
            data["admin_pin"] = self.admin_pin
        return data


class UserStoreRole(db.Model):
    """
    Membership: the only path from an identity to actions on a store.

    At most one row per (user, store); a second insert must fail rather than
    overwrite the existing role.
    """
    __tablename__ = "user_store_roles"
    __table_args__ = (
        db.UniqueConstraint("user_id", "store_id", name="uq_user_store_roles_user_store"),
        db.CheckConstraint("role IN ('admin', 'coadmin', 'staff')", name="ck_user_store_roles_role"),
        db.Index("ix_user_store_roles_store_role", "store_id", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("store_roles", lazy=True))
    store = db.relationship("Store", backref=db.backref("memberships", lazy=True))

    def __repr__(self) -> str:
        return f"<UserStoreRole user_id={self.user_id} store_id={self.store_id} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "store_id": self.store_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
