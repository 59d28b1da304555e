from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, InsufficientRole, InvalidInput, NotFound
from ..extensions import db
from ..models import Store, Product, Sale, Purchase, UserStoreRole, User
from ..permissions import ADMIN
from . import audit_service, membership_service
from .concurrency import lock_for_update, run_in_transaction

STORE_MUTABLE_FIELDS = {"name", "type", "address", "currency", "tax_percent", "admin_pin", "team_capacity"}


def _ensure_pin_available(admin_pin: str | None, *, exclude_id: int | None = None) -> None:
    if not admin_pin:
        return
    query = db.session.query(Store.id).filter(Store.admin_pin == admin_pin)
    if exclude_id is not None:
        query = query.filter(Store.id != exclude_id)
    if query.first():
        raise Conflict("This admin PIN is already in use, choose another")


def get_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise NotFound("Store not found")
    return store


def create_store(*, owner: User, patch: dict) -> Store:
    """
    Create a store owned by `owner`; the owner becomes its first admin in the
    same transaction.
    """
    if not patch.get("name"):
        raise InvalidInput("Store name is required")

    _ensure_pin_available(patch.get("admin_pin"))

    store = Store(
        owner_id=owner.id,
        currency=current_app.config.get("DEFAULT_CURRENCY", "INR"),
        team_capacity=current_app.config.get("DEFAULT_TEAM_CAPACITY", 50),
    )
    for key, value in patch.items():
        if key in STORE_MUTABLE_FIELDS and value is not None:
            setattr(store, key, value)

    try:
        db.session.add(store)
        db.session.flush()
        membership_service.add_membership(user_id=owner.id, store_id=store.id, role=ADMIN, commit=False)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Store could not be created (admin PIN already in use)")
    except Exception:
        db.session.rollback()
        raise

    audit_service.record(
        store_id=store.id,
        user_id=owner.id,
        action="CREATE",
        entity_type="store",
        entity_id=store.id,
        new_values=store.to_dict(),
    )
    return store


def update_store(store_id: int, *, patch: dict, updated_by: int | None = None) -> Store:
    state: dict = {}

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFound("Store not found")

        if "admin_pin" in patch:
            _ensure_pin_available(patch["admin_pin"], exclude_id=store.id)

        if "team_capacity" in patch and patch["team_capacity"] is not None:
            members = membership_service.count_members(store.id)
            if patch["team_capacity"] < members:
                raise InvalidInput(f"team_capacity cannot be lower than the current team size ({members})")

        state["old"] = store.to_dict()
        for key, value in patch.items():
            if key in STORE_MUTABLE_FIELDS:
                setattr(store, key, value)
        try:
            db.session.flush()
        except IntegrityError:
            raise Conflict("This admin PIN is already in use, choose another")
        return store

    store = run_in_transaction(_op, operation="update_store")

    audit_service.record(
        store_id=store.id,
        user_id=updated_by,
        action="UPDATE",
        entity_type="store",
        entity_id=store.id,
        old_values=state.get("old"),
        new_values=store.to_dict(),
    )
    return store


def delete_store(store_id: int, *, user_id: int) -> dict:
    """
    Delete a store and everything scoped to it.

    Only the owner may delete. Dependents are removed explicitly and in
    order (sales -> purchases -> products -> memberships -> store) inside one
    transaction. Audit and security rows are kept.
    """
    def _op() -> dict:
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFound("Store not found")
        if store.owner_id != user_id:
            raise InsufficientRole("Only the store owner can delete the store")

        snapshot = store.to_dict()
        counts = {
            "sales": db.session.query(Sale).filter(Sale.store_id == store_id).delete(synchronize_session=False),
            "purchases": db.session.query(Purchase).filter(Purchase.store_id == store_id).delete(synchronize_session=False),
            "products": db.session.query(Product).filter(Product.store_id == store_id).delete(synchronize_session=False),
            "memberships": db.session.query(UserStoreRole).filter(UserStoreRole.store_id == store_id).delete(synchronize_session=False),
        }
        db.session.query(Store).filter(Store.id == store_id).delete(synchronize_session=False)
        snapshot["deleted"] = counts
        return snapshot

    snapshot = run_in_transaction(_op, operation="delete_store")

    current_app.logger.info("Store %s deleted by owner %s: %s", store_id, user_id, snapshot["deleted"])
    audit_service.record(
        store_id=store_id,
        user_id=user_id,
        action="DELETE",
        entity_type="store",
        entity_id=store_id,
        old_values=snapshot,
    )
    return snapshot
