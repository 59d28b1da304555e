"""
Team Management Service

WHY: A store's team is the set of membership rows pointing at it. This module
adds the store-level rules on top of the raw membership index:

- capacity: a store never holds more members than its team_capacity
- owner protection: the owner's membership can't be removed and the owner's
  role can't be changed
- co-admins may remove staff and other co-admins, never an admin

Every change writes an audit record with before/after snapshots after the
change has committed.
"""

from __future__ import annotations

from ..errors import CapacityReached, InsufficientRole, InvalidInput, NotFound, OwnerProtected
from ..extensions import db
from ..models import Store, User, UserStoreRole
from ..permissions import ADMIN, is_valid_role
from . import audit_service, membership_service


def _get_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise NotFound("Store not found")
    return store


def list_members(store_id: int) -> list[dict]:
    store = _get_store(store_id)
    rows = (
        db.session.query(UserStoreRole, User)
        .join(User, User.id == UserStoreRole.user_id)
        .filter(UserStoreRole.store_id == store_id)
        .order_by(UserStoreRole.id.asc())
        .all()
    )
    return [
        {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": membership.role,
            "is_owner": user.id == store.owner_id,
            "joined_at": membership.to_dict()["created_at"],
        }
        for membership, user in rows
    ]


def invite_member(*, store_id: int, email: str, role: str, invited_by: int | None = None) -> dict:
    """
    Give an existing identity access to the store.

    Raises:
        InvalidInput: missing email or invalid role
        NotFound: no identity with that email
        CapacityReached: store is full
        MembershipExists: the identity is already a member
    """
    if not email or not role:
        raise InvalidInput("Email and role are required")
    if not is_valid_role(role):
        raise InvalidInput("Invalid role")

    store = _get_store(store_id)

    user = db.session.query(User).filter_by(email=str(email).strip().lower()).first()
    if not user:
        raise NotFound("User not found. They need to sign up first.")

    if membership_service.count_members(store.id) >= store.team_capacity:
        raise CapacityReached()

    membership = membership_service.add_membership(user_id=user.id, store_id=store.id, role=role)

    audit_service.record(
        store_id=store.id,
        user_id=invited_by,
        action="CREATE",
        entity_type="user_store_role",
        entity_id=membership.id,
        new_values={"user_id": user.id, "role": role},
    )
    return {"id": user.id, "name": user.name, "email": user.email, "role": role, "is_owner": False}


def change_role(*, store_id: int, user_id: int, role: str, changed_by: int | None = None) -> dict:
    if not role or not is_valid_role(role):
        raise InvalidInput("Valid role is required")

    store = _get_store(store_id)
    if store.owner_id == user_id:
        raise OwnerProtected("Cannot change the store owner's role")

    membership, previous = membership_service.update_role(user_id=user_id, store_id=store_id, role=role)

    audit_service.record(
        store_id=store_id,
        user_id=changed_by,
        action="ROLE_CHANGE",
        entity_type="user_store_role",
        entity_id=membership.id,
        old_values={"user_id": user_id, "role": previous},
        new_values={"user_id": user_id, "role": role},
    )
    return membership.to_dict()


def remove_member(*, store_id: int, user_id: int, removed_by: int | None = None, remover_role: str | None = None) -> dict:
    """
    Remove exactly one membership row.

    Raises:
        OwnerProtected: target is the store owner
        InsufficientRole: a co-admin tried to remove an admin
        NotFound: target is not a member
    """
    store = _get_store(store_id)
    if store.owner_id == user_id:
        raise OwnerProtected("Cannot remove store owner")

    target = membership_service.get_membership(user_id, store_id)
    if target is None:
        raise NotFound("User does not have access to this store")

    if remover_role is not None and remover_role != ADMIN and target.role == ADMIN:
        raise InsufficientRole("Only an admin can remove another admin")

    snapshot = membership_service.remove_membership(user_id=user_id, store_id=store_id)
    if snapshot is None:
        # Removed by someone else since the lookup above
        raise NotFound("User does not have access to this store")

    audit_service.record(
        store_id=store_id,
        user_id=removed_by,
        action="DELETE",
        entity_type="user_store_role",
        entity_id=snapshot["id"],
        old_values={"user_id": user_id, "role": snapshot["role"]},
    )
    return snapshot
