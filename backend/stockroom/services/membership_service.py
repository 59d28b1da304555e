from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInput, MembershipExists, NotFound
from ..extensions import db
from ..models import User, Store, UserStoreRole
from ..permissions import is_valid_role


def list_memberships(user_id: int) -> list[UserStoreRole]:
    """All memberships for an identity, oldest first."""
    return (
        db.session.query(UserStoreRole)
        .filter_by(user_id=user_id)
        .order_by(UserStoreRole.store_id.asc())
        .all()
    )


def get_membership(user_id: int, store_id: int) -> UserStoreRole | None:
    return db.session.query(UserStoreRole).filter_by(user_id=user_id, store_id=store_id).first()


def count_members(store_id: int) -> int:
    return db.session.query(UserStoreRole).filter_by(store_id=store_id).count()


def add_membership(*, user_id: int, store_id: int, role: str, commit: bool = True) -> UserStoreRole:
    """
    Insert a membership row.

    Never overwrites: an existing (user, store) row raises MembershipExists and
    is left untouched. The user and store must both exist.
    """
    if not is_valid_role(role):
        raise InvalidInput(f"Invalid role: {role}")

    if not db.session.query(User.id).filter_by(id=user_id).first():
        raise NotFound("User not found")

    if not db.session.query(Store.id).filter_by(id=store_id).first():
        raise NotFound("Store not found")

    if get_membership(user_id, store_id):
        raise MembershipExists()

    membership = UserStoreRole(user_id=user_id, store_id=store_id, role=role)
    db.session.add(membership)

    try:
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except IntegrityError:
        # Lost a race with a concurrent insert for the same pair
        db.session.rollback()
        raise MembershipExists()

    return membership


def update_role(*, user_id: int, store_id: int, role: str) -> tuple[UserStoreRole, str]:
    """Change a member's role. Returns (membership, previous_role)."""
    if not is_valid_role(role):
        raise InvalidInput(f"Invalid role: {role}")

    membership = get_membership(user_id, store_id)
    if not membership:
        raise NotFound("User does not have access to this store")

    previous = membership.role
    membership.role = role
    db.session.commit()
    return membership, previous


def remove_membership(*, user_id: int, store_id: int) -> dict | None:
    """
    Delete exactly one membership row.

    Owner protection is the caller's job (team_service); this layer only
    knows about rows. Returns a snapshot of the removed row, or None if there
    was none.
    """
    membership = get_membership(user_id, store_id)
    if not membership:
        return None

    snapshot = membership.to_dict()
    db.session.delete(membership)
    db.session.commit()
    return snapshot
