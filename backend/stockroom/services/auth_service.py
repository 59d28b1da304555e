# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and Account Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
issues stateless session tokens through token_service.

ACCOUNT FLOWS:
- signup: new identity + its first store + owner->admin membership, in one
  transaction. Nothing is persisted if any step fails.
- signin: email/password -> token + stores with roles.
- join_store: co-admin/staff joins an existing store with the store's join
  PIN, subject to the store's team capacity.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
- Emails are stored lower-cased; lookups normalize the same way
- Unknown email and wrong password produce the same error
- account_type is advisory only; authority comes from memberships
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import CapacityReached, EmailTaken, InvalidInput, NotFound, Unauthenticated
from ..extensions import db
from ..models import ACCOUNT_TYPES, User, Store, UserStoreRole, STORE_TYPES
from ..permissions import ADMIN, JOINABLE_ROLES
from ..validation import normalize_email, validate_password
from . import membership_service, token_service
from .security_service import log_security_event


BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for length before hashing.
    """
    validate_password(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", BCRYPT_ROUNDS))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


def create_user(*, name: str, email: str, password: str, account_type: str = "staff", commit: bool = True) -> User:
    """
    Create new identity with a bcrypt password hash.

    Raises:
        InvalidInput: bad name/email/password
        EmailTaken: email already registered
    """
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Name is required")
    if account_type not in ACCOUNT_TYPES:
        raise InvalidInput(f"account_type must be one of: {', '.join(ACCOUNT_TYPES)}")

    email = normalize_email(email)
    if get_user_by_email(email):
        raise EmailTaken()

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        account_type=account_type,
    )
    db.session.add(user)

    try:
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise EmailTaken()

    return user


def list_user_stores(user_id: int) -> list[dict]:
    """Stores the user belongs to, each with the user's role in it."""
    rows = (
        db.session.query(UserStoreRole, Store)
        .join(Store, Store.id == UserStoreRole.store_id)
        .filter(UserStoreRole.user_id == user_id)
        .order_by(Store.id.asc())
        .all()
    )
    stores = []
    for membership, store in rows:
        data = store.to_dict(include_pin=membership.role == ADMIN)
        data["role"] = membership.role
        data["is_owner"] = store.owner_id == user_id
        stores.append(data)
    return stores


def _auth_response(user: User, **extra) -> dict:
    payload = {
        "token": token_service.issue_token(user),
        "user": user.to_dict(),
        "stores": list_user_stores(user.id),
    }
    payload.update(extra)
    return payload


def signup(
    *,
    name: str,
    email: str,
    password: str,
    store_name: str | None = None,
    store_type: str | None = None,
    admin_pin: str | None = None,
    team_capacity: int | None = None,
) -> dict:
    """
    Register a first-class (admin) identity with its own store.

    User, store and owner membership are written in one transaction.
    """
    store_type = store_type or "Retail Shop"
    if store_type not in STORE_TYPES:
        raise InvalidInput(f"type must be one of: {', '.join(STORE_TYPES)}")

    if team_capacity is None:
        team_capacity = current_app.config.get("DEFAULT_TEAM_CAPACITY", 50)
    if not isinstance(team_capacity, int) or isinstance(team_capacity, bool) or team_capacity < 1:
        raise InvalidInput("team_capacity must be a positive integer")

    admin_pin = (admin_pin or "").strip() or None
    if admin_pin and db.session.query(Store.id).filter_by(admin_pin=admin_pin).first():
        raise InvalidInput("This admin PIN is already in use, choose another")

    try:
        user = create_user(name=name, email=email, password=password, account_type=ADMIN, commit=False)

        store = Store(
            name=(store_name or "").strip() or f"{user.name}'s Store",
            type=store_type,
            owner_id=user.id,
            currency=current_app.config.get("DEFAULT_CURRENCY", "INR"),
            admin_pin=admin_pin,
            team_capacity=team_capacity,
        )
        db.session.add(store)
        db.session.flush()

        membership_service.add_membership(user_id=user.id, store_id=store.id, role=ADMIN, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Signup: user %s created store %s", user.id, store.id)
    return _auth_response(user, store=store.to_dict(include_pin=True))


def signin(*, email: str, password: str) -> dict:
    if not email or not password:
        raise InvalidInput("Email and password are required")

    user = get_user_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        log_security_event(
            user_id=user.id if user else None,
            event_type="LOGIN_FAILED",
            reason="Invalid credentials",
        )
        raise Unauthenticated("Invalid email or password")

    return _auth_response(user)


def join_store(*, name: str, email: str, password: str, role: str, admin_code: str) -> dict:
    """
    Join an existing store as co-admin or staff using its join PIN.

    Reuses an existing identity when the email is already registered, but
    only if the supplied password matches it.
    """
    if not name or not email or not password or not admin_code:
        raise InvalidInput("Name, email, password, and admin code are required")

    if role not in JOINABLE_ROLES:
        raise InvalidInput("Role must be coadmin or staff")

    validate_password(password)

    store = db.session.query(Store).filter_by(admin_pin=str(admin_code).strip()).first()
    if not store:
        raise NotFound("Invalid admin code. No store found with this PIN.")

    if membership_service.count_members(store.id) >= store.team_capacity:
        raise CapacityReached()

    user = get_user_by_email(email)
    try:
        if user:
            if not verify_password(password, user.password_hash):
                raise Unauthenticated("Invalid email or password")
        else:
            user = create_user(name=name, email=email, password=password, account_type=role, commit=False)

        membership_service.add_membership(user_id=user.id, store_id=store.id, role=role, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("User %s joined store %s as %s", user.id, store.id, role)
    store_data = store.to_dict()
    store_data["role"] = role
    return _auth_response(user, store=store_data, message=f"Joined store as {role} successfully")


def get_profile(user: User) -> dict:
    return {"user": user.to_dict(), "stores": list_user_stores(user.id)}
