"""
Multi-Tenant Service: Identity, Tenant Resolution and Role Checks

WHY: Centralize the authorization gate so every tenant-scoped request goes
through the same three steps, in the same order:

    authenticate(token)            -> who is calling
    resolve_store_access(...)      -> which store, and with what role
    require_role(role, allowed)    -> may that role do this operation

SECURITY INVARIANTS:
1. The caller's memberships are loaded once, at authentication, and are the
   only authority source for the rest of the request.
2. A store id from client input (header, path, body, query) is looked up in
   the caller's OWN membership list, never in the global stores table. A
   valid store id the caller has no membership for is denied exactly like a
   made-up one.
3. Role checks run only after the store has been resolved.
4. Denials are logged as security events.

USAGE:
    from stockroom.services.tenant_service import authenticate, resolve_store_access

    ctx = authenticate(token)
    store_id, role = resolve_store_access(ctx, candidate_store_ids(request))
    require_role(role, {"admin", "coadmin"})
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import InsufficientRole, MissingTenant, NoTenantAccess, TokenInvalid
from ..extensions import db
from ..models import Store, User
from ..permissions import ADMIN
from . import membership_service, token_service
from .security_service import log_security_event


@dataclass(frozen=True)
class MembershipGrant:
    store_id: int
    role: str


@dataclass
class RequestContext:
    """
    Request-scoped identity and tenant context.

    Built by authenticate(); store_id/role are filled in by
    resolve_store_access() once the target store is known.
    """
    user: User
    memberships: tuple[MembershipGrant, ...] = ()
    store_id: int | None = None
    role: str | None = None
    _by_store: dict[str, MembershipGrant] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self._by_store = {str(m.store_id): m for m in self.memberships}

    @property
    def user_id(self) -> int:
        return self.user.id

    def grant_for(self, store_id) -> MembershipGrant | None:
        if store_id is None:
            return None
        return self._by_store.get(str(store_id).strip())

    def store_ids(self) -> list[int]:
        return [m.store_id for m in self.memberships]


def authenticate(token: str | None) -> RequestContext:
    """
    Resolve the caller from a bearer token.

    Raises Unauthenticated (TokenExpired / TokenInvalid) for a missing,
    malformed, expired or foreign-signed token, or for a token whose user no
    longer exists. Loads every membership for the user eagerly.
    """
    if not token:
        raise TokenInvalid("Authentication required")

    claims = token_service.verify_token(token)

    user = db.session.query(User).filter_by(id=claims.user_id).first()
    if not user:
        raise TokenInvalid("User not found")

    grants = tuple(
        MembershipGrant(store_id=m.store_id, role=m.role)
        for m in membership_service.list_memberships(user.id)
    )
    return RequestContext(user=user, memberships=grants)


def first_candidate(candidates) -> str | None:
    """First non-empty candidate wins; everything is compared as a string."""
    for value in candidates:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def resolve_store_access(context: RequestContext, candidates) -> tuple[int, str]:
    """
    Pick the target store from `candidates` (already in priority order) and
    check it against the caller's memberships.

    Raises:
        MissingTenant: no candidate carried a value
        NoTenantAccess: the caller has no membership for that store
    """
    raw = first_candidate(candidates)
    if raw is None:
        raise MissingTenant()

    grant = context.grant_for(raw)
    if grant is None:
        current_app.logger.warning(
            "Cross-tenant access denied: user %s requested store %r", context.user_id, raw
        )
        log_security_event(
            user_id=context.user_id,
            event_type="NO_TENANT_ACCESS",
            reason=f"No membership for store {raw}",
            store_id=int(raw) if raw.isdigit() else None,
        )
        raise NoTenantAccess()

    context.store_id = grant.store_id
    context.role = grant.role
    return grant.store_id, grant.role


def require_role(role: str | None, allowed_roles, *, context: RequestContext | None = None, operation: str | None = None) -> None:
    """
    Fail with InsufficientRole unless `role` is in `allowed_roles`.

    allowed_roles=None means any member role is sufficient.
    """
    if allowed_roles is None:
        if role is None:
            raise InsufficientRole()
        return

    if role in allowed_roles:
        return

    if context is not None:
        log_security_event(
            user_id=context.user_id,
            event_type="INSUFFICIENT_ROLE",
            action=operation,
            reason=f"Role {role!r} not in {sorted(allowed_roles)}",
            store_id=context.store_id,
        )
    raise InsufficientRole(
        "Insufficient permissions",
        required=sorted(allowed_roles),
        current=role,
    )


def require_owner_or_admin(context: RequestContext) -> Store:
    """
    Destructive store-level gate: the caller must own the resolved store or
    hold the admin role in it.
    """
    if context.store_id is None:
        raise MissingTenant()

    store = db.session.query(Store).filter_by(id=context.store_id).first()
    if store is None:
        # Membership pointed at a store that is gone; same answer as no access
        raise NoTenantAccess()

    if store.owner_id == context.user_id or context.role == ADMIN:
        return store

    log_security_event(
        user_id=context.user_id,
        event_type="OWNER_CHECK_FAILED",
        reason="Caller is neither owner nor admin",
        store_id=store.id,
    )
    raise InsufficientRole("Only the store owner or an admin can perform this action")
