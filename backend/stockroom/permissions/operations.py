# Overview: Declarative operation -> allowed roles table used by the request gate.
# Each operation maps to the set of store roles that may perform it.
# None means any member of the store is sufficient.

from .roles import ADMIN, COADMIN, STAFF, MANAGEMENT_ROLES


ANY_MEMBER = None


OPERATION_ROLES: dict[str, frozenset[str] | None] = {
    # -- STORES --
    "stores.view": ANY_MEMBER,
    "stores.update": frozenset({ADMIN}),
    # Store deletion is gated by require_owner_or_admin, then owner-only.
    "stores.delete": ANY_MEMBER,

    # -- TEAM --
    "team.view": frozenset({ADMIN}),
    "team.invite": frozenset({ADMIN}),
    "team.change_role": frozenset({ADMIN}),
    "team.remove": MANAGEMENT_ROLES,

    # -- PRODUCTS --
    "products.view": ANY_MEMBER,
    "products.create": MANAGEMENT_ROLES,
    "products.update": MANAGEMENT_ROLES,
    "products.delete": MANAGEMENT_ROLES,
    "alerts.view": ANY_MEMBER,

    # -- SALES --
    "sales.view": ANY_MEMBER,
    "sales.create": frozenset({ADMIN, COADMIN, STAFF}),
    "sales.delete": MANAGEMENT_ROLES,

    # -- PURCHASES --
    "purchases.view": MANAGEMENT_ROLES,
    "purchases.create": MANAGEMENT_ROLES,
    "purchases.delete": MANAGEMENT_ROLES,

    # -- AUDIT --
    "audit.view": frozenset({ADMIN}),
}


def get_allowed_roles(operation: str) -> frozenset[str] | None:
    """
    Look up the allowed roles for an operation.

    Unknown operation codes raise KeyError so a typo in a route fails loudly
    instead of silently granting access to every member.
    """
    return OPERATION_ROLES[operation]
