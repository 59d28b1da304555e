# Overview: Store-scoped role constants.

ADMIN = "admin"
COADMIN = "coadmin"
STAFF = "staff"

ALL_ROLES = (ADMIN, COADMIN, STAFF)

# Roles that may be granted through the join-by-PIN flow or an invite.
JOINABLE_ROLES = (COADMIN, STAFF)

# Roles that see cost prices and purchase history.
MANAGEMENT_ROLES = frozenset({ADMIN, COADMIN})


def is_valid_role(role) -> bool:
    return role in ALL_ROLES
