# Overview: Store role and operation permission package.
# Re-exports the public API used by the request gate and services.

from .roles import (
    ADMIN,
    COADMIN,
    STAFF,
    ALL_ROLES,
    JOINABLE_ROLES,
    MANAGEMENT_ROLES,
    is_valid_role,
)
from .operations import ANY_MEMBER, OPERATION_ROLES, get_allowed_roles

__all__ = [
    "ADMIN",
    "COADMIN",
    "STAFF",
    "ALL_ROLES",
    "JOINABLE_ROLES",
    "MANAGEMENT_ROLES",
    "is_valid_role",
    "ANY_MEMBER",
    "OPERATION_ROLES",
    "get_allowed_roles",
]
