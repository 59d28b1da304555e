# Overview: Request gate decorators for API routes (identity, tenant, role).

from functools import wraps
from flask import current_app, g, request

from .errors import InvalidInput, Unauthenticated
from .permissions import get_allowed_roles
from .services import tenant_service
from .services.token_service import extract_bearer_token


def _is_authenticated() -> bool:
    return hasattr(g, 'request_context')


def candidate_store_ids() -> list:
    """
    Store id candidates in priority order:
    tenant header, path parameter, JSON body field, query parameter.
    """
    header_name = current_app.config.get("TENANT_HEADER", "X-Store-Id")
    view_args = request.view_args or {}
    body = request.get_json(silent=True) if request.is_json else None
    if not isinstance(body, dict):
        body = {}

    return [
        request.headers.get(header_name),
        view_args.get("storeId", view_args.get("store_id")),
        body.get("store_id", body.get("storeId")),
        request.args.get("store_id", request.args.get("storeId")),
    ]


def _ensure_path_store_matches(store_id: int) -> None:
    """
    A store named in the URL must be the store the request resolved to.

    The tenant header outranks the path, so a client whose active store differs
    from the one in the URL would otherwise act on the wrong store.
    """
    view_args = request.view_args or {}
    path_store = view_args.get("storeId", view_args.get("store_id"))
    if path_store is None:
        return
    if str(path_store).strip() != str(store_id):
        raise InvalidInput("Store in the URL does not match the X-Store-Id header")


def require_auth(f):
    """
    Require authentication and load the caller's memberships.

    Sets the following Flask g attributes:
    - g.request_context: RequestContext (identity + all memberships)
    - g.current_user: The authenticated User object

    SECURITY: Raises Unauthenticated (401) if:
    - No Authorization header / not a Bearer token
    - Token malformed, expired, or signed with another key
    - User no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = extract_bearer_token(request.headers.get("Authorization"))
        if not token:
            raise Unauthenticated("Authentication required")

        context = tenant_service.authenticate(token)

        g.request_context = context
        g.current_user = context.user

        return f(*args, **kwargs)

    return decorated_function


def require_store_access(operation: str):
    """
    Resolve the target store, check membership, then check the role allowed
    for `operation` in the declarative operation table.

    MULTI-TENANT: Sets g.store_id and g.role for the handler. The store id is
    only ever taken from the caller's own memberships.
    """
    # Unknown operation codes fail at import time, not per request
    allowed_roles = get_allowed_roles(operation)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise Unauthenticated("Authentication required")

            context = g.request_context
            store_id, role = tenant_service.resolve_store_access(context, candidate_store_ids())
            _ensure_path_store_matches(store_id)
            tenant_service.require_role(role, allowed_roles, context=context, operation=operation)

            g.store_id = store_id
            g.role = role

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_owner_or_admin(f):
    """
    Destructive store-level gate. Must run after require_store_access.

    Sets g.store to the resolved Store.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            raise Unauthenticated("Authentication required")

        g.store = tenant_service.require_owner_or_admin(g.request_context)
        return f(*args, **kwargs)

    return decorated_function
