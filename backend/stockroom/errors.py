# Overview: Error taxonomy shared by services and routes, plus JSON error handlers.

"""
Stockroom Error Taxonomy

Every domain and authorization failure is raised as a StockroomError subclass
carrying a stable machine-readable `kind`, an HTTP status, a human message and
optional details. Routes never build error payloads by hand; the handlers
registered here render them.

PROPAGATION:
- Authorization errors are terminal for the request.
- Validation/domain errors are client-facing verbatim.
- TransactionFailed is only raised after the ledger's transparent retry.
- NotFound never reveals that an entity exists in another store.
"""

from __future__ import annotations

from flask import Flask, jsonify, current_app
from werkzeug.exceptions import HTTPException


class StockroomError(Exception):
    kind = "error"
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        payload.update(self.details)
        return payload


# -- Authorization --

class Unauthenticated(StockroomError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class TokenExpired(Unauthenticated):
    default_message = "Token has expired"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message, reason="expired", **details)


class TokenInvalid(Unauthenticated):
    default_message = "Invalid token"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message, reason="invalid", **details)


class MissingTenant(StockroomError):
    kind = "missing_tenant"
    status_code = 400
    default_message = "Store ID is required (X-Store-Id header, storeId param, or store_id)"


class NoTenantAccess(StockroomError):
    kind = "no_tenant_access"
    status_code = 403
    default_message = "Access denied to this store"


class InsufficientRole(StockroomError):
    kind = "insufficient_role"
    status_code = 403
    default_message = "Insufficient permissions"


# -- Domain --

class InvalidInput(StockroomError):
    kind = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


class NotFound(StockroomError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class Conflict(StockroomError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class MembershipExists(Conflict):
    default_message = "User already has access to this store"


class EmailTaken(Conflict):
    default_message = "User already exists with this email"


class SkuTaken(Conflict):
    default_message = "SKU already exists in this store"


class CapacityReached(Conflict):
    default_message = "Store has reached its team capacity limit"


class OwnerProtected(StockroomError):
    kind = "owner_protected"
    status_code = 400
    default_message = "Cannot remove or demote the store owner"


class InsufficientStock(StockroomError):
    kind = "insufficient_stock"
    status_code = 400

    def __init__(self, available: int, requested: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient stock. Available: {available}, Requested: {requested}",
            available=available,
            requested=requested,
        )


class DuplicateSubmission(StockroomError):
    kind = "duplicate_submission"
    status_code = 409


class DuplicateSale(DuplicateSubmission):
    kind = "duplicate_sale"
    default_message = (
        "Duplicate sale detected. You recorded the same product, quantity, price "
        "and customer within the same minute."
    )


class DuplicatePurchase(DuplicateSubmission):
    kind = "duplicate_purchase"
    default_message = (
        "Duplicate purchase detected. You recorded the same product, quantity, "
        "cost and supplier within the same minute."
    )


# -- Infrastructure --

class TransactionFailed(StockroomError):
    kind = "transaction_failed"
    status_code = 503
    default_message = "The operation could not be committed, please retry"


class UpstreamTimeout(StockroomError):
    kind = "upstream_timeout"
    status_code = 504
    default_message = "The query took too long to complete"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StockroomError)
    def handle_stockroom_error(exc: StockroomError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "kind": "http_error"}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error", "kind": "error"}), 500
