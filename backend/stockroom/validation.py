from __future__ import annotations
from decimal import Decimal, InvalidOperation
import re

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInput


# Maximum price: 9,999,999.99 in major units (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

MAX_QUANTITY = 1_000_000

MIN_PASSWORD_LENGTH = 6

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise InvalidInput(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise InvalidInput(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise InvalidInput(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise InvalidInput(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise InvalidInput(f"{col.key} must be an integer, not a decimal")
        raise InvalidInput(f"{col.key} must be an integer")

    # Fixed-point (tax percent)
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise InvalidInput(f"{col.key} must be a number")
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInput(f"{col.key} must be a number")
        if not number.is_finite():
            raise InvalidInput(f"{col.key} must be a number")
        return number

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    store_id is never writable: the store comes from the resolved tenant, not
    from the body. It is dropped here so clients that echo it back still work.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    payload = {k: v for k, v in payload.items() if k != "store_id"}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise InvalidInput(f"Field not allowed: {k}")
        if k not in cols:
            raise InvalidInput(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise InvalidInput(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidInput(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInput(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None:
        price = patch[field]
        if not isinstance(price, int) or isinstance(price, bool):
            raise InvalidInput(f"{field} must be an integer")
        if price < 0:
            raise InvalidInput(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise InvalidInput(f"{field} cannot exceed {MAX_PRICE_CENTS}")


def _check_quantity(quantity) -> None:
    if quantity is None:
        raise InvalidInput("quantity is required")
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise InvalidInput("quantity must be an integer")
    if quantity <= 0:
        raise InvalidInput("quantity must be greater than 0")
    if quantity > MAX_QUANTITY:
        raise InvalidInput(f"quantity cannot exceed {MAX_QUANTITY}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch, "cost_price_cents")
    _check_price(patch, "selling_price_cents")

    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise InvalidInput("stock must be >= 0")

    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise InvalidInput("low_stock_threshold must be >= 0")

    # Blank SKU is stored as NULL so it never collides
    if "sku" in patch and patch["sku"] == "":
        patch["sku"] = None


def enforce_rules_sale(*, quantity, selling_price_cents) -> None:
    # SALE requires qty > 0 and an explicit selling price
    _check_quantity(quantity)
    if selling_price_cents is None:
        raise InvalidInput("selling_price_cents is required")
    _check_price({"selling_price_cents": selling_price_cents}, "selling_price_cents")


def enforce_rules_purchase(*, quantity, cost_price_cents) -> None:
    # PURCHASE requires qty > 0 and an explicit cost price
    _check_quantity(quantity)
    if cost_price_cents is None:
        raise InvalidInput("cost_price_cents is required")
    _check_price({"cost_price_cents": cost_price_cents}, "cost_price_cents")


def enforce_rules_store(patch: dict) -> None:
    if "tax_percent" in patch and patch["tax_percent"] is not None:
        tax = patch["tax_percent"]
        if tax < 0 or tax > 100:
            raise InvalidInput("tax_percent must be between 0 and 100")

    if "currency" in patch and patch["currency"]:
        currency = patch["currency"].upper()
        if len(currency) != 3 or not currency.isalpha():
            raise InvalidInput("currency must be a 3-letter code")
        patch["currency"] = currency

    if "team_capacity" in patch and patch["team_capacity"] is not None:
        if patch["team_capacity"] < 1:
            raise InvalidInput("team_capacity must be >= 1")

    if "admin_pin" in patch and patch["admin_pin"] == "":
        patch["admin_pin"] = None

    if "type" in patch:
        from .models import STORE_TYPES
        if patch["type"] not in STORE_TYPES:
            raise InvalidInput(f"type must be one of: {', '.join(STORE_TYPES)}")


def normalize_email(email) -> str:
    if not isinstance(email, str):
        raise InvalidInput("email is required")
    normalized = email.strip().lower()
    if not EMAIL_RE.match(normalized):
        raise InvalidInput("Please enter a valid email")
    return normalized


def validate_password(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def parse_positive_int(value, field: str, *, default: int, maximum: int | None = None) -> int:
    """Parse a pagination-style query parameter."""
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be an integer")
    if parsed < 0:
        raise InvalidInput(f"{field} must be >= 0")
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed
