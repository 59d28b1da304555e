# Overview: UTC helpers shared by models, the ledger and query-string parsing.
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime; all stored timestamps use this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def minute_bucket(dt: datetime) -> str:
    """Truncate to the minute; used to fingerprint rapid duplicate submissions."""
    return dt.strftime("%Y%m%d%H%M")


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into naive UTC.

    Blank input gives None. Offsets (including a trailing Z) are converted to
    UTC; values without one are taken to be UTC already. Raises ValueError on
    anything else.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render as second-precision ISO-8601 with a 'Z' suffix (naive means UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
