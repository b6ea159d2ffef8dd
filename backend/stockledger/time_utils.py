# Overview: UTC time handling; the ledger stores naive UTC and serializes with a trailing Z.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return _as_naive_utc(datetime.now(timezone.utc))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Client-supplied timestamp (payment_date) to naive UTC.

    Blank -> None. An offset or trailing "Z" is converted; a value without
    one is taken as UTC already. Raises ValueError on anything else.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a "Z" suffix, as every to_dict() emits it."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return stamp.isoformat() + "Z"
