# Overview: Clock helpers; every stored timestamp is naive UTC.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server clock in naive UTC. Services accept `now` to override it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a ledger/expense filter bound into naive UTC.

    Blank -> None. Naive input is taken as UTC; "Z" and offsets are converted.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 with a trailing 'Z' for JSON payloads."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def elapsed_ms(start: datetime, now: Optional[datetime] = None) -> int:
    """Whole milliseconds a session has been running; clock skew reads as 0."""
    delta = (now or utcnow()) - start
    return max(0, delta // timedelta(milliseconds=1))


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)
