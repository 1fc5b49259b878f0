from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clamp_int(val: int, *, lo: int, hi: int) -> int:
    """Clamp `val` into the inclusive range [`lo`, `hi`]."""

    return max(lo, min(hi, int(val)))


__all__ = ["clamp_int", "ensure_utc", "utcnow"]
