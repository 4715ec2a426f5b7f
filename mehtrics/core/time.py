"""mehtrics.core.time

The only time helper surface in the codebase.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return an aware UTC datetime."""

    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize ``dt`` to aware UTC. Naive values are assumed to be UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_dt(value: str) -> datetime:
    """Parse an ISO-8601 datetime string into an aware UTC datetime.

    Accepts a ``Z`` suffix, explicit offsets, and naive timestamps (assumed UTC).

    Raises:
        ValueError: if parsing fails.
    """

    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(v))


def hours_until(target: datetime, *, now: datetime | None = None) -> float:
    """Hours from ``now`` until ``target`` (negative when in the past)."""

    ref = now or utc_now()
    return (ensure_utc(target) - ensure_utc(ref)).total_seconds() / 3600.0
