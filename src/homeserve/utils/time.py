"""Time-related helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime, time


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_utc(value: datetime | date | str | None) -> datetime | None:
    """Coerce ISO strings (``Z`` suffix allowed), dates and datetimes to aware UTC.

    A plain date becomes midnight UTC. Any other type raises ``ValueError``.
    """

    if value is None:
        return None
    if isinstance(value, str):
        # Support ISO strings persisted in storage
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    elif not isinstance(value, datetime):
        if not isinstance(value, date):
            msg = f"Expected a datetime, date or ISO string, got {type(value).__name__}"
            raise ValueError(msg)
        value = datetime.combine(value, time.min, tzinfo=UTC)
    return ensure_utc(value)
