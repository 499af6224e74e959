from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    # Timestamps are stored "UTC-naive" (tzinfo stripped) for simplicity with SQLite + SQLAlchemy.
    # Treat any tz-naive timestamp emitted by the app as UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def window_start(hours: int | float, *, now: datetime | None = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=hours)
