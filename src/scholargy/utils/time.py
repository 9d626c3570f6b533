from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime | None = None) -> str:
    """
    ISO-8601 timestamp, defaulting to now (UTC).
    """
    if dt is None:
        dt = utc_now()
    return dt.isoformat()
