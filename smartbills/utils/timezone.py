from datetime import datetime, timezone as dt_timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC).
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix accepted) or datetime into UTC.

    Returns None only for None; blank strings and anything else that cannot
    be interpreted as a timestamp raise ValueError.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc_aware(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        # Accept both Z and +00:00
        return to_utc_aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
    raise ValueError(f"Unsupported timestamp value: {value!r}")
