"""
Timezone helpers.

All timestamps are stored and compared as timezone-aware UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite drops tzinfo on round trip, so values read back from it are
    treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_in_past(value: datetime, now: Optional[datetime] = None) -> bool:
    return ensure_aware(value) < (now or utcnow())
