"""
Clock helpers
"""

from datetime import datetime, timezone

def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC; naive values are taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
