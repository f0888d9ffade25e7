"""Time-related utility functions."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def is_aware(value: datetime) -> bool:
    """True when the datetime carries a usable UTC offset."""
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None


def to_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC.

    Arithmetic and comparisons between datetimes that share a ZoneInfo tzinfo
    are done on wall-clock time, so everything is moved to UTC first.
    """
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours between two aware datetimes (negative if end < start)."""
    return (to_utc(end) - to_utc(start)).total_seconds() / 3600


def to_js_iso(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes between two aware datetimes."""
    return (to_utc(end) - to_utc(start)).total_seconds() / 60
