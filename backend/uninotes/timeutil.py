"""
Timestamps are stored as ISO-8601 UTC strings with millisecond precision and a Z
suffix, the format the browser build wrote (Date.toISOString()).
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp; naive values are taken as UTC. None when missing or unparseable."""
    if not value or not isinstance(value, str):
        return None
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def millis_id(dt: datetime) -> str:
    """Creation-time id: epoch milliseconds as a string (Date.now().toString())."""
    return str(int(dt.timestamp() * 1000))
