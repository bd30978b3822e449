from datetime import datetime, timezone

import pytz


def utcnow():
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value):
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value):
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def localize(value, tz_name):
    """Convert a stored UTC timestamp to the store's local time."""
    if value is None:
        return None
    return as_utc(value).astimezone(pytz.timezone(tz_name))


def parse_timestamp(value):
    """Parse an ISO-8601 string (a trailing Z is accepted) into naive UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_naive_utc(datetime.fromisoformat(text))


def isoformat(value):
    return as_utc(value).isoformat() if value is not None else None
