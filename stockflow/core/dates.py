from datetime import datetime, time, timezone

from stockflow.core.errors import ValidationFailed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value):
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_bound(value, *, end_of_day=False, field="date"):
    """Parse a query-string date or datetime into an aware UTC datetime.

    A bare date used as an upper bound covers the whole day.
    """
    if value is None:
        return None
    value_text = str(value).strip()
    if not value_text:
        return None
    try:
        parsed = datetime.fromisoformat(value_text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationFailed("Invalid {}: {}".format(field, value_text))
    if end_of_day and len(value_text) == 10:
        parsed = datetime.combine(parsed.date(), time(23, 59, 59, 999999))
    return ensure_utc(parsed)
