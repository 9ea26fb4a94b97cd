import math
from datetime import date, datetime, timezone
from typing import Any

from console_gate.core.errors import InvalidTimestamp

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_WINDOW_DAYS = 5


def parse_timestamp(value: Any) -> datetime:
    """
    Normalizes an upstream timestamp to an aware UTC datetime.
    Accepts ISO-8601 strings (a trailing 'Z' included) and date/datetime objects.
    Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidTimestamp(f"Not an ISO-8601 timestamp: {value!r}")
    else:
        raise InvalidTimestamp(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def days_until(target: datetime, now: datetime) -> int:
    # Negative once the target is in the past
    return math.ceil((target - now).total_seconds() / SECONDS_PER_DAY)


def is_within_expiration_window(days: int, window: int = DEFAULT_WINDOW_DAYS) -> bool:
    return -window <= days <= window
