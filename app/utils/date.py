from dateutil.parser import parse
from datetime import datetime, time, timezone
import logging
from typing import Union

logger = logging.getLogger(__name__)


def parse_with_dateutil(date_string: Union[str, None], end_of_day: bool = False) -> Union[datetime, None]:
    """
    Leniently parses a date or datetime string using dateutil.parser.
    Returns a naive datetime or None if parsing fails.

    A bare date (no time part) is anchored to the start of that day, or to
    its last microsecond when ``end_of_day`` is set, so ranges stay inclusive.
    """
    if not date_string:
        return None

    try:
        parsed = parse(date_string, dayfirst=False)
    except (ValueError, TypeError, OverflowError):
        logger.warning(f"dateutil could not parse date: '{date_string}'.")
        return None

    parsed = as_naive_utc(parsed)
    has_time = any(sep in date_string for sep in ("T", ":"))
    if end_of_day and not has_time:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


def as_naive_utc(value: Union[datetime, None]) -> Union[datetime, None]:
    """Timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
