"""
Date and Time utilities

This module handles XMLTV timestamp parsing and the output time format.
Centralizes all date parsing logic so every event is normalized the same way.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

logger = logging.getLogger(__name__)

OUTPUT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_XMLTV_TIME_RE = re.compile(r"^(\d{14})\s*([+-])(\d{2})(\d{2})$")


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def parse_xmltv_time(time_str: str) -> datetime:
    """
    Parse an XMLTV timestamp and convert it to UTC

    This is the single source of truth for timestamp parsing.

    Args:
        time_str: XMLTV time like '20170701080000 +0300'

    Returns:
        Timezone-aware datetime in UTC, truncated to whole seconds

    Raises:
        DateFormatError: If the string is not 'YYYYMMDDhhmmss ±hhmm'
    """
    if not isinstance(time_str, str):
        raise DateFormatError(f"Invalid XMLTV datetime: {time_str!r}")

    match = _XMLTV_TIME_RE.match(time_str.strip())
    if match is None:
        raise DateFormatError(f"Invalid XMLTV datetime format: '{time_str}'")

    time_part, sign, hours, minutes = match.groups()
    try:
        dt = datetime.strptime(time_part, "%Y%m%d%H%M%S")
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV datetime value: '{time_str}'") from e

    if int(hours) > 23 or int(minutes) > 59:
        raise DateFormatError(f"Invalid XMLTV timezone offset: '{time_str}'")

    # Parse timezone offset (±HHMM)
    tz_sign = 1 if sign == "+" else -1
    offset = timedelta(hours=int(hours), minutes=int(minutes)) * tz_sign

    return dt.replace(tzinfo=timezone(offset)).astimezone(timezone.utc)


def truncate_to_seconds(value: datetime) -> datetime:
    """Drop sub-second precision from a datetime"""
    return value.replace(microsecond=0)


def format_output_time(value: datetime) -> str:
    """
    Format a datetime as the UTC output timestamp

    Args:
        value: Timezone-aware datetime

    Returns:
        String like '2017-07-01T05:00:00Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(OUTPUT_TIME_FORMAT)
