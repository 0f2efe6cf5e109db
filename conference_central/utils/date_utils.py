"""Date and time utility functions."""
import re
from datetime import date, datetime
from typing import Optional, Union

from conference_central.utils.exceptions import InvalidInputError

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{1,2})$")


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """
    Parse date string in YYYY-MM-DD format.

    Args:
        value: Date string (e.g., "2025-11-15"), a date, or None

    Returns:
        date object, or None when value is None

    Raises:
        InvalidInputError: If date format is invalid
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid date format: {value}") from e


def format_date(value: Optional[date]) -> Optional[str]:
    """Format a date as YYYY-MM-DD, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def to_time_integer(time_str: str) -> int:
    """
    Convert an "HH:MM" string to the integer HH*100+MM.

    Args:
        time_str: Time of day (e.g., "19:00", "9:05")

    Returns:
        int: e.g. 1900, 905

    Raises:
        InvalidInputError: If the string is malformed or hours/minutes are out of range
    """
    if not isinstance(time_str, str):
        raise InvalidInputError(f"Time must be a string: {time_str!r}")

    match = _TIME_PATTERN.match(time_str.strip())
    if not match:
        raise InvalidInputError(f"Invalid time {time_str} use format: 23:59")

    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        raise InvalidInputError(f"Invalid time {time_str} use format: 23:59")

    return hours * 100 + minutes


def format_time_integer(value: Optional[int]) -> Optional[str]:
    """
    Format an HH*100+MM integer back to "HH:MM".

    Returns:
        str like "23:05", or None when value is None
    """
    if value is None:
        return None
    return f"{value // 100:02d}:{value % 100:02d}"
