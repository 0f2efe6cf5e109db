"""Data validation utilities."""
from typing import Any, List, Tuple

from conference_central.models.forms import ConferenceForm, SessionForm
from conference_central.models.session import SessionType
from conference_central.utils.date_utils import parse_date, to_time_integer
from conference_central.utils.exceptions import InvalidInputError


def validate_session_form(form: SessionForm) -> bool:
    """
    Validate a session form against all rules.

    Args:
        form: SessionForm from the caller

    Returns:
        True if valid

    Raises:
        InvalidInputError: If validation fails with detailed message
    """
    if not isinstance(form, SessionForm):
        raise InvalidInputError("Session form is required")

    if not form.session_name or not form.session_name.strip():
        raise InvalidInputError("Session name cannot be empty")

    validate_speaker_keys(form.speaker_keys)

    if not isinstance(form.duration, int) or isinstance(form.duration, bool) or form.duration < 0:
        raise InvalidInputError("Duration must be a non-negative integer (minutes)")

    if form.session_type is not None and not isinstance(form.session_type, SessionType):
        raise InvalidInputError(f"Session type must be one of {[t.value for t in SessionType]}")

    parse_date(form.start_date)

    if form.start_time is not None:
        to_time_integer(form.start_time)

    validate_string_list(form.highlights, "Highlights")

    return True


def validate_speaker_keys(speaker_keys: Any) -> bool:
    """
    Validate the list of websafe speaker profile keys.

    Only the shape is checked here; whether the keys resolve is decided
    inside the session creation transaction.

    Raises:
        InvalidInputError: If not a list of non-empty strings
    """
    if not isinstance(speaker_keys, list):
        raise InvalidInputError("Speaker keys must be a list")

    for speaker_key in speaker_keys:
        if not isinstance(speaker_key, str) or not speaker_key.strip():
            raise InvalidInputError("All speaker keys must be non-empty strings")

    return True


def validate_string_list(values: Any, label: str) -> bool:
    """
    Raises:
        InvalidInputError: If values is not a list of strings
    """
    if values is None:
        return True
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise InvalidInputError(f"{label} must be a list of strings")
    return True


def validate_conference_form(form: ConferenceForm, creating: bool = True) -> bool:
    """
    Validate a conference form.

    Args:
        form: ConferenceForm from the caller
        creating: If True, the name is required

    Returns:
        True if valid

    Raises:
        InvalidInputError: If validation fails with detailed message
    """
    if not isinstance(form, ConferenceForm):
        raise InvalidInputError("Conference form is required")

    if creating and (not form.name or not form.name.strip()):
        raise InvalidInputError("Conference name cannot be empty")

    if form.name is not None and not form.name.strip():
        raise InvalidInputError("Conference name cannot be empty")

    max_attendees = form.max_attendees
    if max_attendees is not None and (
        not isinstance(max_attendees, int) or isinstance(max_attendees, bool) or max_attendees < 0
    ):
        raise InvalidInputError("Max attendees must be a non-negative integer")

    start_date = parse_date(form.start_date)
    end_date = parse_date(form.end_date)
    if start_date and end_date and end_date < start_date:
        raise InvalidInputError(f"End date ({end_date}) cannot be before start date ({start_date})")

    validate_string_list(form.topics, "Topics")

    return True


def validate_display_name(name: str) -> Tuple[bool, str]:
    """
    Validate a profile display name.

    Returns:
        Tuple of (is_valid: bool, error_message: str)
        - (True, "") if valid
        - (False, "Display name cannot be empty") if empty
        - (False, "Display name cannot exceed 50 characters") if too long
    """
    if not name or not name.strip():
        return False, "Display name cannot be empty"
    if len(name) > 50:
        return False, "Display name cannot exceed 50 characters"
    return True, ""


def dedupe_keys(keys: List[str]) -> List[str]:
    """Drop repeated keys, keeping first-seen order."""
    seen = set()
    result = []
    for key in keys:
        if key not in seen:
            seen.add(key)
            result.append(key)
    return result


def parse_session_type(value: Any) -> SessionType:
    """
    Coerce a SessionType or its string value (e.g. "KEYNOTE") to SessionType.

    Raises:
        InvalidInputError: If value names no session type
    """
    if isinstance(value, SessionType):
        return value
    try:
        return SessionType(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Session type must be one of {[t.value for t in SessionType]}")


def parse_non_negative_int(value: Any, label: str) -> int:
    """
    Coerce an int or a digit string (e.g. from a URL path) to int.

    Raises:
        InvalidInputError: If value isn't a non-negative integer
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidInputError(f"{label} must be a non-negative integer")
    try:
        number = int(value)
    except ValueError:
        raise InvalidInputError(f"{label} must be a non-negative integer")
    if number < 0:
        raise InvalidInputError(f"{label} must be a non-negative integer")
    return number
