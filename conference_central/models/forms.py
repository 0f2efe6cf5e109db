"""Caller-supplied input forms."""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Union

from conference_central.models.profile import TeeShirtSize
from conference_central.models.session import SessionType
from conference_central.utils.date_utils import to_time_integer


@dataclass
class SessionForm:
    """Input for creating a session; start_time is an "HH:MM" string."""

    session_name: str
    speaker_keys: List[str] = field(default_factory=list)
    start_date: Optional[Union[str, date]] = None
    duration: int = 0
    start_time: Optional[str] = None
    location: Optional[str] = None
    session_type: Optional[SessionType] = None
    highlights: List[str] = field(default_factory=list)

    def get_start_time(self) -> Optional[int]:
        """
        Start time as HH*100+MM.

        Raises:
            InvalidInputError: If start_time is malformed
        """
        if self.start_time is None:
            return None
        return to_time_integer(self.start_time)


@dataclass
class ConferenceForm:
    """Input for creating or updating a conference. None means "leave as is"."""

    name: Optional[str] = None
    description: Optional[str] = None
    topics: Optional[List[str]] = None
    city: Optional[str] = None
    start_date: Optional[Union[str, date]] = None
    end_date: Optional[Union[str, date]] = None
    max_attendees: Optional[int] = None


@dataclass
class ProfileForm:
    display_name: Optional[str] = None
    tee_shirt_size: Optional[TeeShirtSize] = None


@dataclass
class ConferenceQueryFilter:
    """One filter of a conference query, e.g. ("CITY", "EQ", "London")."""

    field: str
    operator: str
    value: Any
