"""Session data model."""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from conference_central.models.key import EntityKey
from conference_central.utils.date_utils import format_date, format_time_integer, parse_date


class SessionType(Enum):
    WORKSHOP = "WORKSHOP"
    LECTURE = "LECTURE"
    KEYNOTE = "KEYNOTE"
    OTHERS = "OTHERS"


@dataclass
class Session:
    """Conference session, stored as a child of its conference."""

    KIND: ClassVar[str] = "Session"

    conference_key: EntityKey
    id: Optional[int]
    name: str
    speaker_keys: List[str] = field(default_factory=list)
    start_date: Optional[date] = None
    duration: int = 0
    start_time: Optional[int] = None
    location: Optional[str] = None
    session_type: Optional[SessionType] = None
    highlights: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate session data after initialization."""
        if self.conference_key.kind != "Conference":
            raise ValueError(f"Session parent must be a Conference key, got: {self.conference_key.kind}")

        if not self.name or not self.name.strip():
            raise ValueError("Name cannot be empty")

        if not isinstance(self.duration, int) or self.duration < 0:
            raise ValueError("Duration must be a non-negative integer")

        if self.start_time is not None:
            hours, minutes = divmod(self.start_time, 100)
            if self.start_time < 0 or hours > 23 or minutes > 59:
                raise ValueError(f"Start time must be encoded as HH*100+MM, got: {self.start_time}")

    @property
    def key(self) -> EntityKey:
        if self.id is None:
            raise ValueError("Session has no id yet")
        return EntityKey.create(self.KIND, self.id, parent=self.conference_key)

    @property
    def websafe_key(self) -> str:
        return self.key.urlsafe()

    @property
    def start_time_display(self) -> Optional[str]:
        return format_time_integer(self.start_time)

    def has_speaker(self, websafe_speaker_key: str) -> bool:
        return websafe_speaker_key in self.speaker_keys

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "speaker_keys": list(self.speaker_keys),
            "start_date": format_date(self.start_date),
            "duration": self.duration,
            "start_time": self.start_time,
            "location": self.location,
            "session_type": self.session_type.value if self.session_type else None,
            "highlights": list(self.highlights),
        }

    @classmethod
    def from_dict(cls, key: EntityKey, data: Dict[str, Any]) -> "Session":
        session_type = data.get("session_type")
        return cls(
            conference_key=key.parent,
            id=key.id,
            name=data["name"],
            speaker_keys=list(data.get("speaker_keys") or []),
            start_date=parse_date(data.get("start_date")),
            duration=data.get("duration", 0),
            start_time=data.get("start_time"),
            location=data.get("location"),
            session_type=SessionType(session_type) if session_type else None,
            highlights=list(data.get("highlights") or []),
        )
