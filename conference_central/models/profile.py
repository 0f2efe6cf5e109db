"""Profile data model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from conference_central.models.key import EntityKey


class TeeShirtSize(Enum):
    NOT_SPECIFIED = "NOT_SPECIFIED"
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"
    XXXL = "XXXL"


@dataclass
class Profile:
    """A user of the system: attendee, organizer and/or speaker."""

    KIND: ClassVar[str] = "Profile"

    user_id: str
    display_name: Optional[str]
    main_email: Optional[str] = None
    tee_shirt_size: TeeShirtSize = TeeShirtSize.NOT_SPECIFIED
    conference_keys_to_attend: List[str] = field(default_factory=list)
    session_keys_wishlist: List[str] = field(default_factory=list)
    session_keys_to_speak: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate profile data after initialization."""
        if not self.user_id or not self.user_id.strip():
            raise ValueError("User ID cannot be empty")

        if len(set(self.conference_keys_to_attend)) != len(self.conference_keys_to_attend):
            raise ValueError("Conference keys to attend must not contain duplicates")

    @property
    def key(self) -> EntityKey:
        return EntityKey.create(self.KIND, self.user_id)

    @property
    def websafe_key(self) -> str:
        return self.key.urlsafe()

    def update(self, display_name: Optional[str], tee_shirt_size: Optional[TeeShirtSize]) -> None:
        """Update the editable fields, ignoring the ones left as None."""
        if display_name is not None:
            self.display_name = display_name
        if tee_shirt_size is not None:
            self.tee_shirt_size = tee_shirt_size

    def is_attending(self, websafe_conference_key: str) -> bool:
        return websafe_conference_key in self.conference_keys_to_attend

    def add_to_conference_keys_to_attend(self, websafe_conference_key: str) -> None:
        """
        Add a conference to the attend list.

        Raises:
            ValueError: If the profile already attends the conference
        """
        if self.is_attending(websafe_conference_key):
            raise ValueError(f"Already attending conference: {websafe_conference_key}")
        self.conference_keys_to_attend.append(websafe_conference_key)

    def unregister_from_conference(self, websafe_conference_key: str) -> None:
        """
        Remove a conference from the attend list.

        Raises:
            ValueError: If the profile does not attend the conference
        """
        if not self.is_attending(websafe_conference_key):
            raise ValueError(f"Not attending conference: {websafe_conference_key}")
        self.conference_keys_to_attend.remove(websafe_conference_key)

    def add_session_to_speak(self, websafe_session_key: str) -> None:
        if websafe_session_key not in self.session_keys_to_speak:
            self.session_keys_to_speak.append(websafe_session_key)

    def add_session_to_wishlist(self, websafe_session_key: str) -> None:
        # Repeated adds are kept; the wishlist is a list, not a set.
        self.session_keys_wishlist.append(websafe_session_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_name": self.display_name,
            "main_email": self.main_email,
            "tee_shirt_size": self.tee_shirt_size.value,
            "conference_keys_to_attend": list(self.conference_keys_to_attend),
            "session_keys_wishlist": list(self.session_keys_wishlist),
            "session_keys_to_speak": list(self.session_keys_to_speak),
        }

    @classmethod
    def from_dict(cls, key: EntityKey, data: Dict[str, Any]) -> "Profile":
        return cls(
            user_id=key.id,
            display_name=data.get("display_name"),
            main_email=data.get("main_email"),
            tee_shirt_size=TeeShirtSize(data.get("tee_shirt_size", TeeShirtSize.NOT_SPECIFIED.value)),
            conference_keys_to_attend=list(data.get("conference_keys_to_attend", [])),
            session_keys_wishlist=list(data.get("session_keys_wishlist", [])),
            session_keys_to_speak=list(data.get("session_keys_to_speak", [])),
        )
