"""Conference data model."""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar, Dict, List, Optional

from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile
from conference_central.utils.date_utils import format_date, parse_date


@dataclass
class Conference:
    """Conference with seat accounting."""

    KIND: ClassVar[str] = "Conference"

    id: int
    organizer_user_id: str
    name: str
    description: Optional[str] = None
    topics: List[str] = field(default_factory=list)
    city: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    max_attendees: int = 0
    seats_available: Optional[int] = None

    def __post_init__(self):
        """Validate conference data after initialization."""
        if not self.organizer_user_id or not self.organizer_user_id.strip():
            raise ValueError("Organizer user ID cannot be empty")

        if not self.name or not self.name.strip():
            raise ValueError("Name cannot be empty")

        if not isinstance(self.max_attendees, int) or self.max_attendees < 0:
            raise ValueError("Max attendees must be a non-negative integer")

        if self.seats_available is None:
            self.seats_available = self.max_attendees

        if self.seats_available < 0:
            raise ValueError("Seats available cannot be negative")

        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(f"End date ({self.end_date}) cannot be before start date ({self.start_date})")

    @property
    def key(self) -> EntityKey:
        organizer_key = EntityKey.create(Profile.KIND, self.organizer_user_id)
        return EntityKey.create(self.KIND, self.id, parent=organizer_key)

    @property
    def websafe_key(self) -> str:
        return self.key.urlsafe()

    @property
    def month(self) -> int:
        """Month of the start date, 0 when the start date is unknown."""
        return self.start_date.month if self.start_date else 0

    def book_seats(self, number: int) -> None:
        """
        Take seats from the available pool.

        Raises:
            ValueError: If fewer than number seats are available
        """
        if self.seats_available < number:
            raise ValueError("There are no seats available.")
        self.seats_available -= number

    def give_back_seats(self, number: int) -> None:
        # Not capped at max_attendees.
        self.seats_available += number

    def seats_allocated(self) -> int:
        return self.max_attendees - self.seats_available

    def update_with_form(self, form) -> None:
        """
        Apply a ConferenceForm, keeping the number of allocated seats.

        Raises:
            ValueError: If max_attendees would drop below the seats already taken
        """
        if form.name is not None:
            self.name = form.name
        if form.description is not None:
            self.description = form.description
        if form.topics is not None:
            self.topics = list(form.topics)
        if form.city is not None:
            self.city = form.city
        if form.start_date is not None:
            self.start_date = parse_date(form.start_date)
        if form.end_date is not None:
            self.end_date = parse_date(form.end_date)

        if form.max_attendees is not None:
            allocated = self.seats_allocated()
            if form.max_attendees < allocated:
                raise ValueError(
                    f"Max attendees ({form.max_attendees}) cannot be less than "
                    f"seats already allocated ({allocated})"
                )
            self.max_attendees = form.max_attendees
            self.seats_available = form.max_attendees - allocated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organizer_user_id": self.organizer_user_id,
            "name": self.name,
            "description": self.description,
            "topics": list(self.topics),
            "city": self.city,
            "start_date": format_date(self.start_date),
            "end_date": format_date(self.end_date),
            "month": self.month,
            "max_attendees": self.max_attendees,
            "seats_available": self.seats_available,
        }

    @classmethod
    def from_dict(cls, key: EntityKey, data: Dict[str, Any]) -> "Conference":
        return cls(
            id=key.id,
            organizer_user_id=data["organizer_user_id"],
            name=data["name"],
            description=data.get("description"),
            topics=list(data.get("topics") or []),
            city=data.get("city"),
            start_date=parse_date(data.get("start_date")),
            end_date=parse_date(data.get("end_date")),
            max_attendees=data.get("max_attendees", 0),
            seats_available=data.get("seats_available"),
        )
