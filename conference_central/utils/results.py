"""Tagged results returned from transactional work."""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from conference_central.utils.exceptions import (
    ConferenceNotFoundError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SessionNotFoundError,
)

T = TypeVar("T")


class Outcome(Enum):
    """Result tags for operations that run inside a transaction."""

    OK = "ok"
    ALREADY_REGISTERED = "already_registered"
    NO_SEATS_AVAILABLE = "no_seats_available"
    NOT_REGISTERED = "not_registered"
    CONFERENCE_NOT_FOUND = "conference_not_found"
    SESSION_NOT_FOUND = "session_not_found"
    FORBIDDEN = "forbidden"
    INVALID_SPEAKERS = "invalid_speakers"


_ERRORS = {
    Outcome.ALREADY_REGISTERED: ConflictError,
    Outcome.NO_SEATS_AVAILABLE: ConflictError,
    Outcome.NOT_REGISTERED: ConflictError,
    Outcome.INVALID_SPEAKERS: ConflictError,
    Outcome.CONFERENCE_NOT_FOUND: ConferenceNotFoundError,
    Outcome.SESSION_NOT_FOUND: SessionNotFoundError,
    Outcome.FORBIDDEN: ForbiddenError,
}


@dataclass(frozen=True)
class TxResult(Generic[T]):
    """
    Either a value or a domain error tag.

    A transaction closure cannot raise a domain error without aborting the
    transaction, so it returns one of these instead. The caller converts it
    into an exception with get_result() once the transaction is over.
    """

    outcome: Outcome
    value: Optional[T] = None
    message: str = ""

    @classmethod
    def success(cls, value: Optional[T] = None) -> "TxResult[T]":
        return cls(Outcome.OK, value)

    @classmethod
    def failure(cls, outcome: Outcome, message: str) -> "TxResult[T]":
        if outcome is Outcome.OK:
            raise ValueError("failure() requires an error outcome")
        return cls(outcome, None, message)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    def get_result(self) -> Optional[T]:
        """
        Return the value, or raise the error matching the outcome.

        Raises:
            NotFoundError, ForbiddenError or ConflictError subclasses
        """
        if self.ok:
            return self.value
        error_cls = _ERRORS.get(self.outcome, NotFoundError)
        raise error_cls(self.message or self.outcome.value)
