"""Custom exception classes."""


class ConferenceCentralError(Exception):
    """Base class for domain errors surfaced to callers."""
    pass


class UnauthenticatedError(ConferenceCentralError):
    """Raised when an operation requires a caller identity and none is given."""
    pass


class ForbiddenError(ConferenceCentralError):
    """Raised when the caller lacks permission for the operation."""
    pass


class NotFoundError(ConferenceCentralError):
    """Raised when a referenced entity doesn't exist."""
    pass


class ConferenceNotFoundError(NotFoundError):
    """Raised when conference key doesn't resolve."""
    pass


class SessionNotFoundError(NotFoundError):
    """Raised when session key doesn't resolve."""
    pass


class ProfileNotFoundError(NotFoundError):
    """Raised when profile doesn't exist."""
    pass


class ConflictError(ConferenceCentralError):
    """Raised when an operation would violate a domain invariant."""
    pass


class InvalidInputError(ConferenceCentralError, ValueError):
    """Raised when caller input is malformed (time strings, keys, filters)."""
    pass


class QueryError(Exception):
    """Raised when a query shape is not supported by the datastore."""
    pass


class TransactionFailedError(Exception):
    """Raised when a transaction could not commit after all retries."""
    pass
