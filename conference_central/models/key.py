"""Entity key model and websafe encoding."""
import base64
import binascii
import json
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from conference_central.utils.exceptions import InvalidInputError

KeyId = Union[int, str]


def _valid_id(key_id) -> bool:
    if isinstance(key_id, bool):
        return False
    if isinstance(key_id, int):
        return key_id > 0
    return isinstance(key_id, str) and bool(key_id)


@dataclass(frozen=True)
class EntityKey:
    """
    Full path of an entity: ancestor (kind, id) pairs followed by its own.

    Keys are values; entities reference each other only through keys (or
    their websafe strings), never by embedding the other entity.
    """

    path: Tuple[Tuple[str, KeyId], ...]

    def __post_init__(self):
        """Validate key path after initialization."""
        if not self.path:
            raise ValueError("Key path cannot be empty")

        for kind, key_id in self.path:
            if not isinstance(kind, str) or not kind:
                raise ValueError(f"Key kind must be a non-empty string: {kind!r}")
            if not _valid_id(key_id):
                raise ValueError(f"Key id must be a positive int or non-empty string: {key_id!r}")

    @classmethod
    def create(cls, kind: str, key_id: KeyId, parent: Optional["EntityKey"] = None) -> "EntityKey":
        prefix = parent.path if parent is not None else ()
        return cls(prefix + ((kind, key_id),))

    @property
    def kind(self) -> str:
        return self.path[-1][0]

    @property
    def id(self) -> KeyId:
        return self.path[-1][1]

    @property
    def parent(self) -> Optional["EntityKey"]:
        if len(self.path) == 1:
            return None
        return EntityKey(self.path[:-1])

    def is_ancestor_of(self, other: "EntityKey") -> bool:
        """True when other is a strict descendant of this key."""
        depth = len(self.path)
        return len(other.path) > depth and other.path[:depth] == self.path

    def urlsafe(self) -> str:
        """Encode the key path as a websafe string."""
        raw = json.dumps([[kind, key_id] for kind, key_id in self.path], separators=(",", ":"))
        return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")

    @classmethod
    def from_urlsafe(cls, websafe_key: str, expected_kind: Optional[str] = None) -> "EntityKey":
        """
        Decode a websafe key string.

        Args:
            websafe_key: String produced by urlsafe()
            expected_kind: If given, the decoded key must be of this kind

        Raises:
            InvalidInputError: If the string is not a valid websafe key, or the
                key is of another kind
        """
        if not isinstance(websafe_key, str) or not websafe_key:
            raise InvalidInputError(f"Invalid websafe key: {websafe_key!r}")

        padded = websafe_key + "=" * (-len(websafe_key) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            pairs = json.loads(raw.decode("utf-8"))
            key = cls(tuple((kind, key_id) for kind, key_id in pairs))
        except (binascii.Error, UnicodeError, ValueError, TypeError) as e:
            raise InvalidInputError(f"Invalid websafe key: {websafe_key}") from e

        if expected_kind is not None and key.kind != expected_kind:
            raise InvalidInputError(f"Expected a {expected_kind} key, got a {key.kind} key")
        return key

    @classmethod
    def canonical(cls, websafe_key: str) -> str:
        """
        Normalize a websafe key string, e.g. strip padding.

        Strings that don't decode are returned unchanged.
        """
        try:
            return cls.from_urlsafe(websafe_key).urlsafe()
        except InvalidInputError:
            return websafe_key

    def __str__(self) -> str:
        return "/".join(f"{kind}:{key_id}" for kind, key_id in self.path)
