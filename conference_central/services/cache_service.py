"""Process-wide announcement cache (single-key get/put, no expiry)."""
import logging
from threading import Lock
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# One global slot each; not partitioned per conference or speaker.
FEATURED_SPEAKER_KEY = "FEATURED_SPEAKER"
ANNOUNCEMENTS_KEY = "RECENT_ANNOUNCEMENTS"


class AnnouncementCache:
    """Thread-safe string cache. Last write wins."""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
        logger.debug(f"Cache put {key}")

    def delete(self, key: str) -> bool:
        """Remove key; returns False if it wasn't cached."""
        with self._lock:
            return self._values.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._values.clear()


_cache = AnnouncementCache()


def get_cache() -> AnnouncementCache:
    return _cache
