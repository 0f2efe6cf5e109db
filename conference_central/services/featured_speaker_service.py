"""Featured speaker detection and announcement."""
import logging
from typing import List, Optional

from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile
from conference_central.models.session import Session
from conference_central.services.cache_service import FEATURED_SPEAKER_KEY, get_cache
from conference_central.services.datastore import get_store
from conference_central.utils.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

FEATURED_SPEAKER_MIN_SESSIONS = 2


def _speaker_display_name(websafe_speaker_key: str) -> str:
    try:
        speaker_key = EntityKey.from_urlsafe(websafe_speaker_key, expected_kind=Profile.KIND)
    except InvalidInputError:
        return websafe_speaker_key

    speaker = get_store().get(speaker_key)
    if speaker is None or not speaker.display_name:
        return websafe_speaker_key
    return speaker.display_name


def build_featured_speaker_announcement(speaker_name: str, sessions: List[Session]) -> str:
    """
    Format the announcement text.

    Example:
        "Featured Speaker: Jane will be in sessions: Intro\\nDeep Dive\\n"
    """
    lines = "".join(f"{session.name}\n" for session in sessions)
    return f"Featured Speaker: {speaker_name} will be in sessions: {lines}"


def detect_featured_speaker(conference_sessions: List[Session], websafe_speaker_key: str) -> Optional[str]:
    """
    Publish a featured speaker announcement if the speaker has 2+ sessions.

    A linear scan of the already loaded sessions; one conference has at most
    a few hundred sessions, so no speaker index is kept for this.

    Args:
        conference_sessions: All sessions of one conference
        websafe_speaker_key: Speaker profile key to count

    Returns:
        The published announcement, or None if the speaker has fewer than 2
        sessions (nothing is published then)

    Behavior:
        - Overwrites the single global featured speaker slot (last write wins)
    """
    websafe_speaker_key = EntityKey.canonical(websafe_speaker_key)
    speaker_sessions = [s for s in conference_sessions if s.has_speaker(websafe_speaker_key)]
    if len(speaker_sessions) < FEATURED_SPEAKER_MIN_SESSIONS:
        return None

    announcement = build_featured_speaker_announcement(
        _speaker_display_name(websafe_speaker_key), speaker_sessions
    )
    get_cache().put(FEATURED_SPEAKER_KEY, announcement)
    logger.info(f"Featured speaker announcement published for {websafe_speaker_key}")
    return announcement


def get_featured_speaker() -> Optional[str]:
    """Current featured speaker announcement, or None if there is none."""
    return get_cache().get(FEATURED_SPEAKER_KEY)
