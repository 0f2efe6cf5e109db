"""Session management: creation, speaker backlinks, listing and wishlist."""
import logging
from typing import List, Optional, Union

from conference_central.models.conference import Conference
from conference_central.models.forms import SessionForm
from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile
from conference_central.models.session import Session, SessionType
from conference_central.services.datastore import Transaction, get_store
from conference_central.services.featured_speaker_service import detect_featured_speaker
from conference_central.services.profile_service import get_or_build_profile, get_profile
from conference_central.utils.date_utils import parse_date
from conference_central.utils.exceptions import InvalidInputError, ProfileNotFoundError, SessionNotFoundError
from conference_central.utils.results import Outcome, TxResult
from conference_central.utils.validation import dedupe_keys, parse_session_type, validate_session_form

logger = logging.getLogger(__name__)


def _resolvable_speaker_keys(speaker_keys: List[str]) -> List[EntityKey]:
    """Decode canonical speaker keys, skipping ones that can't name a profile."""
    keys = []
    for websafe_key in dedupe_keys(speaker_keys):
        try:
            keys.append(EntityKey.from_urlsafe(websafe_key, expected_kind=Profile.KIND))
        except InvalidInputError:
            logger.warning(f"Ignoring malformed speaker key: {websafe_key}")
    return keys


def _announce_featured_speakers(websafe_conference_key: str, speaker_keys: List[str]) -> None:
    conference_sessions = get_conference_sessions(websafe_conference_key)
    for speaker_key in speaker_keys:
        detect_featured_speaker(conference_sessions, speaker_key)


def create_session(websafe_conference_key: str, user_id: str, form: SessionForm) -> TxResult[Session]:
    """
    Create a session under a conference.

    Args:
        websafe_conference_key: Parent conference
        user_id: Caller identity; must be the conference organizer
        form: Session details; start_time as "HH:MM"

    Returns:
        TxResult with outcome
        - OK with the new Session
        - CONFERENCE_NOT_FOUND if the conference doesn't exist
        - FORBIDDEN if the caller isn't the organizer
        - INVALID_SPEAKERS if none of the speaker keys resolve to a profile

    Raises:
        InvalidInputError: If the form or the conference key is malformed

    Behavior:
        - Succeeds when at least one speaker key resolves; unresolved keys stay
          in the session's speaker list but get no backlink
        - Speaker keys are stored in canonical websafe form
        - Each resolved speaker's profile gets the session key in its
          speaking list, in the same transaction
        - After commit, every submitted speaker key is checked for featured
          speaker status against the conference's sessions
    """
    validate_session_form(form)
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    start_time = form.get_start_time()
    submitted_speaker_keys = [EntityKey.canonical(k) for k in form.speaker_keys]
    speaker_keys = _resolvable_speaker_keys(submitted_speaker_keys)

    # Allocated up front so that retries of the transaction reuse the same id
    session_key = get_store().allocate_id(Session.KIND, parent=conference_key)

    def work(txn: Transaction) -> TxResult[Session]:
        conference = txn.get(conference_key)
        if conference is None:
            return TxResult.failure(
                Outcome.CONFERENCE_NOT_FOUND,
                f"No Conference found with key: {websafe_conference_key}"
            )
        if conference.organizer_user_id != user_id:
            return TxResult.failure(Outcome.FORBIDDEN, "Only the conference organizer can add sessions")

        speakers = txn.get_multi(speaker_keys)
        if not speakers:
            return TxResult.failure(Outcome.INVALID_SPEAKERS, "Invalid Profile Keys")
        if len(speakers) < len(speaker_keys):
            logger.warning(
                f"{len(speaker_keys) - len(speakers)} speaker keys for session {session_key} "
                f"did not resolve and get no backlink"
            )

        session = Session(
            conference_key=conference_key,
            id=session_key.id,
            name=form.session_name,
            speaker_keys=list(submitted_speaker_keys),
            start_date=parse_date(form.start_date),
            duration=form.duration,
            start_time=start_time,
            location=form.location,
            session_type=form.session_type,
            highlights=list(form.highlights or []),
        )
        txn.put(session)

        for speaker in speakers.values():
            speaker.add_session_to_speak(session.websafe_key)
        txn.put_multi(speakers.values())

        txn.on_commit(lambda: _announce_featured_speakers(websafe_conference_key, submitted_speaker_keys))
        return TxResult.success(session)

    result = get_store().transact(work)
    if result.ok:
        logger.info(f"Created session {session_key} in conference {conference_key}")
    return result


def get_session(websafe_session_key: str) -> Session:
    """
    Load one session.

    Raises:
        SessionNotFoundError: If the session doesn't exist
    """
    session_key = EntityKey.from_urlsafe(websafe_session_key, expected_kind=Session.KIND)
    session = get_store().get(session_key)
    if session is None:
        raise SessionNotFoundError(f"No Session found with the key: {websafe_session_key}")
    return session


def get_conference_sessions(websafe_conference_key: str) -> List[Session]:
    """
    All sessions of a conference.

    Returns:
        List[Session]: ordered by name ascending
    """
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    return get_store().query(Session.KIND).ancestor(conference_key).order("name").fetch()


def get_conference_sessions_by_type(websafe_conference_key: str,
                                    session_type: Union[SessionType, str]) -> List[Session]:
    """
    Sessions of a conference with the given type, in no particular order.

    Raises:
        InvalidInputError: If session_type names no session type
    """
    session_type = parse_session_type(session_type)
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    return (
        get_store().query(Session.KIND)
        .ancestor(conference_key)
        .filter("session_type", "=", session_type)
        .fetch()
    )


def get_sessions_by_speaker(websafe_speaker_key: str) -> List[Session]:
    """
    Sessions a speaker is scheduled for, read from the profile's backlinks.

    Raises:
        ProfileNotFoundError: If the speaker profile doesn't exist
    """
    speaker_key = EntityKey.from_urlsafe(websafe_speaker_key, expected_kind=Profile.KIND)
    store = get_store()
    speaker = store.get(speaker_key)
    if speaker is None:
        raise ProfileNotFoundError(f"No Profile found with the key: {websafe_speaker_key}")

    session_keys = [EntityKey.from_urlsafe(k) for k in speaker.session_keys_to_speak]
    return list(store.get_multi(session_keys).values())


def add_session_to_wishlist(user_id: str, websafe_session_key: str,
                            email: Optional[str] = None) -> TxResult[bool]:
    """
    Add a session to the user's wishlist.

    Returns:
        TxResult with outcome
        - OK (value True) on success
        - SESSION_NOT_FOUND if the session doesn't exist

    Behavior:
        - Adding the same session twice keeps both entries
    """
    session_key = EntityKey.from_urlsafe(websafe_session_key, expected_kind=Session.KIND)

    def work(txn: Transaction) -> TxResult[bool]:
        if txn.get(session_key) is None:
            return TxResult.failure(
                Outcome.SESSION_NOT_FOUND,
                f"No Session found with the key: {websafe_session_key}"
            )
        profile = get_or_build_profile(txn, user_id, email)
        profile.add_session_to_wishlist(session_key.urlsafe())
        txn.put(profile)
        return TxResult.success(True)

    return get_store().transact(work)


def get_sessions_in_wishlist(user_id: str) -> List[Session]:
    """
    Sessions in the user's wishlist.

    Returns:
        List[Session]: each session once, in wishlist order; empty if the user
        has no profile
    """
    profile = get_profile(user_id)
    if profile is None:
        return []

    session_keys = [EntityKey.from_urlsafe(k) for k in profile.session_keys_wishlist]
    return list(get_store().get_multi(session_keys).values())

