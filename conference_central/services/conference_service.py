"""Conference management, conference queries and the sold-out announcement."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from conference_central.models.conference import Conference
from conference_central.models.forms import ConferenceForm, ConferenceQueryFilter
from conference_central.models.key import EntityKey
from conference_central.services.cache_service import ANNOUNCEMENTS_KEY, get_cache
from conference_central.services.datastore import Transaction, get_store
from conference_central.services.profile_service import get_or_build_profile, get_profile, profile_key
from conference_central.services.task_queue import SEND_CONFIRMATION_EMAIL, get_queue
from conference_central.utils.date_utils import parse_date
from conference_central.utils.exceptions import (
    ConferenceNotFoundError,
    InvalidInputError,
    ProfileNotFoundError,
)
from conference_central.utils.results import Outcome, TxResult
from conference_central.utils.validation import validate_conference_form

logger = logging.getLogger(__name__)

ANNOUNCEMENT_TPL = "Last chance to attend! The following conferences are nearly sold out: %s"
NEARLY_SOLD_OUT_SEATS = 5

FIELDS = {
    "CITY": "city",
    "TOPIC": "topics",
    "MONTH": "month",
    "MAX_ATTENDEES": "max_attendees",
}

OPERATORS = {
    "EQ": "=",
    "GT": ">",
    "GTEQ": ">=",
    "LT": "<",
    "LTEQ": "<=",
    "NE": "!=",
}

INTEGER_FIELDS = ("month", "max_attendees")


def _conference_info(conference: Conference) -> str:
    parts = [conference.name]
    if conference.city:
        parts.append(conference.city)
    if conference.start_date:
        parts.append(conference.start_date.isoformat())
    return ", ".join(parts)


def create_conference(user_id: str, email: Optional[str], form: ConferenceForm) -> Conference:
    """
    Create a conference organized by the caller.

    Args:
        user_id: Organizer identity
        email: Organizer e-mail; receives the confirmation
        form: Conference details; name is required

    Returns:
        Conference: the saved conference, seats_available == max_attendees

    Raises:
        InvalidInputError: If the form is invalid

    Behavior:
        - The organizer's profile is created if missing, in the same transaction
        - A confirmation e-mail task is queued, delivered only after commit
    """
    validate_conference_form(form, creating=True)

    # Allocated before the transaction so retries reuse the id
    conference_key = get_store().allocate_id(Conference.KIND, parent=profile_key(user_id))

    def work(txn: Transaction) -> Conference:
        profile = get_or_build_profile(txn, user_id, email)
        conference = Conference(
            id=conference_key.id,
            organizer_user_id=user_id,
            name=form.name,
            description=form.description,
            topics=list(form.topics or []),
            city=form.city,
            start_date=parse_date(form.start_date),
            end_date=parse_date(form.end_date),
            max_attendees=form.max_attendees or 0,
        )
        txn.put_multi([conference, profile])

        if profile.main_email:
            get_queue().enqueue(
                SEND_CONFIRMATION_EMAIL,
                {"email": profile.main_email, "conference_info": _conference_info(conference)},
                transaction=txn,
            )
        else:
            logger.warning(f"No e-mail for user {user_id}, skipping conference confirmation")
        return conference

    conference = get_store().transact(work)
    logger.info(f"Created conference {conference.key} for organizer {user_id}")
    return conference


def update_conference(user_id: str, websafe_conference_key: str, form: ConferenceForm) -> TxResult[Conference]:
    """
    Update a conference; only its organizer may do so.

    Returns:
        TxResult with outcome
        - OK with the updated Conference
        - CONFERENCE_NOT_FOUND if the conference doesn't exist
        - FORBIDDEN if the caller isn't the organizer

    Raises:
        InvalidInputError: If the form is invalid, or max_attendees would drop
            below the seats already taken
    """
    validate_conference_form(form, creating=False)
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)

    def work(txn: Transaction) -> TxResult[Conference]:
        conference = txn.get(conference_key)
        if conference is None:
            return TxResult.failure(
                Outcome.CONFERENCE_NOT_FOUND,
                f"No Conference found with the key: {websafe_conference_key}"
            )

        profile = txn.get(profile_key(user_id))
        if profile is None or conference.organizer_user_id != user_id:
            return TxResult.failure(Outcome.FORBIDDEN, "Only the owner can update the conference.")

        try:
            conference.update_with_form(form)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        txn.put(conference)
        return TxResult.success(conference)

    return get_store().transact(work)


def get_conference(websafe_conference_key: str) -> Conference:
    """
    Raises:
        ConferenceNotFoundError: If the conference doesn't exist
    """
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    conference = get_store().get(conference_key)
    if conference is None:
        raise ConferenceNotFoundError(f"No Conference found with key: {websafe_conference_key}")
    return conference


def get_conferences_created(user_id: str) -> List[Conference]:
    """Conferences organized by the user, ordered by name."""
    return get_store().query(Conference.KIND).ancestor(profile_key(user_id)).order("name").fetch()


def get_conferences_to_attend(user_id: str) -> List[Conference]:
    """
    Conferences the user registered for.

    Raises:
        ProfileNotFoundError: If the user has no profile
    """
    profile = get_profile(user_id)
    if profile is None:
        raise ProfileNotFoundError("Profile doesn't exist.")

    keys = [EntityKey.from_urlsafe(k) for k in profile.conference_keys_to_attend]
    return list(get_store().get_multi(keys).values())


def _format_filters(filters: List[ConferenceQueryFilter]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Map caller filters to store properties and operators.

    Returns:
        (inequality_field, formatted_filters)

    Raises:
        InvalidInputError: On unknown fields/operators, non-numeric values for
            numeric fields, or inequalities on more than one field
    """
    formatted_filters = []
    inequality_field = None

    for query_filter in filters:
        try:
            field = FIELDS[query_filter.field]
            operator = OPERATORS[query_filter.operator]
        except KeyError:
            raise InvalidInputError("Filter contains invalid field or operator.")

        value = query_filter.value
        if field in INTEGER_FIELDS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise InvalidInputError(f"Filter value for {query_filter.field} must be an integer")

        # Every operation except "=" is an inequality
        if operator != "=":
            if inequality_field and inequality_field != field:
                raise InvalidInputError("Inequality filter is allowed on only one field.")
            inequality_field = field

        formatted_filters.append({"field": field, "operator": operator, "value": value})

    return inequality_field, formatted_filters


def query_conferences(filters: List[ConferenceQueryFilter]) -> List[Conference]:
    """
    Conferences matching all filters.

    Returns:
        List[Conference]: ordered by the inequality field (if any), then name
    """
    inequality_field, formatted_filters = _format_filters(filters)

    query = get_store().query(Conference.KIND)
    if inequality_field:
        query = query.order(inequality_field)
    query = query.order("name")

    for query_filter in formatted_filters:
        query = query.filter(query_filter["field"], query_filter["operator"], query_filter["value"])
    return query.fetch()


def cache_announcement() -> str:
    """
    Store the nearly sold out announcement in the cache.

    Returns:
        The announcement, or "" when no conference is nearly sold out (the
        cached announcement is removed then)
    """
    conferences = (
        get_store().query(Conference.KIND)
        .filter("seats_available", "<=", NEARLY_SOLD_OUT_SEATS)
        .filter("seats_available", ">", 0)
        .fetch()
    )

    if conferences:
        announcement = ANNOUNCEMENT_TPL % ", ".join(conference.name for conference in conferences)
        get_cache().put(ANNOUNCEMENTS_KEY, announcement)
        return announcement

    get_cache().delete(ANNOUNCEMENTS_KEY)
    return ""


def get_announcement() -> Optional[str]:
    """Cached announcement, or None if there is none."""
    return get_cache().get(ANNOUNCEMENTS_KEY)
