"""Registration service: atomic seat booking for conferences."""
import logging
from typing import Optional

from conference_central.models.conference import Conference
from conference_central.models.key import EntityKey
from conference_central.services.datastore import Transaction, get_store
from conference_central.services.profile_service import get_or_build_profile
from conference_central.utils.results import Outcome, TxResult

logger = logging.getLogger(__name__)


def register_for_conference(websafe_conference_key: str, user_id: str,
                            email: Optional[str] = None) -> TxResult[bool]:
    """
    Register a user for a conference, taking one seat.

    Args:
        websafe_conference_key: Conference to register for
        user_id: Caller identity; the profile is created if it doesn't exist
        email: Caller e-mail, used only when the profile is created

    Returns:
        TxResult with outcome
        - OK (value True) on success
        - CONFERENCE_NOT_FOUND if the conference doesn't exist
        - ALREADY_REGISTERED if the user already attends (no seat change)
        - NO_SEATS_AVAILABLE if the conference is full

    Raises:
        InvalidInputError: If the key is malformed
        TransactionFailedError: If the transaction kept conflicting

    Behavior:
        - Conference and profile are read and written in one transaction
        - Seat count and attend list change together or not at all
    """
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    websafe_key = conference_key.urlsafe()

    def work(txn: Transaction) -> TxResult[bool]:
        conference = txn.get(conference_key)
        if conference is None:
            return TxResult.failure(
                Outcome.CONFERENCE_NOT_FOUND,
                f"No Conference found with key: {websafe_conference_key}"
            )

        profile = get_or_build_profile(txn, user_id, email)
        if profile.is_attending(websafe_key):
            return TxResult.failure(
                Outcome.ALREADY_REGISTERED,
                "You have already registered for this conference"
            )
        if conference.seats_available <= 0:
            return TxResult.failure(Outcome.NO_SEATS_AVAILABLE, "There are no seats available.")

        profile.add_to_conference_keys_to_attend(websafe_key)
        conference.book_seats(1)
        txn.put_multi([profile, conference])
        return TxResult.success(True)

    result = get_store().transact(work)
    if result.ok:
        logger.info(f"User {user_id} registered for conference {conference_key}")
    return result


def unregister_from_conference(websafe_conference_key: str, user_id: str) -> TxResult[bool]:
    """
    Unregister a user from a conference, giving the seat back.

    Returns:
        TxResult with outcome
        - OK (value True) on success
        - CONFERENCE_NOT_FOUND if the conference doesn't exist
        - NOT_REGISTERED if the user doesn't attend

    Behavior:
        - The seat is returned without capping at max_attendees
    """
    conference_key = EntityKey.from_urlsafe(websafe_conference_key, expected_kind=Conference.KIND)
    websafe_key = conference_key.urlsafe()

    def work(txn: Transaction) -> TxResult[bool]:
        conference = txn.get(conference_key)
        if conference is None:
            return TxResult.failure(
                Outcome.CONFERENCE_NOT_FOUND,
                f"No Conference found with key: {websafe_conference_key}"
            )

        profile = get_or_build_profile(txn, user_id)
        if not profile.is_attending(websafe_key):
            return TxResult.failure(Outcome.NOT_REGISTERED, "You are not registered for this conference")

        profile.unregister_from_conference(websafe_key)
        conference.give_back_seats(1)
        txn.put_multi([profile, conference])
        return TxResult.success(True)

    result = get_store().transact(work)
    if result.ok:
        logger.info(f"User {user_id} unregistered from conference {conference_key}")
    return result
