"""Profile lookup and lazy creation."""
import logging
from typing import Optional

from conference_central.models.forms import ProfileForm
from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile, TeeShirtSize
from conference_central.services.datastore import Transaction, get_store
from conference_central.utils.exceptions import InvalidInputError
from conference_central.utils.validation import validate_display_name

logger = logging.getLogger(__name__)


def profile_key(user_id: str) -> EntityKey:
    return EntityKey.create(Profile.KIND, user_id)


def default_display_name(email: Optional[str]) -> Optional[str]:
    """
    Derive a display name from an e-mail address.

    Example: "jane.doe@example.com" → "jane.doe"
    """
    if not email:
        return None
    return email.split("@", 1)[0]


def get_profile(user_id: str) -> Optional[Profile]:
    """
    Load a profile.

    Returns:
        Profile, or None if the user never saved one
    """
    return get_store().get(profile_key(user_id))


def get_or_build_profile(txn: Transaction, user_id: str, email: Optional[str] = None) -> Profile:
    """
    Load the user's profile inside txn, or build a new unsaved one.

    The caller saves the profile together with whatever else it writes.
    """
    profile = txn.get(profile_key(user_id))
    if profile is None:
        profile = Profile(
            user_id=user_id,
            display_name=default_display_name(email),
            main_email=email,
            tee_shirt_size=TeeShirtSize.NOT_SPECIFIED,
        )
    return profile


def save_profile(user_id: str, email: Optional[str], form: ProfileForm) -> Profile:
    """
    Create or update the user's profile from a form.

    Raises:
        InvalidInputError: If the display name is invalid
    """
    if form.display_name is not None:
        is_valid, error_msg = validate_display_name(form.display_name)
        if not is_valid:
            raise InvalidInputError(error_msg)

    def work(txn: Transaction) -> Profile:
        profile = get_or_build_profile(txn, user_id, email)
        profile.update(form.display_name, form.tee_shirt_size)
        txn.put(profile)
        return profile

    profile = get_store().transact(work)
    logger.info(f"Saved profile for user {user_id}")
    return profile
