"""Route table: external method names and paths mapped to core operations.

The transport (HTTP, RPC, CLI) resolves the caller identity and calls
dispatch() or resolve(); this module checks that an identity is present where
one is needed and turns tagged transaction results into raised errors.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from conference_central.services import (
    conference_service,
    featured_speaker_service,
    profile_service,
    query_planner,
    registration_service,
    session_service,
)
from conference_central.utils.exceptions import NotFoundError, UnauthenticatedError
from conference_central.utils.results import Outcome, TxResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    """Caller identity as resolved by the transport."""

    user_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Route:
    name: str
    http_method: str
    path: str
    handler: Callable[..., Any]
    requires_user: bool = False

    def pattern(self) -> "re.Pattern":
        regex = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", self.path)
        return re.compile(f"^{regex}$")


def _get_profile(user: User):
    return profile_service.get_profile(user.user_id)


def _save_profile(user: User, form):
    return profile_service.save_profile(user.user_id, user.email, form)


def _create_conference(user: User, form):
    return conference_service.create_conference(user.user_id, user.email, form)


def _update_conference(user: User, websafe_conference_key: str, form):
    return conference_service.update_conference(user.user_id, websafe_conference_key, form)


def _get_conferences_created(user: User):
    return conference_service.get_conferences_created(user.user_id)


def _get_conferences_to_attend(user: User):
    return conference_service.get_conferences_to_attend(user.user_id)


def _register(user: User, websafe_conference_key: str):
    return registration_service.register_for_conference(websafe_conference_key, user.user_id, user.email)


def _unregister(user: User, websafe_conference_key: str):
    result = registration_service.unregister_from_conference(websafe_conference_key, user.user_id)
    if result.outcome is Outcome.NOT_REGISTERED:
        return False
    return result


def _create_session(user: User, websafe_conference_key: str, form):
    return session_service.create_session(websafe_conference_key, user.user_id, form)


def _add_session_to_wishlist(user: User, websafe_session_key: str):
    return session_service.add_session_to_wishlist(user.user_id, websafe_session_key, user.email)


def _get_sessions_in_wishlist(user: User):
    return session_service.get_sessions_in_wishlist(user.user_id)


_ROUTE_LIST: List[Route] = [
    Route("getProfile", "GET", "profile", _get_profile, requires_user=True),
    Route("saveProfile", "POST", "profile", _save_profile, requires_user=True),
    Route("createConference", "POST", "conference", _create_conference, requires_user=True),
    Route("updateConference", "PUT", "conference/{websafe_conference_key}", _update_conference,
          requires_user=True),
    Route("getConference", "GET", "conference/{websafe_conference_key}", conference_service.get_conference),
    Route("getConferencesCreated", "POST", "getConferencesCreated", _get_conferences_created,
          requires_user=True),
    Route("getConferencesToAttend", "GET", "getConferencesToAttend", _get_conferences_to_attend,
          requires_user=True),
    Route("queryConferences", "POST", "queryConferences", conference_service.query_conferences),
    Route("getAnnouncement", "GET", "announcement", conference_service.get_announcement),
    # Called periodically by the hosting scheduler
    Route("setAnnouncement", "GET", "crons/set_announcement", conference_service.cache_announcement),
    Route("registerForConference", "POST", "conference/{websafe_conference_key}/registration", _register,
          requires_user=True),
    Route("unregisterFromConference", "DELETE", "conference/{websafe_conference_key}/registration",
          _unregister, requires_user=True),
    Route("createSession", "POST", "conference/{websafe_conference_key}/session", _create_session,
          requires_user=True),
    Route("getConferenceSessions", "GET", "conference/{websafe_conference_key}/session",
          session_service.get_conference_sessions),
    Route("getConferenceSessionsByType", "GET", "conference/{websafe_conference_key}/session/by-type",
          session_service.get_conference_sessions_by_type),
    Route("getSessionsBySpeaker", "GET", "conference/session/by-speaker",
          session_service.get_sessions_by_speaker),
    Route("addSessionToWishlist", "PUT", "conference/session/{websafe_session_key}/wishlist",
          _add_session_to_wishlist, requires_user=True),
    Route("getSessionsInWishlist", "GET", "conference/session/wishlist", _get_sessions_in_wishlist,
          requires_user=True),
    Route("getSessionsByDates", "GET", "conference/session/by-dates/{date_from}/{date_to}",
          query_planner.get_sessions_by_dates),
    Route("getSessionsByDateAndDuration", "GET",
          "conference/session/by-date-duration/{session_date}/{max_duration}",
          query_planner.get_sessions_by_date_and_duration),
    Route("getSessionsNotOfTypeAndUpToTime", "GET",
          "conference/session/not-type-time/{excluded_type}/{before_time}",
          query_planner.get_sessions_not_of_type_before_time),
    Route("getFeaturedSpeaker", "GET", "featured-speaker", featured_speaker_service.get_featured_speaker),
]

ROUTES: Dict[str, Route] = {route.name: route for route in _ROUTE_LIST}


def dispatch(name: str, user: Optional[User] = None, **params: Any) -> Any:
    """
    Call the operation registered under name.

    Args:
        name: Method name, e.g. "registerForConference"
        user: Caller identity, or None when unauthenticated
        params: Operation arguments

    Returns:
        The operation's result; tagged results are unwrapped

    Raises:
        NotFoundError: If no route has that name, or the operation reports a
            missing entity
        UnauthenticatedError: If the route needs a caller and user is None
        ForbiddenError, ConflictError, InvalidInputError: From the operation
    """
    route = ROUTES.get(name)
    if route is None:
        raise NotFoundError(f"Unknown method: {name}")

    if route.requires_user:
        if user is None:
            raise UnauthenticatedError("Authorization required")
        result = route.handler(user, **params)
    else:
        result = route.handler(**params)

    if isinstance(result, TxResult):
        return result.get_result()
    return result


def resolve(http_method: str, path: str) -> Tuple[Route, Dict[str, str]]:
    """
    Find the route for an HTTP method and path.

    Returns:
        (route, path_params)

    Raises:
        NotFoundError: If nothing matches
    """
    path = path.strip("/")
    for route in _ROUTE_LIST:
        if route.http_method != http_method.upper():
            continue
        match = route.pattern().match(path)
        if match:
            return route, match.groupdict()
    raise NotFoundError(f"No route for {http_method} {path}")
