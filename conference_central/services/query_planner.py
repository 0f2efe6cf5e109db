"""Session queries shaped to the one-inequality-field restriction of the store.

The store accepts inequality filters on a single property per query. Each
query here keeps to that:

- date range: both bounds are on start_date
- date and max duration: equality on start_date, inequality on duration
- not of type, before time: "type != X" is rewritten as an IN filter over the
  remaining types, leaving start_time as the only inequality
"""
from datetime import date
from typing import List, Union

from conference_central.models.session import Session, SessionType
from conference_central.services.datastore import Query, get_store
from conference_central.utils.date_utils import parse_date, to_time_integer
from conference_central.utils.validation import parse_non_negative_int, parse_session_type


def build_sessions_by_dates_query(date_from: Union[str, date], date_to: Union[str, date]) -> Query:
    return (
        get_store().query(Session.KIND)
        .filter("start_date", ">=", parse_date(date_from))
        .filter("start_date", "<=", parse_date(date_to))
        .order("start_date")
    )


def get_sessions_by_dates(date_from: Union[str, date], date_to: Union[str, date]) -> List[Session]:
    """
    Sessions starting between two dates, inclusive.

    Returns:
        List[Session]: ordered by start date ascending
    """
    return build_sessions_by_dates_query(date_from, date_to).fetch()


def build_sessions_by_date_and_duration_query(session_date: Union[str, date],
                                              max_duration: Union[int, str]) -> Query:
    """
    Raises:
        InvalidInputError: If the date or max_duration is malformed
    """
    max_duration = parse_non_negative_int(max_duration, "Max duration")
    return (
        get_store().query(Session.KIND)
        .filter("start_date", "=", parse_date(session_date))
        .filter("duration", "<=", max_duration)
        .order("duration")
    )


def get_sessions_by_date_and_duration(session_date: Union[str, date],
                                      max_duration: Union[int, str]) -> List[Session]:
    """
    Sessions on a date lasting at most max_duration minutes.

    Returns:
        List[Session]: ordered by duration ascending
    """
    return build_sessions_by_date_and_duration_query(session_date, max_duration).fetch()


def other_session_types(excluded_type: Union[SessionType, str]) -> List[SessionType]:
    """All session types except excluded_type, in declaration order."""
    excluded_type = parse_session_type(excluded_type)
    return [session_type for session_type in SessionType if session_type is not excluded_type]


def build_sessions_not_of_type_before_time_query(excluded_type: Union[SessionType, str],
                                                 before_time: str) -> Query:
    """
    Raises:
        InvalidInputError: If excluded_type is unknown or before_time isn't a
            valid "HH:MM"
    """
    return (
        get_store().query(Session.KIND)
        .filter("session_type", "IN", other_session_types(excluded_type))
        .filter("start_time", "<", to_time_integer(before_time))
    )


def get_sessions_not_of_type_before_time(excluded_type: Union[SessionType, str],
                                         before_time: str) -> List[Session]:
    """
    Sessions not of excluded_type that start before before_time.

    Args:
        excluded_type: Session type to leave out, as SessionType or its value
        before_time: "HH:MM", exclusive upper bound on the start time

    Returns:
        List[Session]: no ordering guarantee

    Raises:
        InvalidInputError: If excluded_type is unknown or before_time isn't a
            valid "HH:MM"
    """
    return build_sessions_not_of_type_before_time_query(excluded_type, before_time).fetch()
