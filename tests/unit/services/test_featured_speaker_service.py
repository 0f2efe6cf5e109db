"""Unit tests for featured_speaker_service."""
import pytest

from conference_central.models.key import EntityKey
from conference_central.models.session import Session
from conference_central.services.cache_service import FEATURED_SPEAKER_KEY, get_cache
from conference_central.services.featured_speaker_service import (
    build_featured_speaker_announcement,
    detect_featured_speaker,
    get_featured_speaker,
)


@pytest.fixture
def conference_key():
    return EntityKey.create("Conference", 1, parent=EntityKey.create("Profile", "0000"))


@pytest.fixture
def make_session(conference_key):
    counter = iter(range(1, 100))

    def make(name, speaker_keys):
        return Session(conference_key=conference_key, id=next(counter), name=name, speaker_keys=speaker_keys)
    return make


class TestBuildAnnouncement:
    """Test the announcement text."""

    def test_format(self, make_session):
        sessions = [make_session("S1", []), make_session("S2", [])]

        text = build_featured_speaker_announcement("Jane", sessions)

        assert text == "Featured Speaker: Jane will be in sessions: S1\nS2\n"


class TestDetectFeaturedSpeaker:
    """Test detect_featured_speaker function."""

    def test_two_sessions_publish(self, store, drupal_speaker, make_session):
        """Test a speaker with two sessions becomes the featured speaker."""
        key = drupal_speaker.websafe_key
        sessions = [make_session("S1", [key]), make_session("Other", []), make_session("S2", [key, "x"])]

        announcement = detect_featured_speaker(sessions, key)

        assert announcement == "Featured Speaker: Drupal Speaker will be in sessions: S1\nS2\n"
        assert get_featured_speaker() == announcement

    @pytest.mark.parametrize("count", [0, 1])
    def test_fewer_than_two_sessions_publish_nothing(self, store, drupal_speaker, make_session, count):
        key = drupal_speaker.websafe_key
        sessions = [make_session(f"S{i}", [key]) for i in range(count)]

        assert detect_featured_speaker(sessions, key) is None
        assert get_featured_speaker() is None

    def test_existing_announcement_kept_when_below_threshold(self, store, drupal_speaker, make_session):
        """Test a one-session speaker doesn't clear the current announcement."""
        get_cache().put(FEATURED_SPEAKER_KEY, "previous")

        detect_featured_speaker([make_session("S1", [drupal_speaker.websafe_key])], drupal_speaker.websafe_key)

        assert get_featured_speaker() == "previous"

    def test_last_write_wins(self, store, drupal_speaker, medical_speaker, make_session):
        """Test the single global slot holds the latest announcement."""
        drupal = drupal_speaker.websafe_key
        medical = medical_speaker.websafe_key
        sessions = [make_session("D1", [drupal]), make_session("D2", [drupal]),
                    make_session("M1", [medical]), make_session("M2", [medical])]

        detect_featured_speaker(sessions, drupal)
        detect_featured_speaker(sessions, medical)

        assert get_featured_speaker() == "Featured Speaker: Medical Speaker will be in sessions: M1\nM2\n"

    def test_unknown_speaker_uses_key_as_name(self, store, make_session):
        """Test a speaker key without a profile is announced by its key."""
        ghost = EntityKey.create("Profile", "ghost").urlsafe()
        sessions = [make_session("S1", [ghost]), make_session("S2", [ghost])]

        announcement = detect_featured_speaker(sessions, ghost)

        assert announcement == f"Featured Speaker: {ghost} will be in sessions: S1\nS2\n"

    def test_get_featured_speaker_empty(self, store):
        assert get_featured_speaker() is None
