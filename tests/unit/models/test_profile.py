"""Unit tests for Profile model."""
import pytest

from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile, TeeShirtSize


@pytest.fixture
def profile():
    return Profile(user_id="1111", display_name="Medical Speaker", main_email="medical@example.com")


class TestProfileValidation:
    """Test Profile model validation."""

    def test_defaults(self, profile):
        """Test a new profile starts with empty lists."""
        assert profile.tee_shirt_size is TeeShirtSize.NOT_SPECIFIED
        assert profile.conference_keys_to_attend == []
        assert profile.session_keys_wishlist == []
        assert profile.session_keys_to_speak == []

    def test_empty_user_id_raises(self):
        """Test empty user ID raises ValueError."""
        with pytest.raises(ValueError, match="User ID cannot be empty"):
            Profile(user_id="  ", display_name="Nobody")

    def test_duplicate_attend_keys_raise(self):
        """Test the attend list cannot hold a conference twice."""
        with pytest.raises(ValueError, match="duplicates"):
            Profile(user_id="1111", display_name="A", conference_keys_to_attend=["c1", "c1"])

    def test_key_is_user_id(self, profile):
        assert profile.key == EntityKey.create("Profile", "1111")


class TestProfileLists:
    """Test attend list, wishlist and speaking list behavior."""

    def test_add_and_remove_conference(self, profile):
        """Test registering and unregistering a conference key."""
        profile.add_to_conference_keys_to_attend("conf-a")
        assert profile.is_attending("conf-a")

        profile.unregister_from_conference("conf-a")
        assert not profile.is_attending("conf-a")

    def test_add_conference_twice_raises(self, profile):
        """Test the attend list behaves as a set."""
        profile.add_to_conference_keys_to_attend("conf-a")

        with pytest.raises(ValueError, match="Already attending"):
            profile.add_to_conference_keys_to_attend("conf-a")

    def test_unregister_unknown_conference_raises(self, profile):
        with pytest.raises(ValueError, match="Not attending"):
            profile.unregister_from_conference("conf-a")

    def test_wishlist_keeps_duplicates(self, profile):
        """Test adding the same session twice keeps both entries."""
        profile.add_session_to_wishlist("session-1")
        profile.add_session_to_wishlist("session-1")

        assert profile.session_keys_wishlist == ["session-1", "session-1"]

    def test_speaking_list_is_a_set(self, profile):
        profile.add_session_to_speak("session-1")
        profile.add_session_to_speak("session-1")

        assert profile.session_keys_to_speak == ["session-1"]

    def test_update_ignores_none(self, profile):
        """Test update only touches the fields that were given."""
        profile.update(None, TeeShirtSize.XL)

        assert profile.display_name == "Medical Speaker"
        assert profile.tee_shirt_size is TeeShirtSize.XL


class TestProfileSerialization:
    """Test to_dict/from_dict."""

    def test_to_dict_stores_enum_value(self, profile):
        profile.tee_shirt_size = TeeShirtSize.M
        assert profile.to_dict()["tee_shirt_size"] == "M"

    def test_from_dict_restores_profile(self, profile):
        """Test a stored profile comes back equal."""
        profile.add_to_conference_keys_to_attend("conf-a")
        profile.add_session_to_wishlist("session-1")

        restored = Profile.from_dict(profile.key, profile.to_dict())

        assert restored == profile
