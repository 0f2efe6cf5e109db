"""Shared fixtures: every test gets its own datastore file and empty cache."""
import pytest

from conference_central.models.conference import Conference
from conference_central.models.profile import Profile
from conference_central.models.session import Session
from conference_central.services import datastore, task_queue
from conference_central.services.cache_service import get_cache


@pytest.fixture
def datastore_file(tmp_path, monkeypatch):
    """Point the process-wide store at a temporary JSON file."""
    path = str(tmp_path / "datastore.json")
    monkeypatch.setattr("conference_central.services.datastore.DATASTORE_FILE", path)
    datastore._clear_store()
    task_queue._clear_queue()
    get_cache().clear()

    yield path

    datastore._clear_store()
    task_queue._clear_queue()
    get_cache().clear()


@pytest.fixture
def store(datastore_file):
    return datastore.get_store()


@pytest.fixture
def organizer(store):
    profile = Profile(user_id="0000", display_name="Organizer", main_email="organizer@example.com")
    store.put(profile)
    return profile


@pytest.fixture
def drupal_speaker(store):
    profile = Profile(user_id="2222", display_name="Drupal Speaker", main_email="drupal@example.com")
    store.put(profile)
    return profile


@pytest.fixture
def medical_speaker(store):
    profile = Profile(user_id="1111", display_name="Medical Speaker", main_email="medical@example.com")
    store.put(profile)
    return profile


@pytest.fixture
def conference(store, organizer):
    """Conference with 12 seats, organized by the organizer fixture."""
    key = store.allocate_id(Conference.KIND, parent=organizer.key)
    conf = Conference(
        id=key.id,
        organizer_user_id=organizer.user_id,
        name="Medical Conference 2014",
        city="London",
        max_attendees=12,
    )
    store.put(conf)
    return conf


@pytest.fixture
def session_factory(store):
    """Save a session directly in the store, bypassing create_session."""
    def make(conference, name, **fields):
        key = store.allocate_id(Session.KIND, parent=conference.key)
        session = Session(conference_key=conference.key, id=key.id, name=name, **fields)
        store.put(session)
        return session
    return make
