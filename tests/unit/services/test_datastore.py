"""Unit tests for the transactional entity store."""
from datetime import date

import pytest

from conference_central.models.conference import Conference
from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile
from conference_central.models.session import Session, SessionType
from conference_central.services.datastore import EntityStore
from conference_central.utils.exceptions import QueryError, TransactionFailedError


@pytest.fixture
def profile(store):
    profile = Profile(user_id="1111", display_name="A")
    store.put(profile)
    return profile


class TestGetPut:
    """Test single-entity reads and writes."""

    def test_put_then_get(self, store, profile):
        assert store.get(profile.key) == profile

    def test_get_missing_returns_none(self, store):
        assert store.get(EntityKey.create("Profile", "nobody")) is None

    def test_get_multi_skips_missing_keys(self, store, profile):
        """Test unresolved keys are left out, found ones kept in request order."""
        other = Profile(user_id="2222", display_name="B")
        store.put(other)
        missing = EntityKey.create("Profile", "nobody")

        found = store.get_multi([other.key, missing, profile.key])

        assert list(found.keys()) == [other.key, profile.key]

    def test_delete(self, store, profile):
        store.delete(profile.key)
        assert store.get(profile.key) is None

    def test_data_survives_new_store_instance(self, store, profile, datastore_file):
        """Test entities are persisted to the JSON file."""
        reopened = EntityStore(datastore_file)
        assert reopened.get(profile.key) == profile


class TestAllocateId:
    """Test id allocation."""

    def test_ids_increase_per_kind_and_parent(self, store, conference):
        """Test each (parent, kind) pair has its own counter."""
        first = store.allocate_id(Session.KIND, parent=conference.key)
        second = store.allocate_id(Session.KIND, parent=conference.key)

        other_parent = EntityKey.create("Conference", 99, parent=conference.key.parent)
        other = store.allocate_id(Session.KIND, parent=other_parent)

        assert second.id == first.id + 1
        assert other.id == 1
        assert second.parent == conference.key


class TestTransactions:
    """Test optimistic transactions."""

    def test_writes_are_atomic(self, store, profile, conference):
        """Test writes to two entity groups commit together."""
        def work(txn):
            p = txn.get(profile.key)
            c = txn.get(conference.key)
            p.add_to_conference_keys_to_attend(c.websafe_key)
            c.book_seats(1)
            txn.put_multi([p, c])

        store.transact(work)

        assert store.get(profile.key).is_attending(conference.websafe_key)
        assert store.get(conference.key).seats_available == 11

    def test_exception_discards_writes(self, store, profile):
        """Test nothing is written when the work raises."""
        def work(txn):
            p = txn.get(profile.key)
            p.display_name = "Changed"
            txn.put(p)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            store.transact(work)

        assert store.get(profile.key).display_name == "A"

    def test_reads_see_own_writes(self, store, profile):
        def work(txn):
            p = txn.get(profile.key)
            p.display_name = "Changed"
            txn.put(p)
            return txn.get(profile.key).display_name

        assert store.transact(work) == "Changed"

    def test_conflicting_write_causes_retry(self, store, profile):
        """Test work is rerun on a fresh snapshot after a concurrent write."""
        seen = []

        def work(txn):
            p = txn.get(profile.key)
            seen.append(p.display_name)
            if len(seen) == 1:
                # Another writer commits between our read and our commit
                store.put(Profile(user_id="1111", display_name="Concurrent"))
            p.display_name = p.display_name + "!"
            txn.put(p)
            return len(seen)

        attempts = store.transact(work)

        assert attempts == 2
        assert seen == ["A", "Concurrent"]
        assert store.get(profile.key).display_name == "Concurrent!"

    def test_conflict_on_missing_entity_read(self, store):
        """Test reading a missing entity also guards against its creation."""
        key = EntityKey.create("Profile", "3333")
        attempts = []

        def work(txn):
            attempts.append(txn.get(key))
            if len(attempts) == 1:
                store.put(Profile(user_id="3333", display_name="Created elsewhere"))
            if attempts[-1] is None:
                txn.put(Profile(user_id="3333", display_name="Mine"))

        store.transact(work)

        assert len(attempts) == 2
        assert store.get(key).display_name == "Created elsewhere"

    def test_retries_exhausted_raises(self, datastore_file, profile):
        """Test TransactionFailedError when every attempt conflicts."""
        store = EntityStore(datastore_file, retries=2)
        attempts = []

        def work(txn):
            attempts.append(1)
            p = txn.get(profile.key)
            store.put(Profile(user_id="1111", display_name=f"Writer {len(attempts)}"))
            p.display_name = "Never"
            txn.put(p)

        with pytest.raises(TransactionFailedError, match="failed after 2 attempts"):
            store.transact(work)

        assert len(attempts) == 2
        assert store.get(profile.key).display_name == "Writer 2"

    def test_on_commit_runs_after_commit_only(self, store, profile):
        """Test callbacks run once, after the successful attempt."""
        calls = []
        attempts = []

        def work(txn):
            attempts.append(1)
            p = txn.get(profile.key)
            txn.on_commit(lambda: calls.append((len(attempts), store.get(profile.key).display_name)))
            if len(attempts) == 1:
                store.put(Profile(user_id="1111", display_name="Concurrent"))
            p.display_name = "Final"
            txn.put(p)

        store.transact(work)

        assert calls == [(2, "Final")]

    def test_on_commit_skipped_when_work_raises(self, store):
        calls = []

        def work(txn):
            txn.on_commit(lambda: calls.append("ran"))
            raise ValueError("invalid")

        with pytest.raises(ValueError):
            store.transact(work)
        assert calls == []


@pytest.fixture
def sessions(conference, session_factory):
    return [
        session_factory(conference, "Keynote", session_type=SessionType.KEYNOTE,
                        start_date=date(2015, 5, 5), duration=60, start_time=900),
        session_factory(conference, "Workshop", session_type=SessionType.WORKSHOP,
                        start_date=date(2015, 5, 5), duration=120, start_time=1400,
                        speaker_keys=["speaker-a", "speaker-b"]),
        session_factory(conference, "Lecture", session_type=SessionType.LECTURE,
                        start_date=date(2015, 5, 6), duration=45, start_time=2000,
                        speaker_keys=["speaker-b"]),
        session_factory(conference, "Untimed"),
    ]


class TestQuery:
    """Test query filtering, ordering and restrictions."""

    def test_ancestor_query(self, store, organizer, conference, sessions):
        """Test ancestor queries only return descendants."""
        other_key = store.allocate_id(Conference.KIND, parent=organizer.key)
        other = Conference(id=other_key.id, organizer_user_id=organizer.user_id, name="Other")
        store.put(other)
        store.put(Session(conference_key=other.key, id=1, name="Elsewhere"))

        results = store.query(Session.KIND).ancestor(conference.key).order("name").fetch()

        assert [s.name for s in results] == ["Keynote", "Lecture", "Untimed", "Workshop"]

    def test_equality_filter_on_enum(self, store, sessions):
        results = store.query(Session.KIND).filter("session_type", "=", SessionType.KEYNOTE).fetch()
        assert [s.name for s in results] == ["Keynote"]

    def test_list_property_matches_any_element(self, store, sessions):
        """Test a filter on a list property matches if any element matches."""
        results = store.query(Session.KIND).filter("speaker_keys", "=", "speaker-b").order("name").fetch()
        assert [s.name for s in results] == ["Lecture", "Workshop"]

    def test_in_filter(self, store, sessions):
        results = (
            store.query(Session.KIND)
            .filter("session_type", "IN", [SessionType.LECTURE, SessionType.WORKSHOP])
            .order("name")
            .fetch()
        )
        assert [s.name for s in results] == ["Lecture", "Workshop"]

    def test_missing_property_never_matches(self, store, sessions):
        """Test entities without the property are excluded from inequality results."""
        results = store.query(Session.KIND).filter("start_time", "<", 2400).fetch()
        assert "Untimed" not in [s.name for s in results]
        assert len(results) == 3

    def test_inequality_with_matching_order(self, store, sessions):
        results = (
            store.query(Session.KIND)
            .filter("duration", ">", 50)
            .order("-duration")
            .fetch()
        )
        assert [s.name for s in results] == ["Workshop", "Keynote"]

    def test_date_range_filter(self, store, sessions):
        results = (
            store.query(Session.KIND)
            .filter("start_date", ">=", date(2015, 5, 6))
            .filter("start_date", "<=", date(2015, 5, 6))
            .fetch()
        )
        assert [s.name for s in results] == ["Lecture"]

    def test_two_inequality_fields_rejected(self, store):
        """Test inequality filters on two properties raise QueryError."""
        with pytest.raises(QueryError, match="only one field"):
            store.query(Session.KIND).filter("start_time", "<", 1900).filter("session_type", "!=", "KEYNOTE")

    def test_first_order_must_be_inequality_field(self, store):
        with pytest.raises(QueryError, match="first sort order must be the inequality field"):
            store.query(Session.KIND).filter("duration", "<=", 60).order("name")

    def test_unknown_operator_rejected(self, store):
        with pytest.raises(QueryError, match="Unsupported operator"):
            store.query(Session.KIND).filter("duration", "~", 60)

    def test_empty_in_rejected(self, store):
        with pytest.raises(QueryError, match="non-empty list"):
            store.query(Session.KIND).filter("session_type", "IN", [])

    def test_transaction_query_records_reads(self, store, sessions):
        """Test entities returned by a transactional query are conflict-checked."""
        attempts = []

        def work(txn):
            found = txn.query(Session.KIND).filter("duration", "<=", 60).order("duration").fetch()
            attempts.append([s.name for s in found])
            if len(attempts) == 1:
                keynote = store.get(sessions[0].key)
                keynote.duration = 90
                store.put(keynote)
            txn.put(Profile(user_id="4444", display_name=str(len(found))))

        store.transact(work)

        assert attempts == [["Untimed", "Lecture", "Keynote"], ["Untimed", "Lecture"]]


class TestCommitCallbacks:
    """Test post-commit callback error handling."""

    def test_failing_callback_keeps_committed_result(self, store, profile, caplog):
        """Test a raising callback is logged, later callbacks still run and the result is returned."""
        calls = []

        def fail():
            raise RuntimeError("cache down")

        def work(txn):
            p = txn.get(profile.key)
            p.display_name = "Committed"
            txn.put(p)
            txn.on_commit(fail)
            txn.on_commit(lambda: calls.append("second"))
            return "done"

        assert store.transact(work) == "done"
        assert calls == ["second"]
        assert store.get(profile.key).display_name == "Committed"
        assert "Post-commit callback failed" in caplog.text
