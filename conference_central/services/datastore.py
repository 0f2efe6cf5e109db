"""Transactional entity store backed by a JSON file.

Entities are kept in one JSON document keyed by websafe key, each with a
version counter. Transactions read from a snapshot, buffer their writes, and
commit under the file lock only if every entity they read still carries the
version it was read at (optimistic concurrency). A conflicting attempt is
discarded and the whole transactional function is run again.
"""
import copy
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from conference_central.models.conference import Conference
from conference_central.models.key import EntityKey
from conference_central.models.profile import Profile
from conference_central.models.session import Session
from conference_central.services.storage_service import ensure_json_file, load_json, lock_file, save_json
from conference_central.utils import config
from conference_central.utils.exceptions import QueryError, TransactionFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Path of the JSON document holding all entities
DATASTORE_FILE = config.get_datastore_file()

MODELS: Dict[str, Type] = {
    Profile.KIND: Profile,
    Conference.KIND: Conference,
    Session.KIND: Session,
}

INEQUALITY_OPERATORS = ("<", "<=", ">", ">=", "!=")
OPERATORS = ("=", "IN") + INEQUALITY_OPERATORS

Record = Dict[str, Any]


def _empty_store() -> Dict[str, Any]:
    return {"entities": {}, "counters": {}}


def normalize_value(value: Any) -> Any:
    """Convert a filter value to the form properties are stored in."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, EntityKey):
        return value.urlsafe()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(v) for v in value]
    return value


def _compare(stored: Any, operator: str, value: Any) -> bool:
    try:
        if operator == "=":
            return stored == value
        if operator == "IN":
            return stored in value
        if operator == "!=":
            return stored != value
        if operator == "<":
            return stored < value
        if operator == "<=":
            return stored <= value
        if operator == ">":
            return stored > value
        if operator == ">=":
            return stored >= value
    except TypeError:
        # Mixed types never match, as in an index ordered by type first
        return False
    raise QueryError(f"Unsupported operator: {operator}")


def _matches(stored: Any, operator: str, value: Any) -> bool:
    # Missing properties are not indexed, so no filter matches them.
    if stored is None:
        return False
    # A list property matches when any of its elements does.
    candidates = stored if isinstance(stored, list) else [stored]
    return any(_compare(candidate, operator, value) for candidate in candidates)


def _key_sort_value(key: EntityKey):
    return [(kind, (0, key_id, "") if isinstance(key_id, int) else (1, 0, key_id)) for kind, key_id in key.path]


class TransactionConflict(Exception):
    """An entity read by the transaction changed before commit."""
    pass


class Query:
    """
    Filtered, ordered query over one kind.

    Mirrors the restrictions of a scalable key-value store: at most one
    property may carry inequality filters, and when a query has both an
    inequality filter and sort orders, the first sort order must be on that
    property. Queries are validated as they are built.
    """

    def __init__(self, kind: str,
                 records: Callable[[], Iterable[Tuple[EntityKey, Record]]],
                 to_model: Callable[[EntityKey, Record], Any]):
        self.kind = kind
        self._records = records
        self._to_model = to_model
        self._ancestor: Optional[EntityKey] = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._orders: List[Tuple[str, bool]] = []

    def ancestor(self, key: EntityKey) -> "Query":
        """Restrict results to descendants of key."""
        self._ancestor = key
        return self

    def filter(self, prop: str, operator: str, value: Any) -> "Query":
        """
        Add a filter.

        Raises:
            QueryError: If the operator is unknown, an IN value is empty, or the
                filter adds a second inequality field
        """
        if operator not in OPERATORS:
            raise QueryError(f"Unsupported operator: {operator}")

        value = normalize_value(value)
        if operator == "IN":
            if not isinstance(value, list) or not value:
                raise QueryError(f"IN filter on {prop} needs a non-empty list of values")

        self._filters.append((prop, operator, value))
        self._validate()
        return self

    def order(self, prop: str) -> "Query":
        """Add a sort order; prefix the property with "-" for descending."""
        descending = prop.startswith("-")
        self._orders.append((prop.lstrip("-"), descending))
        self._validate()
        return self

    @property
    def ancestor_key(self) -> Optional[EntityKey]:
        return self._ancestor

    @property
    def filters(self) -> Tuple[Tuple[str, str, Any], ...]:
        return tuple(self._filters)

    @property
    def orders(self) -> Tuple[Tuple[str, bool], ...]:
        return tuple(self._orders)

    @property
    def inequality_field(self) -> Optional[str]:
        for prop, operator, _ in self._filters:
            if operator in INEQUALITY_OPERATORS:
                return prop
        return None

    def _validate(self) -> None:
        fields = {prop for prop, operator, _ in self._filters if operator in INEQUALITY_OPERATORS}
        if len(fields) > 1:
            raise QueryError(
                f"Inequality filter is allowed on only one field, got: {sorted(fields)}"
            )
        if fields and self._orders:
            inequality_field = next(iter(fields))
            if self._orders[0][0] != inequality_field:
                raise QueryError(
                    f"The first sort order must be the inequality field {inequality_field}, "
                    f"got: {self._orders[0][0]}"
                )

    def _accepts(self, key: EntityKey, data: Record) -> bool:
        if key.kind != self.kind:
            return False
        if self._ancestor is not None and not self._ancestor.is_ancestor_of(key):
            return False
        for prop, operator, value in self._filters:
            if not _matches(data.get(prop), operator, value):
                return False
        for prop, _ in self._orders:
            if data.get(prop) is None:
                return False
        return True

    def fetch(self) -> List[Any]:
        """Run the query and return model instances."""
        matched = [(key, data) for key, data in self._records() if self._accepts(key, data)]
        matched.sort(key=lambda item: _key_sort_value(item[0]))

        # Stable sorts, last order first
        for prop, descending in reversed(self._orders):
            matched.sort(key=lambda item: item[1][prop], reverse=descending)

        return [self._to_model(key, data) for key, data in matched]


class Transaction:
    """Snapshot view plus buffered writes; handed to transactional functions."""

    def __init__(self, store: "EntityStore", snapshot: Dict[str, Any]):
        self._store = store
        self._entities: Dict[str, Record] = snapshot["entities"]
        self._read_versions: Dict[str, int] = {}
        self._writes: Dict[str, Optional[Any]] = {}
        self._callbacks: List[Callable[[], None]] = []

    def _record_read(self, websafe: str) -> Optional[Record]:
        record = self._entities.get(websafe)
        self._read_versions.setdefault(websafe, record["version"] if record else 0)
        return record

    def get(self, key: EntityKey) -> Optional[Any]:
        websafe = key.urlsafe()
        if websafe in self._writes:
            return self._writes[websafe]

        record = self._record_read(websafe)
        if record is None:
            return None
        return self._store._to_model(key, record["data"])

    def get_multi(self, keys: Iterable[EntityKey]) -> Dict[EntityKey, Any]:
        """Batch get; keys that don't resolve are left out of the result."""
        found = {}
        for key in keys:
            entity = self.get(key)
            if entity is not None:
                found[key] = entity
        return found

    def put(self, entity: Any) -> EntityKey:
        key = entity.key
        self._writes[key.urlsafe()] = entity
        return key

    def put_multi(self, entities: Iterable[Any]) -> List[EntityKey]:
        return [self.put(entity) for entity in entities]

    def delete(self, key: EntityKey) -> None:
        self._writes[key.urlsafe()] = None

    def query(self, kind: str) -> Query:
        """Query against the transaction snapshot; results count as reads."""
        def records():
            for websafe, record in self._entities.items():
                key = EntityKey.from_urlsafe(websafe)
                if key.kind == kind:
                    yield key, record["data"]

        def to_model(key: EntityKey, data: Record):
            self._record_read(key.urlsafe())
            return self._store._to_model(key, data)

        return Query(kind, records, to_model)

    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run callback after this transaction commits (never on failure)."""
        self._callbacks.append(callback)

    @property
    def has_writes(self) -> bool:
        return bool(self._writes)


class EntityStore:
    """JSON-file entity store with optimistic transactions."""

    def __init__(self, file_path: str, models: Optional[Dict[str, Type]] = None,
                 retries: Optional[int] = None, lock_timeout: Optional[float] = None):
        self.file_path = file_path
        self._models = dict(models or MODELS)
        self.retries = retries if retries is not None else config.get_transaction_retries()
        self.lock_timeout = lock_timeout if lock_timeout is not None else config.get_lock_timeout()
        ensure_json_file(file_path, _empty_store())

    def _load(self) -> Dict[str, Any]:
        data = load_json(self.file_path)
        data.setdefault("entities", {})
        data.setdefault("counters", {})
        return data

    def _to_model(self, key: EntityKey, data: Record) -> Any:
        model_cls = self._models.get(key.kind)
        if model_cls is None:
            raise ValueError(f"No model registered for kind: {key.kind}")
        return model_cls.from_dict(key, copy.deepcopy(data))

    def _records(self) -> Iterable[Tuple[EntityKey, Record]]:
        for websafe, record in self._load()["entities"].items():
            yield EntityKey.from_urlsafe(websafe), record["data"]

    def _commit(self, txn: Transaction) -> None:
        if not txn.has_writes:
            return

        with lock_file(self.file_path, timeout=self.lock_timeout):
            data = self._load()
            entities = data["entities"]

            for websafe, version in txn._read_versions.items():
                record = entities.get(websafe)
                current = record["version"] if record else 0
                if current != version:
                    raise TransactionConflict(websafe)

            for websafe, entity in txn._writes.items():
                previous = entities.get(websafe)
                if entity is None:
                    entities.pop(websafe, None)
                    continue
                entities[websafe] = {
                    "kind": entity.KIND,
                    "version": (previous["version"] if previous else 0) + 1,
                    "data": entity.to_dict(),
                }

            save_json(self.file_path, data)

    def transact(self, work: Callable[[Transaction], T]) -> T:
        """
        Run work(txn) in a transaction and return its result.

        work may run more than once: on a commit conflict the attempt is
        dropped and work is called again with a fresh snapshot, so it must not
        have side effects outside txn. Use txn.on_commit for those.
        Callbacks run once after the commit; one that raises is logged and
        the committed result is still returned.

        Raises:
            TransactionFailedError: If every attempt conflicted
            Exception: Anything raised by work, with nothing written
        """
        for attempt in range(1, self.retries + 1):
            txn = Transaction(self, self._load())
            result = work(txn)
            try:
                self._commit(txn)
            except TransactionConflict as e:
                logger.warning(
                    f"Transaction conflict on {e} (attempt {attempt}/{self.retries}), retrying"
                )
                continue

            for callback in txn._callbacks:
                try:
                    callback()
                except Exception:
                    logger.exception("Post-commit callback failed; the transaction is already committed")
            return result

        logger.error(f"Transaction failed after {self.retries} attempts on {self.file_path}")
        raise TransactionFailedError(f"Transaction failed after {self.retries} attempts")

    def get(self, key: EntityKey) -> Optional[Any]:
        record = self._load()["entities"].get(key.urlsafe())
        if record is None:
            return None
        return self._to_model(key, record["data"])

    def get_multi(self, keys: Iterable[EntityKey]) -> Dict[EntityKey, Any]:
        """Batch get in request order; keys that don't resolve are left out."""
        entities = self._load()["entities"]
        found = {}
        for key in keys:
            record = entities.get(key.urlsafe())
            if record is not None:
                found[key] = self._to_model(key, record["data"])
        return found

    def put(self, entity: Any) -> EntityKey:
        return self.transact(lambda txn: txn.put(entity))

    def put_multi(self, entities: Iterable[Any]) -> List[EntityKey]:
        entities = list(entities)
        return self.transact(lambda txn: txn.put_multi(entities))

    def delete(self, key: EntityKey) -> None:
        self.transact(lambda txn: txn.delete(key))

    def query(self, kind: str) -> Query:
        return Query(kind, self._records, self._to_model)

    def allocate_id(self, kind: str, parent: Optional[EntityKey] = None) -> EntityKey:
        """Reserve a new numeric id for kind under parent and return the key."""
        counter_name = f"{parent.urlsafe() if parent else ''}|{kind}"
        with lock_file(self.file_path, timeout=self.lock_timeout):
            data = self._load()
            next_id = data["counters"].get(counter_name, 0) + 1
            data["counters"][counter_name] = next_id
            save_json(self.file_path, data)
        return EntityKey.create(kind, next_id, parent=parent)


# Process-wide store instance
_store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    """Return the process-wide store for DATASTORE_FILE."""
    global _store

    if _store is None or _store.file_path != DATASTORE_FILE:
        _store = EntityStore(DATASTORE_FILE)
    return _store


def _clear_store():
    """Drop the cached store instance."""
    global _store
    _store = None
