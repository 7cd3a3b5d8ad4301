"""
In-process stand-in for the Firestore client, used when USE_MOCK_DB=true.

Implements the subset of the google-cloud-firestore surface the services use:
collection() / document() / set() / get() / update() / delete() and
where() / order_by() / limit() / stream() queries. Data lives in memory and is
optionally mirrored to a JSON file so a local dev server keeps its data
across restarts.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

_DATETIME_KEY = "__datetime__"

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


class MockNotFound(Exception):
    """Raised by update() on a missing document, like Firestore's NotFound."""


def _encode(value):
    if isinstance(value, datetime):
        return {_DATETIME_KEY: value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode(obj: Dict):
    if set(obj.keys()) == {_DATETIME_KEY}:
        return datetime.fromisoformat(obj[_DATETIME_KEY])
    return obj


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self._data = data

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None


class MockDocumentReference:
    def __init__(self, client: "MockFirestore", collection: str, doc_id: str):
        self._client = client
        self._collection = collection
        self.id = doc_id

    def get(self) -> MockDocumentSnapshot:
        with self._client._lock:
            data = self._client._collection_data(self._collection).get(self.id)
            return MockDocumentSnapshot(self, copy.deepcopy(data))

    def set(self, data: Dict) -> None:
        with self._client._lock:
            self._client._collection_data(self._collection)[self.id] = copy.deepcopy(data)
            self._client._persist()

    def update(self, data: Dict) -> None:
        with self._client._lock:
            docs = self._client._collection_data(self._collection)
            if self.id not in docs:
                raise MockNotFound(f"No document to update: {self._collection}/{self.id}")
            docs[self.id].update(copy.deepcopy(data))
            self._client._persist()

    def delete(self) -> None:
        with self._client._lock:
            self._client._collection_data(self._collection).pop(self.id, None)
            self._client._persist()


class MockQuery:
    def __init__(self, client: "MockFirestore", collection: str):
        self._client = client
        self._collection = collection
        self._filters: List = []
        self._orders: List = []
        self._limit: Optional[int] = None

    def _copy(self) -> "MockQuery":
        query = MockQuery(self._client, self._collection)
        query._filters = list(self._filters)
        query._orders = list(self._orders)
        query._limit = self._limit
        return query

    def where(self, field_path: str, op_string: str, value) -> "MockQuery":
        if op_string not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op_string}")
        query = self._copy()
        query._filters.append((field_path, _OPERATORS[op_string], value))
        return query

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "MockQuery":
        query = self._copy()
        query._orders.append((field_path, direction == "DESCENDING"))
        return query

    def limit(self, count: int) -> "MockQuery":
        query = self._copy()
        query._limit = count
        return query

    def stream(self) -> Iterator[MockDocumentSnapshot]:
        # Snapshots are copied under the lock; writers mutate the stored dicts in place.
        with self._client._lock:
            items = [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in self._client._collection_data(self._collection).items()
            ]

        matched = [
            (doc_id, data) for doc_id, data in items
            if all(op(data.get(field), value) for field, op, value in self._filters)
        ]
        # Firestore drops documents that lack an order_by field.
        # Stable sorts applied last-key-first give multi-key ordering.
        for field, descending in reversed(self._orders):
            matched = [item for item in matched if item[1].get(field) is not None]
            matched.sort(key=lambda item, f=field: item[1][f], reverse=descending)
        if self._limit is not None:
            matched = matched[:self._limit]

        for doc_id, data in matched:
            ref = MockDocumentReference(self._client, self._collection, doc_id)
            yield MockDocumentSnapshot(ref, data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, client: "MockFirestore", name: str):
        super().__init__(client, name)
        self.id = name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        # Firestore auto ids are 20 alphanumeric chars
        doc_id = document_id or uuid.uuid4().hex[:20]
        return MockDocumentReference(self._client, self._collection, doc_id)


class MockFirestore:
    """Thread-safe in-memory document store with an optional JSON mirror."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Dict]] = {}
        if path and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                self._data = json.load(f, object_hook=_decode)
            logger.info(f"Mock Firestore loaded from {path}")

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._data]

    def _collection_data(self, name: str) -> Dict[str, Dict]:
        return self._data.setdefault(name, {})

    def _persist(self) -> None:
        if not self._path:
            return
        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, default=_encode, indent=2)


_mock_db: Optional[MockFirestore] = None


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    """Get or create the process-wide mock client."""
    global _mock_db
    if _mock_db is None:
        _mock_db = MockFirestore(path)
    return _mock_db
