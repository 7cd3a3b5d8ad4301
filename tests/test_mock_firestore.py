import threading
from datetime import datetime, timedelta, timezone

import pytest

from app.config.mock_firestore import MockFirestore, MockNotFound
from app.utils.firestore_helpers import DESCENDING, where_filter


def test_set_get_update_delete():
    db = MockFirestore()
    ref = db.collection("problems").document("p1")
    ref.set({"title": "a", "votes": 0})

    ref.update({"votes": 3})
    snapshot = ref.get()
    assert snapshot.exists
    assert snapshot.to_dict() == {"title": "a", "votes": 3}

    ref.delete()
    assert not ref.get().exists
    with pytest.raises(MockNotFound):
        ref.update({"votes": 4})


def test_auto_ids_are_unique():
    db = MockFirestore()
    ids = {db.collection("problems").document().id for _ in range(200)}
    assert len(ids) == 200


def test_returned_data_is_a_copy():
    db = MockFirestore()
    ref = db.collection("problems").document("p1")
    ref.set({"comments": []})

    ref.get().to_dict()["comments"].append("leak")

    assert ref.get().to_dict()["comments"] == []


def test_where_order_limit():
    db = MockFirestore()
    now = datetime.now(timezone.utc)
    problems = db.collection("problems")
    for i, category in enumerate(["roads", "water", "roads"]):
        problems.document(f"p{i}").set({"category": category, "created_at": now + timedelta(minutes=i)})
    problems.document("undated").set({"category": "roads"})

    query = where_filter(problems, "category", "==", "roads").order_by("created_at", direction=DESCENDING)
    assert [doc.id for doc in query.stream()] == ["p2", "p0"]

    assert [doc.id for doc in problems.order_by("created_at", direction=DESCENDING).limit(1).stream()] == ["p2"]
    assert {doc.id for doc in where_filter(problems, "category", "in", ["water"]).stream()} == {"p1"}


def test_json_persistence_roundtrip(tmp_path):
    path = str(tmp_path / "mock_db.json")
    created = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    MockFirestore(path).collection("problems").document("p1").set({"created_at": created})

    reloaded = MockFirestore(path).collection("problems").document("p1").get().to_dict()
    assert reloaded["created_at"] == created


def test_collections_lists_written_collections():
    db = MockFirestore()
    db.collection("users").document("u1").set({"username": "asha"})

    assert [c.id for c in db.collections()] == ["users"]


def test_stream_while_another_thread_writes():
    db = MockFirestore()
    ref = db.collection("problems").document("p1")
    ref.set({"title": "a", "votes": 0})
    stop = threading.Event()
    errors = []

    def writer():
        n = 0
        while not stop.is_set():
            n += 1
            ref.update({f"field_{n}": n, "votes": n})

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        for _ in range(300):
            try:
                for snapshot in db.collection("problems").stream():
                    snapshot.to_dict()
                ref.get().to_dict()
            except RuntimeError as e:
                errors.append(e)
    finally:
        stop.set()
        thread.join(timeout=5)

    assert errors == []
