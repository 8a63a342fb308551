# tests/test_storage.py

from __future__ import annotations

import json
from pathlib import Path

from grand_prix.core.models import DayRecord, GrandPrixData, SectorRecord, Task, TaskStatus, User
from grand_prix.storage.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from grand_prix.storage.repository import GrandPrixRepository


def test_file_store_set_get_remove(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path / "kv")
    assert store.get("workGrandPrixData") is None

    store.set("workGrandPrixData", '{"users": {}}')
    assert store.get("workGrandPrixData") == '{"users": {}}'
    assert not list((tmp_path / "kv").glob("*.tmp"))

    store.remove("workGrandPrixData")
    store.remove("workGrandPrixData")
    assert store.get("workGrandPrixData") is None


def test_malformed_blob_loads_as_empty_document() -> None:
    store = MemoryKeyValueStore({"workGrandPrixData": "{not json"})
    data = GrandPrixRepository(store).load_data()
    assert data.users == {}


def test_wrong_shapes_are_skipped() -> None:
    blob = {
        "users": {
            "alice": {"password": "pw1", "records": {"2026-10-14": {"sectors": {"7": {}, "1": {"tasks": ["junk"]}}}}},
            "": {"password": "x"},
            "bob": "not an object",
        }
    }
    store = MemoryKeyValueStore({"workGrandPrixData": json.dumps(blob)})
    data = GrandPrixRepository(store).load_data()
    assert list(data.users) == ["alice"]
    sectors = data.users["alice"].records["2026-10-14"].sectors
    assert list(sectors) == [1]
    assert sectors[1].tasks == ()


def test_document_uses_browser_wire_keys() -> None:
    task = Task(id="1_abcde", name="Inbox", status=TaskStatus.FINISHED, start_time=1, end_time=11, duration=10)
    user = User(
        username="alice",
        password="pw1",
        friends={"bob"},
        friend_requests={"carol"},
        points=10,
        records={"2026-10-14": DayRecord(sectors={2: SectorRecord(start_time=1, tasks=(task,))})},
    )
    store = MemoryKeyValueStore()
    repo = GrandPrixRepository(store)
    repo.save_data(GrandPrixData(users={"alice": user}))

    raw = json.loads(store.get("workGrandPrixData") or "")
    alice = raw["users"]["alice"]
    assert alice["friendRequests"] == ["carol"]
    stored_task = alice["records"]["2026-10-14"]["sectors"]["2"]["tasks"][0]
    assert stored_task["status"] == "Finished"
    assert set(stored_task) == {"id", "name", "status", "startTime", "endTime", "pauseDuration", "pauseStart", "duration"}

    assert repo.load_data().users["alice"] == user


def test_current_user_pointer() -> None:
    repo = GrandPrixRepository(MemoryKeyValueStore())
    assert repo.load_current_user() is None
    repo.save_current_user("alice")
    assert repo.load_current_user() == "alice"
    repo.clear_current_user()
    assert repo.load_current_user() is None
