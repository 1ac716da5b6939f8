"""
Tests for storage slots and state holders
"""
import json

from storefront.core.state import StateHolder
from storefront.core.storage import (
    FileStorage,
    MemoryStorage,
    cart_key,
    create_storage,
    favorites_key,
    read_json,
    write_json,
)


def test_memory_storage_basic_operations():
    storage = MemoryStorage()
    storage.set_item("a", "1")
    storage.set_item("b", "2")

    assert storage.get_item("a") == "1"
    assert storage.get_item("b") == "2"
    assert sorted(storage.keys()) == ["a", "b"]

    storage.remove_item("a")
    storage.remove_item("missing")
    assert storage.get_item("a") is None

    storage.clear()
    assert storage.keys() == []


def test_file_storage_persists_between_instances(tmp_path):
    path = tmp_path / "state.json"
    first = FileStorage(str(path))
    write_json(first, "orders_data", [{"id": 1}])

    second = FileStorage(str(path))
    assert read_json(second, "orders_data") == [{"id": 1}]

    on_disk = json.loads(path.read_text())
    assert json.loads(on_disk["orders_data"]) == [{"id": 1}]


def test_file_storage_missing_file_is_empty(tmp_path):
    storage = FileStorage(str(tmp_path / "nested" / "state.json"))
    assert storage.keys() == []
    assert storage.get_item("currentUser") is None

    storage.set_item("currentUser", "{}")
    assert (tmp_path / "nested" / "state.json").exists()


def test_file_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    storage = FileStorage(str(path))

    assert storage.get_item("anything") is None
    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"


def test_file_storage_remove_and_clear(tmp_path):
    storage = FileStorage(str(tmp_path / "state.json"))
    storage.set_item("a", "1")
    storage.set_item("b", "2")
    storage.remove_item("a")
    assert storage.keys() == ["b"]
    storage.clear()
    assert storage.keys() == []


def test_create_storage_without_path_is_memory():
    assert isinstance(create_storage(""), MemoryStorage)
    assert isinstance(create_storage(None), MemoryStorage)


def test_read_json_falls_back_on_malformed_blob():
    storage = MemoryStorage({"cart_user_2": "[{broken"})
    assert read_json(storage, "cart_user_2", []) == []
    assert read_json(storage, "missing", {"x": 1}) == {"x": 1}


def test_slot_key_helpers():
    assert cart_key("42") == "cart_user_42"
    assert favorites_key("42") == "favorites_42"
    assert favorites_key(None) == "favorites_guest"


def test_state_holder_replays_current_value():
    holder = StateHolder(1)
    seen = []
    holder.subscribe(seen.append)
    holder.next(2)
    assert seen == [1, 2]
    assert holder.value == 2


def test_state_holder_without_replay_and_unsubscribe():
    holder = StateHolder("a")
    seen = []
    unsubscribe = holder.subscribe(seen.append, replay=False)
    holder.next("b")
    unsubscribe()
    holder.next("c")
    assert seen == ["b"]
    assert holder.subscriber_count == 0


def test_state_holder_isolates_failing_subscriber():
    holder = StateHolder(0)
    seen = []

    def broken(value):
        if value:
            raise RuntimeError("boom")

    holder.subscribe(broken)
    holder.subscribe(seen.append)
    holder.next(5)
    assert seen == [0, 5]
