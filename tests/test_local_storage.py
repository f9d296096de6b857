"""Tests for LocalStorage."""

import json

import pytest

from bistro.errors import InvalidStoredValueError
from bistro.local_storage import LocalStorage, is_valid_session_id


class TestLocalStorage:
    def test_missing_key_is_none(self, storage):
        assert storage.get_item("cart") is None
        assert storage.get_json("cart") is None

    def test_set_and_get(self, storage):
        storage.set_item("guestId", "guest_123")
        assert storage.get_item("guestId") == "guest_123"

    def test_values_persist_across_instances(self, temp_dir):
        LocalStorage(temp_dir, "abc").set_json("cart", [{"id": "1"}])
        assert LocalStorage(temp_dir, "abc").get_json("cart") == [{"id": "1"}]

    def test_sessions_are_isolated(self, temp_dir):
        LocalStorage(temp_dir, "one").set_item("guestId", "guest_1")
        assert LocalStorage(temp_dir, "two").get_item("guestId") is None

    def test_values_stored_as_serialized_strings(self, storage):
        storage.set_json("orders", [{"id": "order_1"}])
        with open(storage.storage_path, encoding="utf-8") as f:
            raw = json.load(f)
        assert raw == {"orders": '[{"id": "order_1"}]'}

    def test_remove_and_clear(self, storage):
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.remove_item("a")
        assert storage.keys() == ["b"]
        storage.remove_item("missing")
        storage.clear()
        assert storage.keys() == []

    def test_malformed_value_raises(self, storage):
        storage.set_item("cart", "{not json")
        with pytest.raises(InvalidStoredValueError):
            storage.get_json("cart")

    def test_corrupted_file_reads_as_empty(self, storage):
        storage.storage_dir.mkdir(parents=True)
        storage.storage_path.write_text("garbage")
        assert storage.get_item("cart") is None

        storage.set_item("cart", "[]")
        assert storage.get_item("cart") == "[]"

    def test_no_temp_files_left_behind(self, storage):
        storage.set_item("a", "1")
        leftovers = [p.name for p in storage.storage_dir.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_lock_is_usable(self, storage):
        with storage.lock():
            storage.set_item("a", "1")
        assert storage.get_item("a") == "1"


class TestSessionIds:
    @pytest.mark.parametrize("session_id", ["abc", "A1_b-2", "f" * 32])
    def test_valid(self, session_id):
        assert is_valid_session_id(session_id)

    @pytest.mark.parametrize("session_id", ["", "../etc", "a/b", "a b", "x" * 65])
    def test_invalid(self, session_id):
        assert not is_valid_session_id(session_id)

    def test_constructor_rejects_unsafe_id(self, temp_dir):
        with pytest.raises(ValueError):
            LocalStorage(temp_dir, "../escape")
