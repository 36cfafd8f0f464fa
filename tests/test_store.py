"""
Tests for SecretStore.

Tests cover:
- Loading (missing, valid, corrupt, non-object files)
- Shallow merge, removal, and copy isolation
- Saving (format, permissions, temp file cleanup)
- One instance per path
"""
import json
import os
import stat

import pytest

from models.store import SecretStore
from utils import get_storage_path
from wallet.errors import PersistenceError


class TestLoad:
    """Reading the storage file."""

    def test_missing_file_is_empty(self, storage_path):
        store = SecretStore(storage_path)
        assert store.load() == {}
        assert not storage_path.exists()

    def test_existing_file(self, storage_path):
        storage_path.write_text(json.dumps({"a": 1, "tokens": ["x"]}))
        store = SecretStore(storage_path)
        assert store.load() == {"a": 1, "tokens": ["x"]}

    def test_corrupt_file_raises(self, storage_path):
        storage_path.write_text("{not json")
        with pytest.raises(PersistenceError):
            SecretStore(storage_path).load()
        # The unreadable file is left for the user to recover
        assert storage_path.read_text() == "{not json"

    def test_non_object_root_raises(self, storage_path):
        storage_path.write_text("[1, 2, 3]")
        with pytest.raises(PersistenceError):
            SecretStore(storage_path).load()


class TestMerge:
    """set_data() and remove() act on the in-memory record only."""

    def test_shallow_merge(self, store):
        store.set_data({"a": 1, "nested": {"x": 1, "y": 2}})
        store.set_data({"b": 2, "nested": {"x": 9}})
        assert store.get_data() == {"a": 1, "b": 2, "nested": {"x": 9}}

    def test_last_writer_wins(self, store):
        store.set_data({"a": 1})
        store.set_data({"a": 2})
        assert store.get_data()["a"] == 2

    def test_get_data_is_a_copy(self, store):
        store.set_data({"list": [1]})
        store.get_data()["list"].append(2)
        assert store.get_data() == {"list": [1]}

    def test_set_data_copies_input(self, store):
        partial = {"list": [1]}
        store.set_data(partial)
        partial["list"].append(2)
        assert store.get_data() == {"list": [1]}

    def test_not_saved_until_save(self, store, storage_path):
        store.set_data({"a": 1})
        assert not storage_path.exists()

    def test_remove(self, store):
        store.set_data({"a": 1, "b": 2})
        store.remove("a", "missing")
        assert store.get_data() == {"b": 2}


class TestSave:
    """Writing the storage file."""

    def test_round_trip_through_disk(self, store, storage_path):
        store.set_data({"a": 1, "b": {"c": [1, 2]}})
        store.save()
        assert json.loads(storage_path.read_text()) == {"a": 1, "b": {"c": [1, 2]}}

        reloaded = SecretStore(storage_path)
        assert reloaded.load() == {"a": 1, "b": {"c": [1, 2]}}

    def test_indented_json(self, store, storage_path):
        store.set_data({"a": 1})
        store.save()
        assert storage_path.read_text() == '{\n  "a": 1\n}'

    def test_unknown_keys_survive(self, storage_path):
        storage_path.write_text(json.dumps({"tokens": ["USDC"], "theme": "dark"}))
        store = SecretStore.get_instance(storage_path)
        store.set_data({"addresses": ["0xabc"]})
        store.save()
        assert json.loads(storage_path.read_text()) == {
            "tokens": ["USDC"], "theme": "dark", "addresses": ["0xabc"],
        }

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "deep" / "dir" / "storage.json"
        store = SecretStore(path)
        store.set_data({"a": 1})
        store.save()
        assert path.exists()

    def test_no_temp_file_left(self, store, storage_path):
        store.set_data({"a": 1})
        store.save()
        assert list(storage_path.parent.glob("*.tmp")) == []

    @pytest.mark.skipif(os.name != "posix", reason="Unix permissions only")
    def test_owner_only_permissions(self, store, storage_path):
        store.set_data({"a": 1})
        store.save()
        assert stat.S_IMODE(storage_path.stat().st_mode) == 0o600

    def test_write_failure_raises(self, tmp_path):
        # Parent "directory" is a regular file, so nothing can be written
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = SecretStore(blocker / "storage.json")
        store.set_data({"a": 1})
        with pytest.raises(PersistenceError):
            store.save()


class TestInstances:
    """get_instance() shares one store per resolved path."""

    def test_same_path_same_instance(self, storage_path):
        assert SecretStore.get_instance(storage_path) is SecretStore.get_instance(storage_path)

    def test_equivalent_paths_share(self, storage_path):
        alias = storage_path.parent / "." / storage_path.name
        assert SecretStore.get_instance(storage_path) is SecretStore.get_instance(alias)

    def test_different_paths(self, tmp_path):
        a = SecretStore.get_instance(tmp_path / "a.json")
        b = SecretStore.get_instance(tmp_path / "b.json")
        assert a is not b

    def test_shared_writes_visible(self, storage_path):
        SecretStore.get_instance(storage_path).set_data({"a": 1})
        assert SecretStore.get_instance(storage_path).get_data() == {"a": 1}

    def test_default_path(self, wallet_home):
        store = SecretStore.get_instance()
        assert store.path == get_storage_path().resolve()
        assert store.path.parent == wallet_home.resolve()

    def test_clear_instances_reloads(self, storage_path):
        first = SecretStore.get_instance(storage_path)
        first.set_data({"a": 1})
        first.save()
        SecretStore.clear_instances()
        second = SecretStore.get_instance(storage_path)
        assert second is not first
        assert second.get_data() == {"a": 1}
