#!/usr/bin/env python3
"""Tests for the YAML store."""

import pytest
import yaml

from gigledger import PersistenceError, YamlStore


class TestYamlStoreCrud:
    """Tests for table CRUD."""

    @pytest.fixture
    def store(self, tmp_path):
        return YamlStore(tmp_path / "ledger.yaml")

    def test_insert_and_get(self, store):
        store.insert("vehicles", {"id": "v1", "brand": "Honda"})
        assert store.get("vehicles", "v1") == {"id": "v1", "brand": "Honda"}

    def test_get_returns_copy(self, store):
        store.insert("vehicles", {"id": "v1", "brand": "Honda"})
        store.get("vehicles", "v1")["brand"] = "Yamaha"
        assert store.get("vehicles", "v1")["brand"] == "Honda"

    def test_duplicate_id_rejected(self, store):
        store.insert("vehicles", {"id": "v1"})
        with pytest.raises(PersistenceError):
            store.insert("vehicles", {"id": "v1"})

    def test_update_merges_and_none_removes(self, store):
        store.insert("vehicles", {"id": "v1", "brand": "Honda", "plate": "ABC"})
        store.update("vehicles", "v1", {"currentKm": 100, "plate": None})
        assert store.get("vehicles", "v1") == {"id": "v1", "brand": "Honda", "currentKm": 100}

    def test_update_unknown_row(self, store):
        with pytest.raises(PersistenceError):
            store.update("vehicles", "nope", {"brand": "x"})

    def test_delete(self, store):
        store.insert("vehicles", {"id": "v1"})
        store.delete("vehicles", "v1")
        assert store.get("vehicles", "v1") is None
        assert store.get_all("vehicles") == []

    def test_writes_are_durable(self, tmp_path):
        filename = tmp_path / "ledger.yaml"
        store = YamlStore(filename)
        store.insert("costs", {"id": "c1", "value": 50})
        store.save_setting("profitSettings", {"isEnabled": True})

        reopened = YamlStore(filename)
        assert reopened.get("costs", "c1") == {"id": "c1", "value": 50}
        assert reopened.get_setting("profitSettings") == {"isEnabled": True}

    def test_file_layout(self, tmp_path):
        filename = tmp_path / "ledger.yaml"
        YamlStore(filename).insert("costs", {"id": "c1"})
        data = yaml.safe_load(filename.read_text())
        assert data["version"] == 1
        assert data["tables"] == {"costs": [{"id": "c1"}]}

    def test_memory_only_store(self):
        store = YamlStore()
        store.insert("costs", {"id": "c1"})
        assert store.get("costs", "c1") == {"id": "c1"}

    def test_corrupt_file_raises(self, tmp_path):
        filename = tmp_path / "ledger.yaml"
        filename.write_text("tables: [unclosed")
        with pytest.raises(PersistenceError):
            YamlStore(filename)


class TestYamlStoreAtomic:
    """Tests for grouped writes."""

    def test_rollback_on_error(self, tmp_path):
        filename = tmp_path / "ledger.yaml"
        store = YamlStore(filename)
        store.insert("cost_configs", {"id": "cfg1", "lastKm": 0})

        def work():
            store.insert("costs", {"id": "c1"})
            store.update("cost_configs", "cfg1", {"lastKm": 1000})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.run_atomic(work)

        assert store.get("costs", "c1") is None
        assert store.get("cost_configs", "cfg1")["lastKm"] == 0
        reopened = YamlStore(filename)
        assert reopened.get("costs", "c1") is None

    def test_commit_flushes_once_at_end(self, tmp_path):
        filename = tmp_path / "ledger.yaml"
        store = YamlStore(filename)
        with store.atomic():
            store.insert("costs", {"id": "c1"})
            assert not filename.exists()
        assert YamlStore(filename).get("costs", "c1") == {"id": "c1"}

    def test_nested_groups_join_outermost(self):
        store = YamlStore()
        with pytest.raises(ValueError):
            with store.atomic():
                store.insert("costs", {"id": "c1"})
                with store.atomic():
                    store.insert("costs", {"id": "c2"})
                raise ValueError("outer fails")
        assert store.get_all("costs") == []

    def test_run_atomic_returns_value(self):
        store = YamlStore()
        assert store.run_atomic(lambda: 42) == 42

    def test_replace_all(self):
        store = YamlStore()
        store.insert("costs", {"id": "old"})
        store.replace_all({"vehicles": [{"id": "v1"}]}, {"profitSettings": {"isEnabled": False}})
        assert store.get("costs", "old") is None
        assert store.get("vehicles", "v1") == {"id": "v1"}
        assert store.get_setting("profitSettings") == {"isEnabled": False}
