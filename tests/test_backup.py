#!/usr/bin/env python3
"""Tests for snapshot export/import and backup files."""

import json
from datetime import date

import pytest

from gigledger import (
    CostType,
    GPSPoint,
    Ledger,
    PersistenceError,
    ValidationError,
    YamlStore,
    variable_cost,
)
from gigledger.backup import SNAPSHOT_KEYS, validate_snapshot


@pytest.fixture
def populated(ledger, vehicle, uber, insurance, maintenance_category):
    """A ledger with at least one row in every table."""
    ledger.update_work_day(0, True, 8)
    ledger.update_profit_settings(20)
    ledger.recurring.add_cost(insurance.id, 300, "Insurance", date(2024, 1, 15), CostType.FIXED_MONTHLY)
    cost = ledger.recurring.add_cost(maintenance_category.id, 90, "Oil", date(2024, 1, 15))
    oil = ledger.maintenance.add_maintenance(vehicle.id, "Oil change", interval_km=5000)
    ledger.maintenance.complete_maintenance(oil.id, 9800, cost_id=cost.id, notes="Synthetic")
    ledger.earnings.add_record(
        date(2024, 1, 15), uber.id, 180, [variable_cost("fuel", 40, liters=7)], hours_worked=6, km_driven=90
    )
    ledger.tracker.start(vehicle.id)
    ledger.tracker.stop()
    return ledger


class TestExport:
    def test_shape(self, populated, clock):
        snapshot = populated.export_snapshot()
        assert snapshot["version"] == 1
        assert snapshot["timestamp"] == clock().isoformat()
        assert set(snapshot["data"]) == set(SNAPSHOT_KEYS.values()) | {"workSchedule", "profitSettings"}
        assert validate_snapshot(snapshot) == []

    def test_is_json_serializable(self, populated):
        text = json.dumps(populated.export_snapshot())
        assert '"kmTrackerSessions"' in text

    def test_open_session_left_out(self, populated, vehicle):
        populated.tracker.start(vehicle.id)
        sessions = populated.export_snapshot()["data"]["kmTrackerSessions"]
        assert len(sessions) == 1
        assert sessions[0]["status"] == "completed"


class TestImport:
    def test_round_trip_into_fresh_ledger(self, populated, clock):
        snapshot = json.loads(json.dumps(populated.export_snapshot()))
        fresh = Ledger(YamlStore(), clock=clock).open()
        fresh.import_snapshot(snapshot)

        for kind in SNAPSHOT_KEYS:
            assert sorted(e.id for e in fresh.state.all(kind)) == sorted(
                e.id for e in populated.state.all(kind)
            )
        (oil,) = fresh.state.maintenances
        assert oil.history[0].notes == "Synthetic"
        assert fresh.state.earnings[0].net_earnings == 140
        assert fresh.state.work_schedule.day(0).hours == 8
        assert fresh.state.profit_settings.enabled
        assert fresh.export_snapshot()["data"] == snapshot["data"]

    def test_import_replaces_existing_data(self, populated, clock):
        empty = Ledger(YamlStore(), clock=clock).open().export_snapshot()
        populated.import_snapshot(empty)
        assert populated.state.vehicles == []
        assert populated.state.earnings == []
        assert len(populated.state.categories) == len(empty["data"]["categories"])

    @pytest.mark.parametrize(
        "snapshot",
        [
            None,
            {"version": 2, "timestamp": "x", "data": {}},
            {"version": 1, "timestamp": "x"},
            {"version": 1, "timestamp": "x", "data": {"vehicles": [{"id": "v1"}]}},
            {"version": 1, "timestamp": "x", "data": {"unknownTable": []}},
        ],
    )
    def test_invalid_snapshot_keeps_data(self, populated, snapshot):
        before = populated.export_snapshot()
        with pytest.raises(ValidationError):
            populated.import_snapshot(snapshot)
        assert populated.export_snapshot() == before

    def test_two_open_sessions_rejected(self, populated):
        snapshot = populated.export_snapshot()
        session = dict(snapshot["data"]["kmTrackerSessions"][0], status="active")
        snapshot["data"]["kmTrackerSessions"] = [
            dict(session, id="s1"),
            dict(session, id="s2"),
        ]
        with pytest.raises(ValidationError):
            populated.import_snapshot(snapshot)

    def test_import_drops_buffered_samples(self, populated, vehicle, clock):
        snapshot = populated.export_snapshot()
        session = dict(snapshot["data"]["kmTrackerSessions"][0], id="restored", status="active")
        snapshot["data"]["kmTrackerSessions"] = [session]
        populated.tracker.start(vehicle.id)
        populated.tracker.add_point(GPSPoint(0, 0, clock(), 5, None))
        populated.import_snapshot(snapshot)
        assert populated.tracker.active_session.id == "restored"
        assert populated.tracker.current_points() == []


class TestFiles:
    def test_save_and_load(self, populated, clock, tmp_path):
        filename = tmp_path / "backup.json"
        populated.save_backup(filename)
        fresh = Ledger(YamlStore(), clock=clock).open()
        fresh.load_backup(filename)
        assert len(fresh.state.costs) == len(populated.state.costs)

    def test_load_missing_file(self, ledger, tmp_path):
        with pytest.raises(PersistenceError):
            ledger.load_backup(tmp_path / "missing.json")

    def test_load_bad_json(self, ledger, tmp_path):
        filename = tmp_path / "broken.json"
        filename.write_text("{not json")
        with pytest.raises(ValidationError):
            ledger.load_backup(filename)
