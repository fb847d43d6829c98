#!/usr/bin/env python3
"""Tests for validate_backup schema validation."""

import json

from validate_backup import main, validate_backup_file
from gigledger.backup import load_schema


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        assert schema["required"] == ["version", "timestamp", "data"]
        assert "earningsRecords" in schema["properties"]["data"]["properties"]


class TestValidateBackupFile:
    """Tests for validate_backup_file function."""

    def test_valid_export_returns_no_errors(self, ledger, vehicle, tmp_path):
        """A file written by save_backup validates cleanly."""
        path = tmp_path / "backup.json"
        ledger.save_backup(path)
        assert validate_backup_file(path, load_schema()) == []

    def test_minimal_snapshot(self, tmp_path):
        path = tmp_path / "minimal.json"
        path.write_text(json.dumps({"version": 1, "timestamp": "2024-01-15T09:00:00", "data": {}}))
        assert validate_backup_file(path, load_schema()) == []

    def test_invalid_json_returns_parse_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json")
        errors = validate_backup_file(path, load_schema())
        assert len(errors) == 1
        assert "JSON parse error" in errors[0]

    def test_missing_file(self, tmp_path):
        errors = validate_backup_file(tmp_path / "missing.json", load_schema())
        assert errors and errors[0].startswith("Error:")

    def test_bad_enum_reports_path(self, tmp_path):
        """Invalid vehicle type is reported with its location."""
        path = tmp_path / "bad.json"
        snapshot = {
            "version": 1,
            "timestamp": "2024-01-15T09:00:00",
            "data": {
                "vehicles": [
                    {"id": "v1", "type": "truck", "brand": "Volvo", "model": "FH", "year": 2020, "currentKm": 0}
                ]
            },
        }
        path.write_text(json.dumps(snapshot))
        errors = validate_backup_file(path, load_schema())
        assert errors[0].startswith("Schema validation error")
        assert "data.vehicles.0.type" in errors[1]


class TestMain:
    def test_reports_each_file(self, tmp_path, capsys):
        good = tmp_path / "good.json"
        good.write_text(json.dumps({"version": 1, "timestamp": "t", "data": {}}))
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"version": 1}))
        assert main([str(good), str(bad)]) == 1
        out = capsys.readouterr().out
        assert "OK: good.json" in out
        assert "FAIL: bad.json" in out

    def test_default_directory(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        assert main([]) == 1
        (tmp_path / "backups").mkdir()
        assert main([]) == 0
        assert "No backup files found" in capsys.readouterr().out
