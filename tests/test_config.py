#!/usr/bin/env python3
"""Tests for load_settings: defaults, YAML file and environment."""

import os

import pytest

from gigledger import Settings, load_settings


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run in an empty directory without GIGLEDGER_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in ("DATA_FILE", "SWEEP_INTERVAL_HOURS", "TICK_SECONDS", "GPS_ACCURACY_LIMIT_M",
                 "MAX_SESSION_POINTS", "POINT_BATCH_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv("GIGLEDGER_" + name, raising=False)
    return tmp_path


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.data_file is None
        assert settings.gps_accuracy_limit_m == 50
        assert settings.sweep_interval_seconds == 24 * 3600

    def test_default_file_in_working_directory(self, isolated):
        (isolated / "gigledger.yaml").write_text("data_file: mine.yaml\ntick-seconds: 2\n")
        settings = load_settings()
        assert settings.data_file == "mine.yaml"
        assert settings.tick_seconds == 2.0

    def test_explicit_file(self, isolated):
        path = isolated / "custom.yaml"
        path.write_text("max_session_points: 500\n")
        assert load_settings(path).max_session_points == 500

    def test_explicit_missing_file(self, isolated):
        with pytest.raises(FileNotFoundError):
            load_settings(isolated / "nope.yaml")

    def test_unknown_key_ignored(self, isolated):
        (isolated / "gigledger.yaml").write_text("colour: blue\n")
        assert isinstance(load_settings(), Settings)

    def test_environment_wins(self, isolated, monkeypatch):
        (isolated / "gigledger.yaml").write_text("gps_accuracy_limit_m: 30\n")
        monkeypatch.setenv("GIGLEDGER_GPS_ACCURACY_LIMIT_M", "20")
        assert load_settings().gps_accuracy_limit_m == 20.0

    def test_dotenv_file(self, isolated):
        (isolated / ".env").write_text("GIGLEDGER_LOG_LEVEL=DEBUG\n")
        try:
            assert load_settings().log_level == "DEBUG"
        finally:
            # load_dotenv writes into os.environ
            os.environ.pop("GIGLEDGER_LOG_LEVEL", None)

    def test_bad_value(self, monkeypatch):
        monkeypatch.setenv("GIGLEDGER_MAX_SESSION_POINTS", "lots")
        with pytest.raises(ValueError):
            load_settings()
