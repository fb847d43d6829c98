#!/usr/bin/env python3
"""Tests for the ledger CLI: formatting helpers, tables and commands."""

from datetime import date, datetime

import pytest

from gigledger import Cost, CostType, Maintenance
from ledger import (
    format_days,
    format_km,
    format_money,
    format_percent,
    main,
    make_cost_table,
    make_maintenance_table,
    parse_month,
    parse_variable_costs,
    truncate,
)


class TestFormatKm:
    """Tests for format_km."""

    def test_formats_number(self):
        assert format_km(50000) == "50,000"
        assert format_km(0) == "0"

    def test_none_returns_dash(self):
        assert format_km(None) == "-"


class TestFormatMoney:
    def test_formats_number(self):
        assert format_money(1234.5) == "1,234.50"
        assert format_money(0) == "0.00"

    def test_none_returns_dash(self):
        assert format_money(None) == "-"


class TestFormatDays:
    """Tests for format_days."""

    def test_none_returns_dash(self):
        assert format_days(None) == "-"

    def test_positive_months_and_days(self):
        assert format_days(105) == "3mo 15d"

    def test_days_only(self):
        assert format_days(14) == "14d"

    def test_negative_overdue_months(self):
        assert format_days(-65) == "-2mo 5d"

    def test_negative_overdue_days_only(self):
        assert format_days(-3) == "-3d"


class TestSmallHelpers:
    def test_percent(self):
        assert format_percent(62.5) == "62%"
        assert format_percent(100) == "100%"

    def test_truncate(self):
        assert truncate(None) == "-"
        assert truncate("short") == "short"
        assert truncate("a" * 40) == "a" * 27 + "..."
        assert truncate("abcdefghij", max_len=8) == "abcde..."

    def test_parse_month(self):
        assert parse_month("2024-02") == date(2024, 2, 1)
        assert parse_month("2024-02-17") == date(2024, 2, 1)
        assert parse_month(None) == date.today().replace(day=1)

    def test_parse_variable_costs(self):
        costs = parse_variable_costs(["Fuel:50", "toll:7.5"])
        assert [(c.type, c.value) for c in costs] == [("fuel", 50.0), ("toll", 7.5)]
        assert parse_variable_costs(None) == []


class TestTables:
    def test_maintenance_row(self):
        m = Maintenance(
            "m1",
            "v1",
            "Oil change",
            interval_km=5000,
            interval_days=180,
            last_km=10000,
            last_date=date(2024, 1, 1),
        )
        m.next_km = 15000
        m.next_date = date(2024, 6, 29)
        (row,) = make_maintenance_table([m], 12000, date(2024, 1, 15))
        assert row == ["Oil change", "2024-01-01 @ 10,000", "15,000", "2024-06-29", "3,000", "5mo 16d"]

    def test_maintenance_row_never_done(self):
        m = Maintenance("m1", "v1", "Tyres", interval_days=365)
        (row,) = make_maintenance_table([m], 0, date(2024, 1, 15))
        assert row[1] == "-"

    def test_cost_row(self):
        cost = Cost(
            "c1", "cat", "Insurance", 150, date(2024, 1, 1),
            description="Monthly policy", type_snapshot=CostType.FIXED_MONTHLY,
        )
        assert make_cost_table([cost]) == [
            ["2024-01-01", "Insurance", "fixed_monthly", "150.00", "Monthly policy"]
        ]


class TestCommands:
    """End-to-end runs of main() against a temporary data file."""

    @pytest.fixture
    def run(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GIGLEDGER_DATA_FILE", raising=False)
        data = tmp_path / "ledger.yaml"

        def run(*args):
            code = main(["--data", str(data), *args])
            return code, capsys.readouterr().out

        return run

    def test_vehicle_flow(self, run):
        code, out = run("vehicles")
        assert code == 0
        assert "No vehicles registered." in out

        code, out = run("add-vehicle", "car", "Honda", "Civic", "2020", "--plate", "abc1234", "--km", "9800")
        assert code == 0
        assert "2020 Honda Civic (ABC1234)" in out

        code, out = run("vehicles")
        assert "ABC1234" in out
        assert "9,800" in out

    def test_update_km_dry_run_then_real(self, run):
        run("add-vehicle", "moto", "Honda", "CG", "2022", "--km", "1000")
        code, out = run("update-km", "1500", "--dry-run")
        assert "(dry run - no changes made)" in out
        code, out = run("vehicles")
        assert "1,000" in out

        code, out = run("update-km", "1500")
        assert code == 0
        assert "Odometer updated." in out
        code, out = run("vehicles")
        assert "1,500" in out

    def test_odometer_backwards_is_an_error(self, run):
        run("add-vehicle", "moto", "Honda", "CG", "2022", "--km", "1000")
        code, out = run("update-km", "900")
        assert code == 1
        assert out.startswith("Error:")

    def test_monthly_report(self, run):
        code, out = run("report", "--month", "2024-01")
        assert code == 0
        assert "Month: 2024-01" in out
        assert "No earnings this month." in out

        run("earn", "uber", "150", "--date", "2024-01-10", "--cost", "fuel:30")
        code, out = run("report", "--month", "2024-01")
        assert "Best days:" in out
        assert "2024-01-10 (Wednesday): 120.00" in out

    def test_dry_run_rejects_backwards_reading(self, run):
        run("add-vehicle", "moto", "Honda", "CG", "2022", "--km", "1000")
        code, out = run("update-km", "900", "--dry-run")
        assert code == 1
        assert out.startswith("Error:")
        assert "dry run" not in out

    def test_maintenance_flow(self, run):
        run("add-vehicle", "car", "Fiat", "Uno", "2010", "--km", "10000")
        code, out = run("add-maintenance", "Oil change", "--interval-km", "5000")
        assert code == 0
        assert "15,000" in out

        run("update-km", "15100")
        code, out = run("status")
        assert "OVERDUE:" in out
        assert "Oil change" in out

        code, out = run("complete", "oil change")
        assert code == 0
        assert "Next: 20,100 km" in out

    def test_unknown_vehicle(self, run):
        code, out = run("status", "--vehicle", "XYZ9999")
        assert code == 1
        assert "Unknown vehicle" in out

    def test_costs(self, run):
        code, out = run("add-cost", "insurance", "150", "--type", "fixed_monthly", "--date", "2024-03-10")
        assert code == 0
        code, out = run("costs", "--month", "2024-03")
        assert "Insurance" in out
        assert "150.00" in out

    def test_unknown_category(self, run):
        code, out = run("add-cost", "Parking", "10")
        assert code == 1
        assert "Available categories:" in out

    def test_earn_and_target(self, run):
        run("add-vehicle", "car", "Fiat", "Uno", "2010", "--km", "10000")
        code, out = run("earn", "uber", "250", "--km", "120", "--hours", "8", "--cost", "fuel:60")
        assert code == 0
        assert "250.00 gross, 190.00 net on Uber" in out

        code, out = run("vehicles")
        assert "10,120" in out

        code, out = run("target")
        assert code == 0
        assert "Net earned:     190.00" in out

    def test_account(self, run):
        code, out = run("account")
        assert code == 0
        assert "Cost" in out and "Profit" in out

    def test_track(self, run, tmp_path):
        track = tmp_path / "trip.yaml"
        start = datetime(2024, 1, 15, 9, 0).isoformat()
        track.write_text(
            f"- {{latitude: 0, longitude: 0, timestamp: '{start}', accuracy: 5}}\n"
            f"- {{latitude: 0, longitude: 0.01, timestamp: '{start}', accuracy: 5}}\n"
            f"- {{latitude: 0, longitude: 0.02, timestamp: '{start}', accuracy: 500}}\n"
        )
        run("add-vehicle", "car", "Fiat", "Uno", "2010", "--km", "100")
        code, out = run("track", str(track))
        assert code == 0
        assert "Samples: 3 sent, 2 accepted" in out
        assert "Distance: 1.11 km" in out

        code, out = run("vehicles")
        assert "101" in out

    def test_export_and_import(self, run, tmp_path):
        backup = tmp_path / "backup.json"
        run("add-vehicle", "car", "Fiat", "Uno", "2010")
        code, out = run("export", str(backup))
        assert code == 0
        assert backup.exists()

        code, out = run("import", str(backup))
        assert code == 1
        assert "--yes" in out

        code, out = run("import", str(backup), "--yes")
        assert code == 0
        assert "Backup restored." in out
