#!/usr/bin/env python3
"""
Tests for RecurringCostEngine.

Covers the cost template rules:
1. unique - one ledger row, no template
2. fixed_monthly - one row per calendar month, sweep is idempotent
3. installments - N rows up front, one calendar month apart (clamped)
4. km_based - one row each time the odometer crosses the next threshold
5. custom_days - template stored, no automatic generation
"""

from datetime import date

import pytest

from gigledger import (
    CostType,
    InvariantError,
    Ledger,
    PersistenceError,
    ValidationError,
    YamlStore,
)


class FlakyStore(YamlStore):
    """Store whose cost inserts fail once ``fail`` is set."""

    fail = False

    def insert(self, kind, record):
        if self.fail and kind == "costs":
            raise OSError("disk full")
        super().insert(kind, record)


class TestUniqueCost:
    def test_single_row_no_template(self, ledger, insurance):
        cost = ledger.recurring.add_cost(insurance.id, 120, "Annual fee", date(2024, 1, 10))
        assert ledger.state.costs == [cost]
        assert ledger.state.cost_configs == []
        assert cost.category_name == "Insurance"
        assert cost.config_id is None

    def test_negative_value_rejected(self, ledger, insurance):
        with pytest.raises(ValidationError):
            ledger.recurring.add_cost(insurance.id, -5, None, date(2024, 1, 10))
        assert ledger.state.costs == []

    def test_unknown_category_rejected(self, ledger):
        with pytest.raises(ValidationError):
            ledger.recurring.add_cost("nope", 5, None, date(2024, 1, 10))

    def test_delete_cost(self, ledger, insurance):
        cost = ledger.recurring.add_cost(insurance.id, 120, None, date(2024, 1, 10))
        ledger.recurring.delete_cost(cost.id)
        assert ledger.state.costs == []


class TestFixedMonthly:
    """Tests for the monthly sweep."""

    @pytest.fixture
    def config(self, ledger, insurance):
        ledger.recurring.add_cost(
            insurance.id, 500, "Insurance", date(2024, 1, 1), CostType.FIXED_MONTHLY
        )
        return ledger.recurring.configs()[0]

    def test_first_row_created_with_template(self, ledger, config):
        (cost,) = ledger.state.costs
        assert cost.is_fixed
        assert cost.date == date(2024, 1, 1)
        assert cost.config_id == config.id
        assert config.last_date == date(2024, 1, 1)

    def test_one_row_per_month(self, ledger, config):
        """Sweeps on the 1st, the 15th and next month's 2nd: 2 rows, not 3."""
        ledger.recurring.sweep(date(2024, 1, 1))
        ledger.recurring.sweep(date(2024, 1, 15))
        ledger.recurring.sweep(date(2024, 2, 2))
        dates = sorted(c.date for c in ledger.state.costs)
        assert dates == [date(2024, 1, 1), date(2024, 2, 1)]

    def test_sweep_twice_same_month_is_idempotent(self, ledger, config):
        first = ledger.recurring.sweep(date(2024, 3, 5))
        second = ledger.recurring.sweep(date(2024, 3, 28))
        assert len(first) == 1
        assert second == []

    def test_generated_row(self, ledger, config, notifier):
        (cost,) = ledger.recurring.sweep(date(2024, 2, 10))
        assert cost.date == date(2024, 2, 1)
        assert cost.value == 500
        assert cost.description == "Insurance"
        assert ledger.state.get("cost_configs", config.id).last_date == date(2024, 2, 10)
        assert notifier.costs == [cost]

    def test_default_description(self, ledger, insurance):
        ledger.recurring.add_cost(insurance.id, 50, None, date(2024, 1, 1), CostType.FIXED_MONTHLY)
        (cost,) = ledger.recurring.sweep(date(2024, 2, 1))
        assert cost.description == "Fixed monthly cost"

    def test_future_start_not_swept(self, ledger, insurance):
        ledger.recurring.add_cost(insurance.id, 50, None, date(2024, 3, 1), CostType.FIXED_MONTHLY)
        assert ledger.recurring.sweep(date(2024, 2, 10)) == []

    def test_deactivated_template_not_swept(self, ledger, config):
        ledger.recurring.deactivate_config(config.id)
        assert ledger.recurring.sweep(date(2024, 2, 10)) == []
        assert len(ledger.state.costs) == 1

    def test_run_daily_sweeps(self, ledger, config, clock):
        clock.set(2024, 2, 3, 8, 0)
        generated = ledger.run_daily()
        assert [c.date for c in generated] == [date(2024, 2, 1)]


class TestInstallments:
    def test_six_rows_one_month_apart(self, ledger, insurance):
        ledger.recurring.add_cost(
            insurance.id, 100, "Phone", date(2024, 1, 31), CostType.INSTALLMENTS, installments=6
        )
        costs = sorted(ledger.state.costs, key=lambda c: c.date)
        assert [c.date for c in costs] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
            date(2024, 5, 31),
            date(2024, 6, 30),
        ]

    def test_descriptions_and_template(self, ledger, insurance):
        ledger.recurring.add_cost(
            insurance.id, 100, "Phone", date(2024, 1, 10), CostType.INSTALLMENTS, installments=3
        )
        costs = sorted(ledger.state.costs, key=lambda c: c.date)
        assert [c.description for c in costs] == ["Phone", "Phone (2/3)", "Phone (3/3)"]
        (config,) = ledger.recurring.configs()
        assert config.installments_total == 3
        assert config.installments_paid == 1
        assert all(c.config_id == config.id for c in costs)

    @pytest.mark.parametrize("count", [0, None, 2.5])
    def test_invalid_count_writes_nothing(self, ledger, insurance, count):
        with pytest.raises(ValidationError):
            ledger.recurring.add_cost(
                insurance.id, 100, "Phone", date(2024, 1, 10), CostType.INSTALLMENTS, installments=count
            )
        assert ledger.state.costs == []
        assert ledger.state.cost_configs == []


class TestKmBased:
    """Tests for odometer-triggered costs."""

    @pytest.fixture
    def config(self, ledger, vehicle, maintenance_category):
        ledger.recurring.add_cost(
            maintenance_category.id,
            80,
            "Oil",
            date(2024, 1, 15),
            CostType.KM_BASED,
            vehicle_id=vehicle.id,
            interval_km=1000,
        )
        return ledger.recurring.configs()[0]

    def test_last_km_starts_at_odometer(self, config):
        assert config.last_km == 9800
        assert config.next_trigger_km == 10800

    def test_below_threshold_generates_nothing(self, ledger, vehicle, config):
        ledger.vehicles.update_km(vehicle.id, 10799)
        assert len(ledger.state.costs) == 1

    def test_crossing_threshold_generates_row(self, ledger, vehicle, config, notifier, clock):
        ledger.vehicles.update_km(vehicle.id, 10850)
        generated = [c for c in ledger.state.costs if c.description.startswith("Automatic")]
        assert len(generated) == 1
        cost = generated[0]
        assert cost.description == "Automatic maintenance: Oil"
        assert cost.date == clock().date()
        assert cost.vehicle_id == vehicle.id
        assert ledger.state.get("cost_configs", config.id).last_km == 10850
        assert notifier.costs == [cost]

    def test_resets_from_triggering_reading(self, ledger, vehicle, config):
        ledger.vehicles.update_km(vehicle.id, 10850)
        ledger.vehicles.update_km(vehicle.id, 11800)
        assert len(ledger.state.costs) == 2
        ledger.vehicles.update_km(vehicle.id, 11850)
        assert len(ledger.state.costs) == 3

    def test_other_vehicle_not_affected(self, ledger, vehicle, config):
        other = ledger.vehicles.add_vehicle("moto", "Yamaha", "Factor", 2022, current_km=0)
        ledger.vehicles.update_km(other.id, 5000)
        assert len(ledger.state.costs) == 1

    def test_requires_vehicle(self, ledger, maintenance_category):
        with pytest.raises(InvariantError):
            ledger.recurring.add_cost(
                maintenance_category.id, 80, "Oil", date(2024, 1, 15), CostType.KM_BASED, interval_km=1000
            )
        assert ledger.state.costs == []
        assert ledger.state.cost_configs == []

    def test_requires_interval(self, ledger, vehicle, maintenance_category):
        with pytest.raises(ValidationError):
            ledger.recurring.add_cost(
                maintenance_category.id, 80, "Oil", date(2024, 1, 15), CostType.KM_BASED, vehicle_id=vehicle.id
            )

    def test_odometer_and_cost_commit_together(self, clock, notifier):
        """A failed cost write also rolls back the odometer and the template."""
        store = FlakyStore()
        ledger = Ledger(store, notifier=notifier, clock=clock).open()
        vehicle = ledger.vehicles.add_vehicle("car", "Fiat", "Uno", 2015, current_km=9800)
        category = ledger.catalog.find_category("Maintenance")
        ledger.recurring.add_cost(
            category.id, 80, "Oil", date(2024, 1, 15), CostType.KM_BASED,
            vehicle_id=vehicle.id, interval_km=1000,
        )
        config = ledger.recurring.configs()[0]

        store.fail = True
        with pytest.raises(PersistenceError):
            ledger.vehicles.update_km(vehicle.id, 11000)

        assert ledger.state.get("vehicles", vehicle.id).current_km == 9800
        assert store.get("vehicles", vehicle.id)["currentKm"] == 9800
        assert ledger.state.get("cost_configs", config.id).last_km == 9800
        assert store.get("cost_configs", config.id)["lastKm"] == 9800
        assert len(ledger.state.costs) == 1
        assert notifier.costs == []


class TestCustomDays:
    def test_template_stored_without_generation(self, ledger, insurance):
        ledger.recurring.add_cost(
            insurance.id, 30, "Car wash", date(2024, 1, 1), CostType.CUSTOM_DAYS, interval_days=15
        )
        assert len(ledger.recurring.configs()) == 1
        assert ledger.recurring.sweep(date(2024, 3, 1)) == []
        assert len(ledger.state.costs) == 1


class TestMonthlyCostTotal:
    @pytest.fixture
    def costs(self, ledger, insurance):
        ledger.recurring.add_cost(insurance.id, 500, None, date(2024, 1, 1), CostType.FIXED_MONTHLY)
        ledger.recurring.add_cost(insurance.id, 100, None, date(2024, 1, 20))

    def test_current_month_ledger(self, ledger, costs):
        assert ledger.recurring.monthly_cost_total(date(2024, 1, 15)) == 600

    def test_unswept_template_is_projected(self, ledger, costs):
        assert ledger.recurring.monthly_cost_total(date(2024, 2, 15)) == 500

    def test_swept_template_not_counted_twice(self, ledger, costs):
        ledger.recurring.sweep(date(2024, 2, 1))
        assert ledger.recurring.monthly_cost_total(date(2024, 2, 15)) == 500

    def test_template_not_yet_started(self, ledger, costs):
        assert ledger.recurring.monthly_cost_total(date(2023, 12, 15)) == 0

    def test_costs_for_month(self, ledger, costs):
        costs = ledger.recurring.costs_for_month(date(2024, 1, 1))
        assert [c.value for c in costs] == [500, 100]
