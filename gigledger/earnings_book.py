"""Earnings records: entry, edits and day-level queries."""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from .earnings import VARIABLE_COST_TYPES, EarningsRecord, VariableCost
from .errors import ValidationError
from .ids import new_id
from .state import AppState, Transaction, synchronized
from .validation import require_number
from .vehicles import VehicleService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "date",
    "app_id",
    "gross_earnings",
    "variable_costs",
    "hours_worked",
    "km_driven",
    "vehicle_id",
    "session_id",
)


def variable_cost(
    type: str,
    value: float,
    liters: Optional[float] = None,
    description: Optional[str] = None,
) -> VariableCost:
    """Build a validated VariableCost with a fresh id."""
    if type not in VARIABLE_COST_TYPES:
        raise ValidationError(f"Variable cost type must be one of {VARIABLE_COST_TYPES}")
    require_number(value, "Variable cost value")
    return VariableCost(new_id(), type, value, liters, description)


class EarningsBook:
    """Earnings records and the queries the home screen needs."""

    def __init__(
        self,
        state: AppState,
        vehicles: VehicleService,
        clock: Callable[[], datetime],
    ):
        self.state = state
        self.vehicles = vehicles
        self.clock = clock

    @synchronized
    def add_record(
        self,
        date: date,
        app_id: str,
        gross_earnings: float,
        variable_costs: Optional[List[VariableCost]] = None,
        hours_worked: Optional[float] = None,
        km_driven: Optional[float] = None,
        vehicle_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> EarningsRecord:
        """
        Register earnings. Driven km advance the vehicle's odometer (the
        given vehicle, else the default one) in the same write.
        """
        tx = self.state.begin()
        record = self.stage_record(
            tx,
            date,
            app_id,
            gross_earnings,
            variable_costs,
            hours_worked,
            km_driven,
            vehicle_id,
            session_id,
        )
        self.state.commit(tx)
        logger.info("Earnings %.2f net on %s (%s)", record.net_earnings, date, record.app_name)
        return record

    def stage_record(
        self,
        tx: Transaction,
        date: date,
        app_id: str,
        gross_earnings: float,
        variable_costs: Optional[List[VariableCost]] = None,
        hours_worked: Optional[float] = None,
        km_driven: Optional[float] = None,
        vehicle_id: Optional[str] = None,
        session_id: Optional[str] = None,
        advance_odometer: bool = True,
    ) -> EarningsRecord:
        app = self.state.require("apps", app_id)
        if not app.active:
            raise ValidationError(f"App '{app.name}' is inactive")
        require_number(gross_earnings, "gross_earnings")
        if hours_worked is not None:
            require_number(hours_worked, "hours_worked")
        if km_driven is not None:
            require_number(km_driven, "km_driven")

        if km_driven and vehicle_id is None and advance_odometer:
            default = self.vehicles.active_vehicle()
            vehicle_id = default.id if default else None
        if vehicle_id is not None:
            self.state.require("vehicles", vehicle_id)

        record = EarningsRecord(
            new_id(),
            date,
            app.id,
            app.name,
            gross_earnings,
            variable_costs=list(variable_costs or []),
            hours_worked=hours_worked,
            km_driven=km_driven,
            vehicle_id=vehicle_id,
            session_id=session_id,
            created_at=self.clock(),
        )
        tx.insert("earnings", record)

        if advance_odometer and km_driven and vehicle_id is not None:
            vehicle = tx.current("vehicles", vehicle_id)
            self.vehicles.stage_km_update(tx, vehicle_id, vehicle.current_km + km_driven)
        return record

    @synchronized
    def update_record(self, record_id: str, **fields) -> EarningsRecord:
        """
        Edit a record with the same checks as entry. Moving a record to an
        inactive app is rejected; edits never move the odometer.
        """
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit earnings field(s): {', '.join(sorted(unknown))}")
        current = self.state.require("earnings", record_id)
        if "app_id" in fields:
            app = self.state.require("apps", fields["app_id"])
            if not app.active and app.id != current.app_id:
                raise ValidationError(f"App '{app.name}' is inactive")
            fields["app_name"] = app.name
        if "date" in fields and not isinstance(fields["date"], date):
            raise ValidationError("date must be a date")
        if "gross_earnings" in fields:
            require_number(fields["gross_earnings"], "gross_earnings")
        for name in ("hours_worked", "km_driven"):
            if fields.get(name) is not None:
                require_number(fields[name], name)
        if fields.get("vehicle_id") is not None:
            self.state.require("vehicles", fields["vehicle_id"])
        if fields.get("session_id") is not None:
            self.state.require("sessions", fields["session_id"])
        if "variable_costs" in fields:
            costs = list(fields["variable_costs"] or [])
            if not all(isinstance(c, VariableCost) for c in costs):
                raise ValidationError("variable_costs must be built with variable_cost()")
            fields["variable_costs"] = costs
        tx = self.state.begin()
        record = tx.update("earnings", record_id, **fields)
        self.state.commit(tx)
        return record

    @synchronized
    def delete_record(self, record_id: str) -> None:
        tx = self.state.begin()
        tx.delete("earnings", record_id)
        self.state.commit(tx)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def records_for_day(self, day: date) -> List[EarningsRecord]:
        return sorted(
            (r for r in self.state.earnings if r.date == day),
            key=lambda r: r.created_at,
        )

    def records_between(self, start: date, end: date) -> List[EarningsRecord]:
        return [r for r in self.state.earnings if start <= r.date <= end]

    def records_for_app(
        self, app_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[EarningsRecord]:
        records = [r for r in self.state.earnings if r.app_id == app_id]
        if start is not None and end is not None:
            records = [r for r in records if start <= r.date <= end]
        return records

    def net_for_day(self, day: date) -> float:
        return sum(r.net_earnings for r in self.records_for_day(day))

    def today_earnings(self, today: Optional[date] = None) -> float:
        return self.net_for_day(today or self.clock().date())

    def today_km(self, today: Optional[date] = None) -> float:
        day = today or self.clock().date()
        return sum(r.km_driven or 0 for r in self.records_for_day(day))

    def average_km_per_day(self, today: Optional[date] = None) -> int:
        """Average km per day that has records, up to today."""
        day = today or self.clock().date()
        records = [r for r in self.state.earnings if r.date <= day]
        days = {r.date for r in records}
        if not days:
            return 0
        total = sum(r.km_driven or 0 for r in records)
        return round(total / len(days))
