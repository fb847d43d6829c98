"""Maintenance items: due points, derived status and completions."""

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from .calculations import calc_next_date, calc_next_km, maintenance_status
from .errors import ValidationError
from .events import KmChanged
from .ids import new_id
from .maintenance import Maintenance, MaintenanceCompletion
from .notifications import dispatch
from .state import AppState, Transaction, synchronized
from .status import MaintenanceStatus
from .validation import require_number, require_positive, require_text

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "description",
    "interval_km",
    "interval_days",
    "last_km",
    "last_date",
    "estimated_cost",
    "active",
)


class MaintenanceEngine:
    """
    Keeps every maintenance item's ``next_km``, ``next_date`` and ``status``
    consistent with its intervals, the vehicle's odometer and the calendar.
    """

    def __init__(self, state: AppState, notifier: Any, clock: Callable[[], datetime]):
        self.state = state
        self.notifier = notifier
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    def _refresh(self, maintenance: Maintenance, current_km: float, today: date) -> None:
        """Recompute derived fields in place (on a staged copy)."""
        maintenance.next_km = calc_next_km(maintenance.last_km, maintenance.interval_km)
        maintenance.next_date = calc_next_date(maintenance.last_date, maintenance.interval_days)
        maintenance.status = maintenance_status(maintenance, current_km, today)

    def _notify_overdue(self, tx: Transaction, maintenance: Maintenance, vehicle: Any) -> None:
        tx.after_commit(
            lambda: dispatch(self.notifier, "maintenance_overdue", maintenance, vehicle)
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @synchronized
    def add_maintenance(
        self,
        vehicle_id: str,
        name: str,
        interval_km: Optional[float] = None,
        interval_days: Optional[int] = None,
        last_km: Optional[float] = None,
        last_date: Optional[date] = None,
        description: Optional[str] = None,
        estimated_cost: Optional[float] = None,
    ) -> Maintenance:
        """
        Add a maintenance item. At least one interval is required; a missing
        last value defaults to the vehicle's odometer or today.
        """
        vehicle = self.state.require("vehicles", vehicle_id)
        name = require_text(name, "Maintenance name")
        if not interval_km and not interval_days:
            raise ValidationError("A maintenance needs interval_km or interval_days")
        if interval_km:
            require_positive(interval_km, "interval_km")
        if interval_days:
            require_positive(interval_days, "interval_days")
        if last_km is not None:
            require_number(last_km, "last_km")
        if estimated_cost is not None:
            require_number(estimated_cost, "estimated_cost")

        today = self._today()
        if interval_km and last_km is None:
            last_km = vehicle.current_km
        if interval_days and last_date is None:
            last_date = today

        maintenance = Maintenance(
            new_id(),
            vehicle.id,
            name,
            interval_km=interval_km,
            interval_days=interval_days,
            last_km=last_km,
            last_date=last_date,
            description=description,
            estimated_cost=estimated_cost,
            created_at=self.clock(),
        )
        self._refresh(maintenance, vehicle.current_km, today)

        tx = self.state.begin()
        tx.insert("maintenances", maintenance)
        if maintenance.status is MaintenanceStatus.OVERDUE:
            self._notify_overdue(tx, maintenance, vehicle)
        self.state.commit(tx)
        logger.info(
            "Added maintenance '%s' for %s (%s)", name, vehicle.name, maintenance.status.label
        )
        return maintenance

    @synchronized
    def update_maintenance(self, maintenance_id: str, **fields) -> Maintenance:
        """Edit an item; due points and status are recomputed."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot edit maintenance field(s): {', '.join(sorted(unknown))}"
            )
        current = self.state.require("maintenances", maintenance_id)
        if "name" in fields:
            fields["name"] = require_text(fields["name"], "Maintenance name")
        interval_km = fields.get("interval_km", current.interval_km)
        interval_days = fields.get("interval_days", current.interval_days)
        if not interval_km and not interval_days:
            raise ValidationError("A maintenance needs interval_km or interval_days")
        for name in ("interval_km", "interval_days"):
            if fields.get(name):
                require_positive(fields[name], name)
        vehicle = self.state.require("vehicles", current.vehicle_id)

        tx = self.state.begin()
        staged = tx.update("maintenances", maintenance_id, **fields)
        self._refresh(staged, vehicle.current_km, self._today())
        if staged.status is MaintenanceStatus.OVERDUE and current.status is not MaintenanceStatus.OVERDUE:
            self._notify_overdue(tx, staged, vehicle)
        self.state.commit(tx)
        return staged

    @synchronized
    def delete_maintenance(self, maintenance_id: str) -> None:
        tx = self.state.begin()
        tx.delete("maintenances", maintenance_id)
        self.state.commit(tx)

    @synchronized
    def complete_maintenance(
        self,
        maintenance_id: str,
        km: float,
        cost_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Maintenance:
        """Record the service as done at ``km`` today and restart both intervals."""
        require_number(km, "km")
        current = self.state.require("maintenances", maintenance_id)
        vehicle = self.state.require("vehicles", current.vehicle_id)
        if cost_id is not None:
            self.state.require("costs", cost_id)

        today = self._today()
        completion = MaintenanceCompletion(
            new_id(), today, km, cost_id=cost_id, notes=notes, created_at=self.clock()
        )
        tx = self.state.begin()
        staged = tx.update(
            "maintenances",
            maintenance_id,
            last_km=km,
            last_date=today,
            history=list(current.history) + [completion],
        )
        self._refresh(staged, vehicle.current_km, today)
        self.state.commit(tx)
        logger.info(
            "Completed '%s' on %s at %.0f km, next at %s km / %s",
            staged.name,
            vehicle.name,
            km,
            staged.next_km,
            staged.next_date,
        )
        return staged

    # -------------------------------------------------------------------------
    # Recompute passes
    # -------------------------------------------------------------------------

    def on_km_changed(self, event: KmChanged) -> None:
        """Recompute the vehicle's items inside the odometer transaction."""
        tx = event.tx
        for original in self.state.maintenances:
            if original.vehicle_id != event.vehicle.id:
                continue
            maintenance = tx.current("maintenances", original.id)
            if maintenance is None:
                continue
            status = maintenance_status(maintenance, event.new_km, event.today)
            if status is maintenance.status:
                continue
            staged = tx.update("maintenances", maintenance.id, status=status)
            logger.info(
                "Maintenance '%s' %s -> %s at %.0f km",
                staged.name,
                maintenance.status.label,
                status.label,
                event.new_km,
            )
            if status is MaintenanceStatus.OVERDUE:
                self._notify_overdue(tx, staged, event.vehicle)

    @synchronized
    def recompute_all(self, today: Optional[date] = None) -> List[Maintenance]:
        """Calendar-driven refresh of every item. Returns the changed ones."""
        today = today or self._today()
        tx = self.state.begin()
        changed = []
        for maintenance in self.state.maintenances:
            vehicle = self.state.get("vehicles", maintenance.vehicle_id)
            if vehicle is None:
                continue
            status = maintenance_status(maintenance, vehicle.current_km, today)
            if status is maintenance.status:
                continue
            staged = tx.update("maintenances", maintenance.id, status=status)
            if status is MaintenanceStatus.OVERDUE:
                self._notify_overdue(tx, staged, vehicle)
            changed.append(staged)
        self.state.commit(tx)
        if changed:
            logger.info("Recomputed %d maintenance status(es)", len(changed))
        return changed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def for_vehicle(self, vehicle_id: str) -> List[Maintenance]:
        return sorted(
            (m for m in self.state.maintenances if m.vehicle_id == vehicle_id),
            key=lambda m: (m.status.value, m.name),
        )

    def upcoming(self, vehicle_id: Optional[str] = None) -> List[Maintenance]:
        return self._with_status(
            (MaintenanceStatus.URGENT, MaintenanceStatus.UPCOMING), vehicle_id
        )

    def overdue(self, vehicle_id: Optional[str] = None) -> List[Maintenance]:
        return self._with_status((MaintenanceStatus.OVERDUE,), vehicle_id)

    def _with_status(self, statuses, vehicle_id: Optional[str]) -> List[Maintenance]:
        return sorted(
            (
                m
                for m in self.state.maintenances
                if m.status in statuses and (vehicle_id is None or m.vehicle_id == vehicle_id)
            ),
            key=lambda m: m.status.value,
        )

    def status_of(self, maintenance_id: str, today: Optional[date] = None) -> MaintenanceStatus:
        """Fresh status computation without writing it."""
        maintenance = self.state.require("maintenances", maintenance_id)
        vehicle = self.state.require("vehicles", maintenance.vehicle_id)
        return maintenance_status(maintenance, vehicle.current_km, today or self._today())
