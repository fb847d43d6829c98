"""Vehicle registry and the odometer update path."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from .errors import NotFoundError, ValidationError
from .events import EventBus, KmChanged
from .ids import new_id
from .state import AppState, Transaction, synchronized
from .validation import require_number, require_text
from .vehicle import VEHICLE_TYPES, Vehicle

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("type", "brand", "model", "year", "plate", "avg_km_per_liter", "active")


class VehicleService:
    """Vehicle CRUD. Odometer changes always go through ``stage_km_update``."""

    def __init__(self, state: AppState, bus: EventBus, clock: Callable[[], datetime]):
        self.state = state
        self.bus = bus
        self.clock = clock

    def vehicles(self, active_only: bool = False) -> List[Vehicle]:
        return [v for v in self.state.vehicles if v.active or not active_only]

    def active_vehicle(self) -> Optional[Vehicle]:
        """The default vehicle: the first active one."""
        for vehicle in self.state.vehicles:
            if vehicle.active:
                return vehicle
        return None

    @synchronized
    def add_vehicle(
        self,
        type: str,
        brand: str,
        model: str,
        year: int,
        plate: str = "",
        current_km: float = 0,
        avg_km_per_liter: Optional[float] = None,
    ) -> Vehicle:
        if type not in VEHICLE_TYPES:
            raise ValidationError(f"Vehicle type must be one of {VEHICLE_TYPES}")
        require_number(current_km, "current_km")
        vehicle = Vehicle(
            new_id(),
            type,
            require_text(brand, "brand"),
            require_text(model, "model"),
            int(year),
            (plate or "").strip().upper(),
            current_km,
            avg_km_per_liter,
            created_at=self.clock(),
        )
        tx = self.state.begin()
        tx.insert("vehicles", vehicle)
        self.state.commit(tx)
        logger.info("Added vehicle %s at %.0f km", vehicle.name, current_km)
        return vehicle

    @synchronized
    def update_vehicle(self, vehicle_id: str, **fields) -> Vehicle:
        """Edit descriptive fields. Use ``update_km`` for the odometer."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit vehicle field(s): {', '.join(sorted(unknown))}")
        if "type" in fields and fields["type"] not in VEHICLE_TYPES:
            raise ValidationError(f"Vehicle type must be one of {VEHICLE_TYPES}")
        self.state.require("vehicles", vehicle_id)
        tx = self.state.begin()
        vehicle = tx.update("vehicles", vehicle_id, **fields)
        self.state.commit(tx)
        return vehicle

    @synchronized
    def delete_vehicle(self, vehicle_id: str) -> None:
        """
        Delete a vehicle with its maintenances.

        Its km-based cost templates are deactivated; ledger rows keep their
        vehicle reference.
        """
        self.state.require("vehicles", vehicle_id)
        tx = self.state.begin()
        for maintenance in self.state.maintenances:
            if maintenance.vehicle_id == vehicle_id:
                tx.delete("maintenances", maintenance.id)
        for config in self.state.cost_configs:
            if config.vehicle_id == vehicle_id and config.active:
                tx.update("cost_configs", config.id, active=False)
        tx.delete("vehicles", vehicle_id)
        self.state.commit(tx)

    @staticmethod
    def check_km(vehicle: Vehicle, km: float) -> None:
        """Reject a reading that is not a number or is below the odometer."""
        require_number(km, "km")
        if km < vehicle.current_km:
            raise ValidationError(
                f"Odometer cannot go backwards ({km} < {vehicle.current_km})"
            )

    @synchronized
    def update_km(self, vehicle_id: str, km: float) -> Vehicle:
        """Manual odometer update; fires every km-driven rule atomically."""
        tx = self.state.begin()
        self.stage_km_update(tx, vehicle_id, km)
        self.state.commit(tx)
        return self.state.get("vehicles", vehicle_id)

    def stage_km_update(self, tx: Transaction, vehicle_id: str, km: float) -> Vehicle:
        """
        Stage a new odometer reading and publish ``KmChanged``.

        Subscribers add their writes to the same transaction.
        """
        vehicle = tx.current("vehicles", vehicle_id)
        if vehicle is None:
            raise NotFoundError("vehicle", vehicle_id)
        self.check_km(vehicle, km)
        now = self.clock()
        staged = tx.update("vehicles", vehicle_id, current_km=km, last_km_update=now)
        self.bus.publish(KmChanged(tx, staged, vehicle.current_km, km, now.date()))
        return staged
