"""Maintenance items and their completion history."""

from datetime import date, datetime
from typing import List, Optional

from .status import MaintenanceStatus


class MaintenanceCompletion:
    """A record of maintenance performed."""

    def __init__(
        self,
        id: str,
        date: date,
        km: float,
        cost_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.date = date
        self.km = km
        self.cost_id = cost_id
        self.notes = notes
        self.created_at = created_at or datetime.now()


class Maintenance:
    """
    A recurring maintenance item for one vehicle.

    Due points are independent: ``next_km`` comes from the km interval and
    ``next_date`` from the day interval. ``status`` is derived from the
    vehicle's odometer and the calendar; it is never set by the user.
    """

    def __init__(
        self,
        id: str,
        vehicle_id: str,
        name: str,
        interval_km: Optional[float] = None,
        interval_days: Optional[int] = None,
        last_km: Optional[float] = None,
        last_date: Optional[date] = None,
        next_km: Optional[float] = None,
        next_date: Optional[date] = None,
        description: Optional[str] = None,
        estimated_cost: Optional[float] = None,
        active: bool = True,
        status: MaintenanceStatus = MaintenanceStatus.OK,
        history: Optional[List[MaintenanceCompletion]] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.name = name
        self.description = description
        self.interval_km = interval_km
        self.interval_days = interval_days
        self.last_km = last_km
        self.last_date = last_date
        self.next_km = next_km
        self.next_date = next_date
        self.estimated_cost = estimated_cost
        self.active = active
        self.status = status
        self.history = history or []
        self.created_at = created_at or datetime.now()

    @property
    def last_completion(self) -> Optional[MaintenanceCompletion]:
        if not self.history:
            return None
        return self.history[-1]

    def km_remaining(self, current_km: float) -> Optional[float]:
        if self.next_km is None:
            return None
        return self.next_km - current_km

    def days_remaining(self, today: date) -> Optional[int]:
        if self.next_date is None:
            return None
        return (self.next_date - today).days
