"""Vehicle class for odometer state and identification."""

from datetime import datetime
from typing import Optional

VEHICLE_TYPES = ("moto", "car")


class Vehicle:
    """A vehicle driven for work, with its current odometer reading."""

    def __init__(
        self,
        id: str,
        type: str,
        brand: str,
        model: str,
        year: int,
        plate: str,
        current_km: float = 0,
        avg_km_per_liter: Optional[float] = None,
        active: bool = True,
        last_km_update: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.type = type
        self.brand = brand
        self.model = model
        self.year = year
        self.plate = plate
        self.current_km = current_km
        self.avg_km_per_liter = avg_km_per_liter
        self.active = active
        self.created_at = created_at or datetime.now()
        self.last_km_update = last_km_update or self.created_at

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        base = f"{self.year} {self.brand} {self.model}"
        return f"{base} ({self.plate})" if self.plate else base
