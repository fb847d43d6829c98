"""Cost templates (CostConfig) and ledger entries (Cost)."""

from datetime import date, datetime
from enum import Enum
from typing import Optional


class CostType(Enum):
    """Recurrence rule of a cost template."""

    UNIQUE = "unique"
    FIXED_MONTHLY = "fixed_monthly"
    INSTALLMENTS = "installments"
    KM_BASED = "km_based"
    CUSTOM_DAYS = "custom_days"


class CostConfig:
    """A recurrence rule that produces one or more ledger entries."""

    def __init__(
        self,
        id: str,
        category_id: str,
        type: CostType,
        value: float,
        start_date: date,
        vehicle_id: Optional[str] = None,
        description: Optional[str] = None,
        active: bool = True,
        installments_total: Optional[int] = None,
        installments_paid: Optional[int] = None,
        interval_km: Optional[float] = None,
        last_km: Optional[float] = None,
        interval_days: Optional[int] = None,
        last_date: Optional[date] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.category_id = category_id
        self.vehicle_id = vehicle_id
        self.type = type
        self.value = value
        self.description = description
        self.start_date = start_date
        self.active = active
        self.installments_total = installments_total
        self.installments_paid = installments_paid
        self.interval_km = interval_km
        self.last_km = last_km
        self.interval_days = interval_days
        self.last_date = last_date
        self.created_at = created_at or datetime.now()

    @property
    def next_trigger_km(self) -> Optional[float]:
        """Odometer reading that triggers the next km-based entry."""
        if self.type is not CostType.KM_BASED or not self.interval_km:
            return None
        return (self.last_km or 0) + self.interval_km


class Cost:
    """A dated ledger entry. Immutable once created (delete only)."""

    def __init__(
        self,
        id: str,
        category_id: str,
        category_name: str,
        value: float,
        date: date,
        type_snapshot: CostType = CostType.UNIQUE,
        is_fixed: bool = False,
        vehicle_id: Optional[str] = None,
        config_id: Optional[str] = None,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.config_id = config_id
        self.category_id = category_id
        self.category_name = category_name
        self.vehicle_id = vehicle_id
        self.value = value
        self.description = description
        self.date = date
        self.type_snapshot = type_snapshot
        self.is_fixed = is_fixed
        self.created_at = created_at or datetime.now()
