"""Revenue-source apps and per-day earnings records."""

from datetime import date, datetime
from typing import List, Optional

VARIABLE_COST_TYPES = ("fuel", "toll", "food", "maintenance", "other")


class RevenueApp:
    """A platform the driver earns from (Uber, 99, iFood...)."""

    def __init__(
        self,
        id: str,
        name: str,
        color: str = "#6B7280",
        icon: str = "",
        active: bool = True,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.color = color
        self.icon = icon
        self.active = active
        self.created_at = created_at or datetime.now()


class VariableCost:
    """An ad-hoc cost paid during a work shift."""

    def __init__(
        self,
        id: str,
        type: str,
        value: float,
        liters: Optional[float] = None,
        description: Optional[str] = None,
    ):
        self.id = id
        self.type = type
        self.value = value
        self.liters = liters
        self.description = description


class EarningsRecord:
    """Earnings for one app on one day, net of the shift's variable costs."""

    def __init__(
        self,
        id: str,
        date: date,
        app_id: str,
        app_name: str,
        gross_earnings: float,
        variable_costs: Optional[List[VariableCost]] = None,
        hours_worked: Optional[float] = None,
        km_driven: Optional[float] = None,
        vehicle_id: Optional[str] = None,
        session_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        self.id = id
        self.date = date
        self.app_id = app_id
        self.app_name = app_name
        self.gross_earnings = gross_earnings
        self.variable_costs = variable_costs or []
        self.hours_worked = hours_worked
        self.km_driven = km_driven
        self.vehicle_id = vehicle_id
        self.session_id = session_id
        self.created_at = created_at or datetime.now()

    @property
    def total_variable_costs(self) -> float:
        return sum(cost.value for cost in self.variable_costs)

    @property
    def net_earnings(self) -> float:
        return self.gross_earnings - self.total_variable_costs
