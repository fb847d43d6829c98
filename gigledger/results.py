"""Dataclasses for calculated (never persisted) results."""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .earnings import EarningsRecord


@dataclass
class TargetProgress:
    """How far the day's net earnings are toward the daily target."""

    percentage: float = 0
    is_achieved: bool = False


@dataclass
class DailyAccount:
    """Net earnings so far split between cost recovery and profit."""

    cost: float = 0
    profit: float = 0
    cost_target: float = 0
    profit_target: float = 0
    is_cost_met: bool = False
    is_profit_met: bool = False


@dataclass
class AppTotal:
    app_name: str
    color: str
    total: float = 0


@dataclass
class DailySummary:
    """All earnings of one day with per-app totals and target progress."""

    date: date
    total_gross_earnings: float
    total_variable_costs: float
    total_net_earnings: float
    earnings_by_app: Dict[str, AppTotal]
    target_progress: TargetProgress
    records: List["EarningsRecord"] = field(default_factory=list)


@dataclass
class RequiredSettings:
    """What must be configured before earnings can be registered."""

    missing_items: List[str] = field(default_factory=list)
    missing_types: List[str] = field(default_factory=list)

    @property
    def can_register(self) -> bool:
        return not self.missing_items


@dataclass
class MonthlyReport:
    """A month's earnings against its costs, with a month-end forecast."""

    month: date
    total_gross: float
    total_variable_costs: float
    total_fixed_costs: float
    total_km: float
    forecast: float
    monthly_target: float
    goal_progress: TargetProgress
    best_days: List[Tuple[date, float]] = field(default_factory=list)
    daily_gross: List[float] = field(default_factory=list)

    @property
    def total_costs(self) -> float:
        return self.total_variable_costs + self.total_fixed_costs

    @property
    def total_profit(self) -> float:
        return self.total_gross - self.total_costs

    @property
    def profit_per_km(self) -> float:
        return self.total_profit / self.total_km if self.total_km > 0 else 0
