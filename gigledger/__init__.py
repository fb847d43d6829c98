"""
Earnings and cost ledger for gig-economy drivers.

This package provides:
- Ledger: facade wiring state, engines and timers
- RecurringCostEngine: cost templates expanded into ledger rows
- MaintenanceEngine: km/date-driven maintenance status
- TrackerEngine: GPS distance sessions
- TargetCalculator: daily earnings targets and cost/profit split
- YamlStore: durable YAML persistence with atomic write groups
"""

from .errors import (
    InvariantError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .status import MaintenanceStatus, TrackerStatus
from .category import Category
from .vehicle import Vehicle
from .cost import Cost, CostConfig, CostType
from .maintenance import Maintenance, MaintenanceCompletion
from .gps import GPSPoint, ReplayProvider, haversine_km
from .session import KMTrackerSession
from .earnings import EarningsRecord, RevenueApp, VariableCost
from .schedule import ProfitSettings, WorkDay, WorkSchedule
from .results import DailyAccount, DailySummary, MonthlyReport, RequiredSettings, TargetProgress
from .calculations import calc_next_date, calc_next_km, maintenance_status
from .config import Settings, load_settings
from .store import YamlStore
from .notifications import LogNotifier, NotificationSink
from .earnings_book import variable_cost
from .book import Ledger

__all__ = [
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "InvariantError",
    "PersistenceError",
    "MaintenanceStatus",
    "TrackerStatus",
    "Category",
    "Vehicle",
    "Cost",
    "CostConfig",
    "CostType",
    "Maintenance",
    "MaintenanceCompletion",
    "GPSPoint",
    "ReplayProvider",
    "haversine_km",
    "KMTrackerSession",
    "EarningsRecord",
    "RevenueApp",
    "VariableCost",
    "WorkDay",
    "WorkSchedule",
    "ProfitSettings",
    "MonthlyReport",
    "TargetProgress",
    "DailyAccount",
    "DailySummary",
    "RequiredSettings",
    "calc_next_km",
    "calc_next_date",
    "maintenance_status",
    "Settings",
    "load_settings",
    "YamlStore",
    "NotificationSink",
    "LogNotifier",
    "variable_cost",
    "Ledger",
]
