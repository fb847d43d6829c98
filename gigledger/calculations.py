"""Helper functions for due-point, status and calendar calculations."""

import math
from datetime import date, timedelta
from typing import TYPE_CHECKING, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .status import MaintenanceStatus

if TYPE_CHECKING:
    from .maintenance import Maintenance

URGENT_KM = 500
UPCOMING_KM = 1000
URGENT_DAYS = 30
UPCOMING_DAYS = 60


def calc_next_km(
    last_km: Optional[float], interval_km: Optional[float]
) -> Optional[float]:
    """Next due odometer reading: last_km + interval_km."""
    if last_km is None or not interval_km:
        return None
    return last_km + interval_km


def calc_next_date(
    last_date: Optional[date], interval_days: Optional[int]
) -> Optional[date]:
    """Next due date: last_date + interval_days."""
    if last_date is None or not interval_days:
        return None
    return last_date + timedelta(days=interval_days)


def maintenance_status(
    maintenance: "Maintenance",
    current_km: float,
    today: date,
    urgent_km: float = URGENT_KM,
    upcoming_km: float = UPCOMING_KM,
    urgent_days: int = URGENT_DAYS,
    upcoming_days: int = UPCOMING_DAYS,
) -> MaintenanceStatus:
    """
    Classify a maintenance item against the odometer and the calendar.

    Km and day triggers are evaluated independently; whichever is more
    urgent wins, and overdue beats everything else.
    """
    if not maintenance.active:
        return MaintenanceStatus.COMPLETED

    km_remaining = maintenance.km_remaining(current_km)
    days_remaining = maintenance.days_remaining(today)

    if (km_remaining is not None and km_remaining < 0) or (
        days_remaining is not None and days_remaining < 0
    ):
        return MaintenanceStatus.OVERDUE
    if (km_remaining is not None and km_remaining <= urgent_km) or (
        days_remaining is not None and days_remaining <= urgent_days
    ):
        return MaintenanceStatus.URGENT
    if (km_remaining is not None and km_remaining <= upcoming_km) or (
        days_remaining is not None and days_remaining <= upcoming_days
    ):
        return MaintenanceStatus.UPCOMING
    return MaintenanceStatus.OK


def add_months(start: date, months: int) -> date:
    """
    Step a date by whole calendar months.

    Days past the end of the target month clamp to its last day
    (Jan 31 + 1 month = Feb 28/29).
    """
    return start + relativedelta(months=months)


def month_key(day: date) -> Tuple[int, int]:
    return (day.year, day.month)


def same_month(a: date, b: date) -> bool:
    return month_key(a) == month_key(b)


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def last_of_month(day: date) -> date:
    return first_of_month(day) + relativedelta(months=1, days=-1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    return round(value, 2)
