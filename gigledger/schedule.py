"""Weekly work schedule and profit settings."""

from typing import List, Optional

from .calculations import round_half_up

DAYS_OF_WEEK = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
WEEKS_PER_MONTH = 4.33
DEFAULT_HOURS = 4


class WorkDay:
    """One day of the week: whether it is worked and for how many hours."""

    def __init__(self, day: str, enabled: bool = False, hours: float = DEFAULT_HOURS):
        self.day = day
        self.enabled = enabled
        self.hours = hours

    @property
    def worked_hours(self) -> float:
        return self.hours if self.enabled else 0


class WorkSchedule:
    """Seven work days, Monday first (matches ``date.weekday()``)."""

    def __init__(self, work_days: Optional[List[WorkDay]] = None):
        if not work_days:
            work_days = [WorkDay(day) for day in DAYS_OF_WEEK]
        if len(work_days) != 7:
            raise ValueError(f"A schedule needs 7 work days, got {len(work_days)}")
        self.work_days = work_days

    def day(self, weekday: int) -> WorkDay:
        return self.work_days[weekday]

    @property
    def days_per_week(self) -> int:
        return sum(1 for d in self.work_days if d.enabled)

    @property
    def hours_per_week(self) -> float:
        return sum(d.hours for d in self.work_days if d.enabled)

    @property
    def days_per_month(self) -> int:
        return round_half_up(self.days_per_week * WEEKS_PER_MONTH)

    @property
    def hours_per_month(self) -> int:
        return round_half_up(self.hours_per_week * WEEKS_PER_MONTH)

    @property
    def summary(self) -> dict:
        return {
            "daysPerWeek": self.days_per_week,
            "hoursPerWeek": self.hours_per_week,
            "daysPerMonth": self.days_per_month,
            "hoursPerMonth": self.hours_per_month,
        }


class ProfitSettings:
    """Desired profit premium applied over the daily cost target."""

    def __init__(self, enabled: bool = False, profit_percentage: float = 0):
        self.enabled = enabled
        self.profit_percentage = profit_percentage
