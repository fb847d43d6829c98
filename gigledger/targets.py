"""Daily earnings targets derived from monthly costs and the work schedule."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Optional

from .earnings import EarningsRecord
from .earnings_book import EarningsBook
from .recurring import RecurringCostEngine
from .calculations import first_of_month, last_of_month, same_month
from .results import AppTotal, DailyAccount, DailySummary, MonthlyReport, TargetProgress
from .state import AppState

DEFAULT_APP_COLOR = "#6B7280"
MET_TOLERANCE = 0.01
BEST_DAYS = 3


def progress(earned: float, target: float) -> TargetProgress:
    """Percentage toward target (capped at 100). No target means no progress."""
    if target <= 0:
        return TargetProgress()
    return TargetProgress(min(100.0, earned / target * 100), earned >= target)


class TargetCalculator:
    """
    Spreads the month's costs over the scheduled work hours.

    cost_per_hour = monthly cost total / hours per month
    daily target  = cost_per_hour * hours scheduled that weekday,
                    plus the profit premium when enabled
    """

    def __init__(
        self,
        state: AppState,
        recurring: RecurringCostEngine,
        earnings: EarningsBook,
        clock: Callable[[], datetime],
    ):
        self.state = state
        self.recurring = recurring
        self.earnings = earnings
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    def cost_per_hour(self, month: Optional[date] = None) -> float:
        month = month or self._today()
        total = self.recurring.monthly_cost_total(month)
        hours = self.state.work_schedule.hours_per_month
        if not total or not hours:
            return 0
        return total / hours

    def daily_cost_target(self, day: Optional[date] = None) -> float:
        day = day or self._today()
        hours = self.state.work_schedule.day(day.weekday()).worked_hours
        return self.cost_per_hour(day) * hours

    def profit_premium(self, cost_target: float) -> float:
        settings = self.state.profit_settings
        if not settings.enabled or settings.profit_percentage <= 0:
            return 0
        return cost_target * settings.profit_percentage / 100

    def daily_target(self, day: Optional[date] = None) -> float:
        """0 on days off, or when there is no schedule or no cost."""
        cost_target = self.daily_cost_target(day)
        return cost_target + self.profit_premium(cost_target)

    def daily_account(self, today: Optional[date] = None) -> DailyAccount:
        """Split today's net earnings between cost recovery and profit."""
        today = today or self._today()
        if not self.cost_per_hour(today):
            return DailyAccount()
        earned = self.earnings.net_for_day(today)
        cost_target = self.daily_cost_target(today)
        profit_target = self.profit_premium(cost_target)

        cost = min(earned, cost_target)
        profit = max(0, earned - cost)
        return DailyAccount(
            cost=cost,
            profit=profit,
            cost_target=cost_target,
            profit_target=profit_target,
            is_cost_met=cost >= cost_target - MET_TOLERANCE,
            is_profit_met=profit >= profit_target - MET_TOLERANCE,
        )

    def target_progress(self, today: Optional[date] = None) -> TargetProgress:
        today = today or self._today()
        return progress(self.earnings.net_for_day(today), self.daily_target(today))

    def record_progress(self, record: EarningsRecord) -> TargetProgress:
        """Progress of the record's whole day, not the record alone."""
        return progress(self.earnings.net_for_day(record.date), self.daily_target(record.date))

    def daily_summary(self, day: Optional[date] = None) -> DailySummary:
        day = day or self._today()
        records = self.earnings.records_for_day(day)
        gross = sum(r.gross_earnings for r in records)
        variable = sum(r.total_variable_costs for r in records)
        net = gross - variable

        by_app: Dict[str, AppTotal] = {}
        for record in records:
            if record.app_id not in by_app:
                app = self.state.get("apps", record.app_id)
                by_app[record.app_id] = AppTotal(
                    app.name if app else record.app_name,
                    app.color if app else DEFAULT_APP_COLOR,
                )
            by_app[record.app_id].total += record.gross_earnings

        return DailySummary(
            day, gross, variable, net, by_app, progress(net, self.daily_target(day)), records
        )

    def monthly_report(self, month: Optional[date] = None) -> MonthlyReport:
        """
        Totals for the month the date falls in.

        Fixed costs are the month's cost total. The forecast extrapolates the
        daily gross average to the whole month while the month is running;
        for other months it is the actual gross. Best days rank gross minus
        variable costs; the goal compares profit with the sum of the month's
        daily targets.
        """
        today = self._today()
        start = first_of_month(month or today)
        end = last_of_month(start)
        records = self.earnings.records_between(start, end)

        gross = sum(r.gross_earnings for r in records)
        variable = sum(r.total_variable_costs for r in records)
        fixed = self.recurring.monthly_cost_total(start)
        km = sum(r.km_driven or 0 for r in records)

        if same_month(start, today):
            forecast = gross / today.day * end.day
        else:
            forecast = gross

        net_by_day: Dict[date, float] = defaultdict(float)
        gross_by_day: Dict[date, float] = defaultdict(float)
        for record in records:
            net_by_day[record.date] += record.net_earnings
            gross_by_day[record.date] += record.gross_earnings
        best_days = sorted(net_by_day.items(), key=lambda item: item[1], reverse=True)

        days = [start + timedelta(days=i) for i in range(end.day)]
        target = sum(self.daily_target(day) for day in days)
        profit = gross - variable - fixed
        return MonthlyReport(
            month=start,
            total_gross=gross,
            total_variable_costs=variable,
            total_fixed_costs=fixed,
            total_km=km,
            forecast=forecast,
            monthly_target=target,
            goal_progress=progress(profit, target),
            best_days=best_days[:BEST_DAYS],
            daily_gross=[gross_by_day.get(day, 0) for day in days],
        )
