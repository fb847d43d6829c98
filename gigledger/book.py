"""The Ledger: one object wiring state, engines, timers and settings."""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from . import backup
from .calculations import round2
from .catalog import CatalogService
from .config import Settings
from .cost import Cost
from .earnings_book import EarningsBook
from .errors import LedgerError, ValidationError
from .events import EventBus, KmChanged
from .maintenance_engine import MaintenanceEngine
from .notifications import LogNotifier
from .recurring import RecurringCostEngine
from .results import RequiredSettings
from .schedule import DEFAULT_HOURS, ProfitSettings, WorkDay, WorkSchedule
from .state import AppState
from .store import YamlStore
from .targets import TargetCalculator
from .timers import RepeatingTimer
from .tracker import TrackerEngine
from .validation import require_number
from .vehicles import VehicleService

logger = logging.getLogger(__name__)

TickCallback = Callable[[float, float], None]


class Ledger:
    """
    Entry point for applications.

    Engines are exposed as attributes (``vehicles``, ``catalog``,
    ``earnings``, ``recurring``, ``maintenance``, ``tracker``, ``targets``).
    ``lock`` is the state's writer lock: engine methods, timer callbacks
    and provider samples all run under it.

    Usage:
        with Ledger.from_settings(load_settings()) as ledger:
            ledger.vehicles.update_km(vehicle_id, 10500)
    """

    def __init__(
        self,
        store: Optional[Any] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[Any] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or Settings()
        self.store = store if store is not None else YamlStore(self.settings.data_file)
        self.clock = clock
        self.notifier = notifier if notifier is not None else LogNotifier()
        self.state = AppState(self.store)
        self.lock = self.state.lock
        self.bus = EventBus()
        self.catalog = CatalogService(self.state, clock)
        self.vehicles = VehicleService(self.state, self.bus, clock)
        self.earnings = EarningsBook(self.state, self.vehicles, clock)
        self.recurring = RecurringCostEngine(self.state, self.notifier, clock)
        self.maintenance = MaintenanceEngine(self.state, self.notifier, clock)
        self.tracker = TrackerEngine(
            self.state, self.vehicles, self.earnings, clock, self.settings
        )
        self.targets = TargetCalculator(self.state, self.recurring, self.earnings, clock)

        # Costs first, then statuses: both see the same staged odometer
        self.bus.subscribe(KmChanged, self.recurring.on_km_changed)
        self.bus.subscribe(KmChanged, self.maintenance.on_km_changed)

        self._sweep_timer: Optional[RepeatingTimer] = None
        self._tick_timer: Optional[RepeatingTimer] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Ledger":
        """Build and open a ledger on ``settings.data_file``."""
        return cls(settings=settings, **kwargs).open()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> "Ledger":
        """Load state, seed defaults on first run and catch up on the sweep."""
        with self.lock:
            self.state.load()
            self.catalog.seed_defaults()
            self.run_daily()
        return self

    def run_daily(self, today: Optional[date] = None) -> List[Cost]:
        """Monthly cost sweep plus calendar-driven maintenance refresh."""
        with self.lock:
            generated = self.recurring.sweep(today)
            self.maintenance.recompute_all(today)
        return generated

    def start_sweep_timer(self) -> RepeatingTimer:
        """Re-run ``run_daily`` every ``sweep_interval_hours``."""
        if self._sweep_timer is not None and self._sweep_timer.running:
            return self._sweep_timer
        self._sweep_timer = RepeatingTimer(
            self.settings.sweep_interval_seconds, self.run_daily, name="ledger-sweep"
        ).start()
        return self._sweep_timer

    def watch_session(self, callback: TickCallback) -> RepeatingTimer:
        """
        Call ``callback(distance_km, elapsed_seconds)`` every tick while a
        session is open. Display only: nothing is written.
        """
        self.stop_watching()

        def tick() -> None:
            with self.lock:
                if self.tracker.active_session is None:
                    self.stop_watching(wait=False)
                    return
                distance = self.tracker.current_distance()
                elapsed = self.tracker.current_duration()
            callback(distance, elapsed)

        self._tick_timer = RepeatingTimer(
            self.settings.tick_seconds, tick, name="ledger-session-tick"
        ).start()
        return self._tick_timer

    def stop_watching(self, wait: bool = True) -> None:
        if self._tick_timer is not None:
            self._tick_timer.cancel(wait=wait)
            self._tick_timer = None

    def close(self) -> None:
        """Cancel timers, write buffered GPS samples and detach the provider."""
        self.stop_watching()
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
            self._sweep_timer = None
        try:
            self.tracker.flush_points()
        except LedgerError:
            logger.exception("Buffered GPS samples could not be written")
        self.tracker.detach()

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Schedule, profit and readiness
    # -------------------------------------------------------------------------

    def update_work_day(
        self, index: int, enabled: bool, hours: float = DEFAULT_HOURS
    ) -> WorkSchedule:
        """Enable/disable a weekday (0 = Monday) and set its hours."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= 6:
            raise ValidationError(f"Weekday index must be 0-6, got {index!r}")
        require_number(hours, "hours")
        if hours > 24:
            raise ValidationError("hours must be <= 24")
        current = self.state.work_schedule
        days = [WorkDay(d.day, d.enabled, d.hours) for d in current.work_days]
        days[index] = WorkDay(days[index].day, bool(enabled), hours)
        schedule = WorkSchedule(days)
        with self.lock:
            tx = self.state.begin()
            tx.set_setting("workSchedule", schedule)
            self.state.commit(tx)
        logger.info(
            "Schedule: %d day(s), %d h/month", schedule.days_per_week, schedule.hours_per_month
        )
        return schedule

    def update_profit_settings(self, percentage: float) -> ProfitSettings:
        """A positive percentage enables the profit premium; 0 disables it."""
        require_number(percentage, "percentage")
        settings = ProfitSettings(percentage > 0, round2(percentage))
        with self.lock:
            tx = self.state.begin()
            tx.set_setting("profitSettings", settings)
            self.state.commit(tx)
        return settings

    def check_required_settings(self) -> RequiredSettings:
        """Earnings need a work schedule and an active vehicle."""
        result = RequiredSettings()
        if not any(d.enabled and d.hours > 0 for d in self.state.work_schedule.work_days):
            result.missing_items.append("Configure your work days and hours.")
            result.missing_types.append("schedule")
        if self.vehicles.active_vehicle() is None:
            result.missing_items.append("Register at least one active vehicle.")
            result.missing_types.append("vehicle")
        return result

    def reset(self) -> None:
        """Delete everything and restore the default categories and apps."""
        with self.lock:
            self.tracker.detach()
            self.store.clear()
            self.tracker.discard_points()
            self.state.load()
            self.catalog.seed_defaults()
        logger.warning("All data cleared")

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    def export_snapshot(self) -> dict:
        return backup.export_snapshot(self.state, self.clock)

    def import_snapshot(self, snapshot: Any) -> None:
        with self.lock:
            self.tracker.detach()
            backup.import_snapshot(self.state, snapshot)
            self.tracker.discard_points()

    def save_backup(self, filename: Union[str, Path]) -> dict:
        return backup.save_backup(self.state, filename, self.clock)

    def load_backup(self, filename: Union[str, Path]) -> None:
        self.import_snapshot(backup.read_backup(filename))
