"""GPS tracking sessions: lifecycle, distance accumulation, auto-save."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .calculations import round2
from .config import Settings
from .earnings import EarningsRecord
from .earnings_book import EarningsBook
from .errors import InvariantError, LedgerError, ValidationError
from .gps import GPSPoint, distance_between
from .ids import new_id
from .session import KMTrackerSession
from .state import AppState, synchronized
from .status import TrackerStatus
from .vehicles import VehicleService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "vehicle_id",
    "total_distance_km",
    "max_speed",
    "avg_speed",
    "earnings_record_id",
)


class TrackerEngine:
    """
    At most one open (active or paused) session exists at a time.

    Samples are pushed in by a location provider through ``attach`` or
    directly via ``add_point``; they only count while the session is active.

    Each sample persists the running aggregates only. Accepted samples are
    buffered and appended to the session's point log every
    ``point_batch_size`` samples, on pause and on stop.
    """

    def __init__(
        self,
        state: AppState,
        vehicles: VehicleService,
        earnings: EarningsBook,
        clock: Callable[[], datetime],
        settings: Optional[Settings] = None,
    ):
        self.state = state
        self.vehicles = vehicles
        self.earnings = earnings
        self.clock = clock
        self.settings = settings or Settings()
        self._pending: List[GPSPoint] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active_session(self) -> Optional[KMTrackerSession]:
        return self.state.active_session

    def _require_status(self, status: TrackerStatus, action: str) -> KMTrackerSession:
        session = self.active_session
        if session is None or session.status is not status:
            current = session.status.value if session else "none"
            raise InvariantError(f"Cannot {action} tracking: session is {current}")
        return session

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @synchronized
    def start(self, vehicle_id: Optional[str] = None) -> KMTrackerSession:
        """Open a session for the given (or default) vehicle."""
        if self.active_session is not None:
            raise InvariantError("A tracking session is already open")
        if vehicle_id is not None:
            self.state.require("vehicles", vehicle_id)
        else:
            default = self.vehicles.active_vehicle()
            vehicle_id = default.id if default else None

        now = self.clock()
        session = KMTrackerSession(new_id(), now, vehicle_id=vehicle_id, created_at=now)
        tx = self.state.begin()
        tx.insert("sessions", session)
        self.state.commit(tx)
        self._pending = []
        logger.info("Tracking started (vehicle %s)", vehicle_id or "none")
        return session

    @synchronized
    def pause(self) -> KMTrackerSession:
        session = self._require_status(TrackerStatus.ACTIVE, "pause")
        return self._set_status(session, TrackerStatus.PAUSED)

    @synchronized
    def resume(self) -> KMTrackerSession:
        session = self._require_status(TrackerStatus.PAUSED, "resume")
        return self._set_status(session, TrackerStatus.ACTIVE)

    def _set_status(self, session: KMTrackerSession, status: TrackerStatus) -> KMTrackerSession:
        tx = self.state.begin()
        staged = tx.update("sessions", session.id, status=status, **self._point_fields(session))
        self.state.commit(tx)
        self._pending = []
        logger.info("Tracking %s", status.value)
        return staged

    @synchronized
    def stop(self, auto_save: bool = False) -> KMTrackerSession:
        """
        Complete the open session.

        With ``auto_save`` and some distance, the vehicle odometer advances in
        the same write (so km-driven rules fire), then the distance and hours
        are attributed to the day's earnings. Attribution failures are logged
        and never undo the stop.
        """
        session = self.active_session
        if session is None:
            raise InvariantError("No tracking session to stop")

        now = self.clock()
        duration = max(0.0, (now - session.start_time).total_seconds())
        distance = session.total_distance_km
        avg_speed = distance / (duration / 3600) if duration > 0 else 0

        tx = self.state.begin()
        tx.update(
            "sessions",
            session.id,
            end_time=now,
            duration=duration,
            avg_speed=avg_speed,
            status=TrackerStatus.COMPLETED,
            auto_saved=auto_save,
            **self._point_fields(session),
        )
        if auto_save and distance > 0 and session.vehicle_id:
            vehicle = tx.current("vehicles", session.vehicle_id)
            if vehicle is None:
                logger.warning("Vehicle %s no longer exists; odometer not updated", session.vehicle_id)
            else:
                self.vehicles.stage_km_update(
                    tx, vehicle.id, vehicle.current_km + round2(distance)
                )
        self.state.commit(tx)
        self._pending = []
        self.detach()
        logger.info(
            "Tracking completed: %.2f km in %.0f s (avg %.1f km/h)", distance, duration, avg_speed
        )

        completed = self.state.get("sessions", session.id)
        if auto_save and distance > 0:
            try:
                self._attribute_earnings(completed)
            except Exception:
                logger.exception("Could not attribute session %s to earnings", session.id)
            completed = self.state.get("sessions", session.id)
        return completed

    def _attribute_earnings(self, session: KMTrackerSession) -> Optional[EarningsRecord]:
        """
        Add the session's km and hours to a record of its end day.

        Prefers a record without km, else the most recent one; creates a
        zero-gross record when the day has none.
        """
        day = session.end_time.date()
        hours = session.duration_hours
        distance = session.total_distance_km
        records = self.earnings.records_for_day(day)

        target = next((r for r in records if not r.km_driven), None)
        if target is None and records:
            target = records[-1]

        tx = self.state.begin()
        if target is not None:
            record = tx.update(
                "earnings",
                target.id,
                km_driven=round2((target.km_driven or 0) + distance),
                hours_worked=round2((target.hours_worked or 0) + hours),
                session_id=session.id,
            )
        else:
            apps = [a for a in self.state.apps if a.active]
            if not apps:
                logger.info("No active revenue app; session %s not attributed", session.id)
                return None
            # Odometer already advanced by stop()
            record = self.earnings.stage_record(
                tx,
                day,
                apps[0].id,
                0,
                hours_worked=round2(hours),
                km_driven=round2(distance),
                vehicle_id=session.vehicle_id,
                session_id=session.id,
                advance_odometer=False,
            )
        tx.update("sessions", session.id, earnings_record_id=record.id)
        self.state.commit(tx)
        logger.info("Session %s attributed to earnings record %s", session.id, record.id)
        return record

    # -------------------------------------------------------------------------
    # Samples
    # -------------------------------------------------------------------------

    @synchronized
    def add_point(self, point: GPSPoint) -> bool:
        """Accumulate one sample. Returns False when the sample is ignored."""
        session = self.active_session
        if session is None or session.status is not TrackerStatus.ACTIVE:
            logger.debug("Sample ignored: no active session")
            return False
        if point.accuracy is not None and point.accuracy > self.settings.gps_accuracy_limit_m:
            logger.debug("Sample dropped: accuracy %.0f m", point.accuracy)
            return False

        added = distance_between(session.last_point, point) if session.last_point else 0
        max_speed = session.max_speed
        speed = point.speed_kmh
        if speed is not None and (max_speed is None or speed > max_speed):
            max_speed = speed
        self._pending.append(point)
        flush = len(self._pending) >= self.settings.point_batch_size

        tx = self.state.begin()
        tx.update(
            "sessions",
            session.id,
            total_distance_km=session.total_distance_km + added,
            last_point=point,
            max_speed=max_speed,
            **(self._point_fields(session) if flush else {}),
        )
        try:
            self.state.commit(tx)
        except LedgerError:
            self._pending.pop()
            raise
        if flush:
            self._pending = []
        return True

    def _point_fields(self, session: KMTrackerSession) -> Dict[str, Any]:
        """Update fields appending the buffered samples to the capped point log."""
        if not self._pending:
            return {}
        return {"points": (session.points + self._pending)[-self.settings.max_session_points:]}

    def discard_points(self) -> None:
        """Drop buffered samples once the stored data was replaced."""
        self._pending = []

    @synchronized
    def flush_points(self) -> None:
        """Write buffered samples of the open session now."""
        session = self.active_session
        if session is None or not self._pending:
            return
        tx = self.state.begin()
        tx.update("sessions", session.id, **self._point_fields(session))
        self.state.commit(tx)
        self._pending = []

    @synchronized
    def attach(self, provider: Any) -> None:
        """Subscribe to a push-based location provider until ``stop``."""
        if self.active_session is None:
            raise InvariantError("Start a tracking session before attaching a provider")
        self.detach()
        self._unsubscribe = provider.subscribe(self._on_sample)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_sample(self, point: GPSPoint) -> None:
        try:
            self.add_point(point)
        except LedgerError:
            logger.warning("Sample could not be recorded", exc_info=True)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def current_distance(self) -> float:
        session = self.active_session
        return session.total_distance_km if session else 0

    def current_points(self) -> List[GPSPoint]:
        """The open session's point log including samples not yet written."""
        session = self.active_session
        if session is None:
            return []
        return (session.points + self._pending)[-self.settings.max_session_points:]

    def current_duration(self, now: Optional[datetime] = None) -> float:
        """Seconds elapsed in the open session (0 without one)."""
        session = self.active_session
        if session is None:
            return 0
        return session.elapsed(now or self.clock())

    def sessions(self, vehicle_id: Optional[str] = None) -> List[KMTrackerSession]:
        return sorted(
            (s for s in self.state.sessions if vehicle_id is None or s.vehicle_id == vehicle_id),
            key=lambda s: s.start_time,
        )

    @synchronized
    def delete_session(self, session_id: str) -> None:
        session = self.state.require("sessions", session_id)
        tx = self.state.begin()
        tx.delete("sessions", session_id)
        self.state.commit(tx)
        if session.status.is_open:
            self._pending = []
            self.detach()

    @synchronized
    def update_session(self, session_id: str, **fields) -> KMTrackerSession:
        """Edit a completed session. Edits never move the odometer."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit session field(s): {', '.join(sorted(unknown))}")
        session = self.state.require("sessions", session_id)
        if session.status is not TrackerStatus.COMPLETED:
            raise InvariantError("Only completed sessions can be edited")
        if fields.get("vehicle_id") is not None:
            self.state.require("vehicles", fields["vehicle_id"])
        tx = self.state.begin()
        staged = tx.update("sessions", session_id, **fields)
        self.state.commit(tx)
        return staged
