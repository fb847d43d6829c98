"""Notification sink interface and fire-and-forget dispatch."""

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .cost import Cost
    from .maintenance import Maintenance
    from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class NotificationSink:
    """Receives user-facing events. Subclass and override what you need."""

    def cost_generated(self, cost: "Cost") -> None:
        pass

    def maintenance_overdue(self, maintenance: "Maintenance", vehicle: "Vehicle") -> None:
        pass


class LogNotifier(NotificationSink):
    """Default sink: writes notifications to the log."""

    def cost_generated(self, cost: "Cost") -> None:
        logger.info(
            "Cost generated: %s %.2f registered automatically",
            cost.description or cost.category_name,
            cost.value,
        )

    def maintenance_overdue(self, maintenance: "Maintenance", vehicle: "Vehicle") -> None:
        logger.warning("Maintenance overdue: %s on %s", maintenance.name, vehicle.name)


def dispatch(sink: Any, event: str, *args: Any) -> None:
    """Call ``sink.<event>(*args)``; failures are logged, never raised."""
    if sink is None:
        return
    try:
        getattr(sink, event)(*args)
    except Exception:
        logger.warning("Notification '%s' failed", event, exc_info=True)
