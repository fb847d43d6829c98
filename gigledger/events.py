"""Synchronous event bus for cross-engine reactions."""

import logging
from collections import defaultdict
from datetime import date
from typing import TYPE_CHECKING, Callable, DefaultDict, List, Type

if TYPE_CHECKING:
    from .state import Transaction
    from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class KmChanged:
    """
    A vehicle's odometer is about to change.

    ``vehicle`` is the staged copy already carrying ``new_km``. Handlers add
    their own writes to ``tx`` so the odometer update and every rule it
    triggers are committed as one atomic group.
    """

    def __init__(
        self,
        tx: "Transaction",
        vehicle: "Vehicle",
        previous_km: float,
        new_km: float,
        today: date,
    ):
        self.tx = tx
        self.vehicle = vehicle
        self.previous_km = previous_km
        self.new_km = new_km
        self.today = today


Handler = Callable[[object], None]


class EventBus:
    """Maps event types to handlers, called in subscription order."""

    def __init__(self):
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: object) -> None:
        handlers = self._handlers.get(type(event), [])
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
