"""Cancellable background timer for periodic engine work."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """
    Calls ``callback`` every ``interval`` seconds on a daemon thread.

    A failing callback is logged and the timer keeps running. ``cancel``
    stops the thread; the timer cannot be restarted afterwards.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name or "repeating-timer"
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> "RepeatingTimer":
        if self._thread is not None:
            raise RuntimeError(f"Timer '{self.name}' already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def cancel(self, wait: bool = True) -> None:
        self._stop.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Timer '%s' callback failed", self.name)
