"""Shared fixtures: a memory-only Ledger driven by a controllable clock."""

from datetime import datetime, timedelta

import pytest

from gigledger import Ledger, NotificationSink, YamlStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, *args) -> datetime:
        self.now = datetime(*args)
        return self.now


class RecordingNotifier(NotificationSink):
    """Keeps every notification for assertions."""

    def __init__(self):
        self.costs = []
        self.overdue = []

    def cost_generated(self, cost):
        self.costs.append(cost)

    def maintenance_overdue(self, maintenance, vehicle):
        self.overdue.append((maintenance, vehicle))


@pytest.fixture
def clock():
    # A Monday
    return FakeClock(datetime(2024, 1, 15, 9, 0))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ledger(clock, notifier):
    return Ledger(YamlStore(), notifier=notifier, clock=clock).open()


@pytest.fixture
def vehicle(ledger):
    return ledger.vehicles.add_vehicle(
        "car", "Honda", "Civic", 2020, plate="abc1234", current_km=9800
    )


@pytest.fixture
def uber(ledger):
    return next(a for a in ledger.catalog.apps() if a.name == "Uber")


@pytest.fixture
def insurance(ledger):
    return ledger.catalog.find_category("Insurance")


@pytest.fixture
def maintenance_category(ledger):
    return ledger.catalog.find_category("Maintenance")
