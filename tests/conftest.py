from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from qmaster.queue.models import ADMIN_USER_ID
from qmaster.queue.service import QueueService


class FakeClock:
    """Clock that moves forward a fixed step on every reading."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(minutes=1)) -> None:
        self.now = start or datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


def sequential_ids():
    counter = count(1)

    def factory(prefix: str = "") -> str:
        return f"{prefix}t{next(counter)}"

    return factory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(clock) -> QueueService:
    return QueueService(clock=clock, id_factory=sequential_ids())


@pytest.fixture
def admin(service):
    return service.snapshot().find_user(ADMIN_USER_ID)


@pytest.fixture
def service_factory():
    def factory(store=None) -> QueueService:
        return QueueService(store, clock=FakeClock(), id_factory=sequential_ids())

    return factory
