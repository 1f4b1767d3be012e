from __future__ import annotations

from typing import Optional

import pytest

from datastore.base import StoreError, StoreUnavailable
from datastore.memory_store import InMemoryStore
from models.status import Contact, Location, Status


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStore(InMemoryStore):
    """In-memory store that fails with ``error`` for the configured keys."""

    def __init__(self, failing_keys=(), error: Optional[StoreError] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.failing_keys = set(failing_keys)
        self.error = error or StoreUnavailable("backend down")
        self.writes: list[str] = []

    def _check(self, key: str) -> None:
        if key in self.failing_keys or "*" in self.failing_keys:
            raise self.error

    def get(self, key: str) -> str:
        self._check(key)
        return super().get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._check(key)
        self.writes.append(key)
        super().set(key, value, ttl=ttl)

    def pop(self, key: str) -> str:
        self._check(key)
        return super().pop(key)


def make_status(**overrides) -> Status:
    data = dict(
        space="ourspace",
        logo="https://example.com/logo.png",
        url="https://example.com/",
        location=Location(address="Street 1, Zürich, Switzerland", lat=47.123, lon=8.88),
        contact=Contact(email="hi@example.com"),
        issue_report_channels=["email"],
    )
    data.update(overrides)
    return Status(**data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def status() -> Status:
    return make_status()
