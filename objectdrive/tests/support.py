"""
Shared test utilities: clocks, result assertions, seeding helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from objectdrive.storage.backends import InMemoryObjectStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock for the TTL cache."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StepClock:
    """Wall clock that moves one second forward on every read."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._next = start

    def __call__(self) -> datetime:
        current = self._next
        self._next += timedelta(seconds=1)
        return current


def assert_ok(result: Any, message: str = "Expected Ok result") -> Any:
    if result.is_err():
        raise AssertionError(f"{message}: {result.error}")
    return result.unwrap()


def assert_err(result: Any, message: str = "Expected Err result") -> Any:
    if result.is_ok():
        raise AssertionError(f"{message}: got Ok({result.unwrap()!r})")
    return result.error


async def seed(store: InMemoryObjectStore, keys: Iterable[str], body: bytes = b"x") -> None:
    """Put every key; folder keys get an empty marker."""
    for key in keys:
        data = b"" if key.endswith("/") else body
        await store.put_object(key, data)
