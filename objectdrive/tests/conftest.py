"""Fixtures shared by the drive tests."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from objectdrive.core.config import DriveConfig
from objectdrive.drive.service import DriveService
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import FakeClock, StepClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore(clock=StepClock())


@pytest.fixture
def make_service(
    store: InMemoryObjectStore,
    clock: FakeClock,
) -> Callable[..., DriveService]:
    """Factory so a test can pick its own configuration."""

    def factory(config: Optional[DriveConfig] = None) -> DriveService:
        return DriveService(store, config or DriveConfig(), clock=clock)

    return factory


@pytest.fixture
def service(make_service: Callable[..., DriveService]) -> DriveService:
    return make_service()
