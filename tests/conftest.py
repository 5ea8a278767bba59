"""Pytest configuration and fixtures for syncprogress tests."""

from __future__ import annotations

from typing import Any, Generator

import pytest

from syncprogress.sources import SyncSources


class ManualClock:
    """Clock returning a value the test advances explicitly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """Slot collecting the arguments of every emission."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def record(self, *args: Any) -> None:
        self.calls.append(args)

    @property
    def values(self) -> list[Any]:
        return [c[0] if len(c) == 1 else c for c in self.calls]

    def __len__(self) -> int:
        return len(self.calls)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sources() -> Generator[SyncSources, None, None]:
    """Fresh set of fake collaborator handles."""
    yield SyncSources()


@pytest.fixture
def recorder_factory():
    """Return a factory so a test can build as many recorders as it needs."""
    return Recorder
