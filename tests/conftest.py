"""Shared fixtures for ratecache tests."""

import os

import pytest

from ratecache.core.config import reset_settings


class FakeClock:
    """Manually advanced clock, callable like time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep RATECACHE_* variables from the host out of every test."""
    for name in list(os.environ):
        if name.startswith("RATECACHE_"):
            monkeypatch.delenv(name)
    reset_settings()
    yield
    reset_settings()
