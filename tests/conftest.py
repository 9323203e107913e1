"""Shared pytest fixtures for the presta test suite."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import pytest

from presta.engine.load_engine import LoadEngine
from presta.providers.cache.file_cache import FileCacheProvider
from presta.providers.cache.memory_cache import MemoryCacheProvider

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze wall-clock time; advance it explicitly with ``clock.advance``."""
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake


# ---------------------------------------------------------------------------
# Stores and engines
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "cache"
    directory.mkdir()
    return directory


@pytest.fixture
def file_store(cache_dir: Path) -> FileCacheProvider:
    return FileCacheProvider(name="test-cache", directory=cache_dir)


@pytest.fixture
def memory_store() -> MemoryCacheProvider:
    return MemoryCacheProvider(max_size=100)


@pytest.fixture
def engine(memory_store: MemoryCacheProvider) -> LoadEngine:
    return LoadEngine(memory_store, max_passes=20)


@pytest.fixture
def file_engine(file_store: FileCacheProvider) -> LoadEngine:
    return LoadEngine(file_store, max_passes=20)


# ---------------------------------------------------------------------------
# Loader doubles
# ---------------------------------------------------------------------------


class CountingLoader:
    """Async loader that records how often it was invoked.

    ``outcomes`` is consumed one item per call; an exception instance is
    raised, anything else is returned.  The last outcome repeats once the
    list runs out.
    """

    def __init__(self, *outcomes: Any, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes) or [None]
        self.delay = delay
        self.calls = 0

    def _next(self) -> Any:
        index = min(self.calls, len(self.outcomes) - 1)
        self.calls += 1
        return self.outcomes[index]

    def __call__(self):
        outcome = self._next()

        async def _resolve() -> Any:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        return _resolve()


@pytest.fixture
def counting_loader():
    """Factory for :class:`CountingLoader` instances."""
    return CountingLoader
