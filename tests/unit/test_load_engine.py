"""Unit tests for LoadEngine.load / cache / prime and the module-level helpers."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

import presta
from presta.engine.load_engine import LoadEngine, current_engine, use_engine
from presta.providers.cache.memory_cache import MemoryCacheProvider
from presta.utils.errors import EngineNotActiveError, LoaderError


def _load_failed_calls(logger: MagicMock) -> list:
    return [c for c in logger.error.call_args_list if c.args and c.args[0] == "load_failed"]


# ======================================================================
# load()
# ======================================================================


class TestLoad:
    def test_cached_value_returned_without_calling_loader(self, engine: LoadEngine) -> None:
        engine.prime("/about", "About")
        loader = MagicMock()
        assert engine.load(loader, key="/about") == "About"
        loader.assert_not_called()

    def test_cached_falsy_value_is_a_hit(self, engine: LoadEngine) -> None:
        engine.prime("count", 0)
        loader = MagicMock()
        assert engine.load(loader, key="count") == 0
        loader.assert_not_called()

    def test_miss_without_event_loop_raises(self, engine: LoadEngine) -> None:
        loader = MagicMock()
        with pytest.raises(EngineNotActiveError):
            engine.load(loader, key="/about")
        loader.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_returns_none_and_schedules_loader(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loader = counting_loader("A")
        assert engine.load(loader, key="/page") is None
        assert loader.calls == 1
        assert engine.registry.pending_keys() == ["/page"]

        await asyncio.gather(*engine.registry.pending_operations())
        assert engine.registry.has_pending() is False
        assert engine.load(loader, key="/page") == "A"
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_second_load_while_pending_does_not_call_loader(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loader = counting_loader("A", delay=0.01)
        assert engine.load(loader, key="k") is None
        assert engine.load(loader, key="k") is None
        assert loader.calls == 1
        assert len(engine.registry.pending_operations()) == 1
        await asyncio.gather(*engine.registry.pending_operations())

    @pytest.mark.asyncio
    async def test_distinct_keys_load_concurrently(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loaders = {key: counting_loader(key.upper(), delay=0.01) for key in ("a", "b", "c")}
        for key, loader in loaders.items():
            engine.load(loader, key=key)
        assert engine.registry.pending_keys() == ["a", "b", "c"]
        await asyncio.gather(*engine.registry.pending_operations())
        assert engine.store.dump() == {"a": "A", "b": "B", "c": "C"}

    @pytest.mark.asyncio
    async def test_synchronous_loader_value_cached_immediately(self, engine: LoadEngine) -> None:
        assert engine.load(lambda: {"title": "Now"}, key="sync") == {"title": "Now"}
        assert engine.registry.has_pending() is False

    @pytest.mark.asyncio
    async def test_synchronous_raise_is_recorded_not_raised(self, engine: LoadEngine) -> None:
        engine._logger = MagicMock()

        def broken():
            raise ValueError("bad loader")

        assert engine.load(broken, key="k") is None
        assert engine.registry.has_error("k") is True
        assert len(_load_failed_calls(engine._logger)) == 1
        assert isinstance(_load_failed_calls(engine._logger)[0].kwargs["exc_info"], ValueError)

        recorded = engine.registry.acknowledge_error("k")
        assert isinstance(recorded, LoaderError)
        assert recorded.key == "k"
        assert isinstance(recorded.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_async_failure_acknowledged_once_then_retried(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        engine._logger = MagicMock()
        loader = counting_loader(RuntimeError("boom"), "ok")

        engine.load(loader, key="k")
        await asyncio.gather(*engine.registry.pending_operations())
        assert engine.registry.has_error("k") is True

        # Reported to this call; no new attempt yet.
        assert engine.load(loader, key="k") is None
        assert loader.calls == 1
        assert engine.registry.has_error("k") is False

        # Fresh attempt on the following call.
        assert engine.load(loader, key="k") is None
        assert loader.calls == 2
        await asyncio.gather(*engine.registry.pending_operations())
        assert engine.load(loader, key="k") == "ok"
        assert len(_load_failed_calls(engine._logger)) == 1

    @pytest.mark.asyncio
    async def test_cached_value_wins_over_recorded_error(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        engine.load(counting_loader(RuntimeError("boom")), key="k")
        await asyncio.gather(*engine.registry.pending_operations())
        engine.prime("k", "primed")

        assert engine.load(MagicMock(), key="k") == "primed"
        assert engine.registry.has_error("k") is False

    @pytest.mark.asyncio
    async def test_result_stored_with_duration(
        self, engine: LoadEngine, counting_loader, clock
    ) -> None:
        engine.load(counting_loader("fresh"), key="k", duration=30)
        await asyncio.gather(*engine.registry.pending_operations())
        assert engine.store.get("k") == "fresh"

        clock.advance(31)
        assert engine.store.get("k") is None

    @pytest.mark.asyncio
    async def test_concurrency_cap_limits_running_loaders(self) -> None:
        engine = LoadEngine(MemoryCacheProvider(), max_concurrent_loads=1)
        active = 0
        peak = 0

        async def tracked(value: str) -> str:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return value

        for key in ("a", "b", "c"):
            engine.load(lambda key=key: tracked(key), key=key)
        await asyncio.gather(*engine.registry.pending_operations())

        assert peak == 1
        assert engine.store.dump() == {"a": "a", "b": "b", "c": "c"}


# ======================================================================
# cache()
# ======================================================================


class TestCache:
    @pytest.mark.asyncio
    async def test_hit_does_not_call_loader(self, engine: LoadEngine) -> None:
        engine.prime("x", "cached")
        loader = MagicMock()
        assert await engine.cache(loader, key="x") == "cached"
        loader.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_awaits_loader_and_stores(
        self, engine: LoadEngine, counting_loader, clock
    ) -> None:
        loader = counting_loader("fetched")
        assert await engine.cache(loader, key="x", duration=1) == "fetched"
        assert engine.store.get("x") == "fetched"

        clock.advance(2)
        assert engine.store.get("x") is None

    @pytest.mark.asyncio
    async def test_overlapping_calls_are_not_deduplicated(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loader = counting_loader("v", delay=0.01)
        first, second = await asyncio.gather(
            engine.cache(loader, key="x", duration=1),
            engine.cache(loader, key="x", duration=1),
        )
        assert (first, second) == ("v", "v")
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_sequential_calls_hit_cache(self, engine: LoadEngine, counting_loader) -> None:
        loader = counting_loader("v")
        await engine.cache(loader, key="x")
        await engine.cache(loader, key="x")
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_loader_error_propagates(self, engine: LoadEngine, counting_loader) -> None:
        with pytest.raises(RuntimeError, match="boom"):
            await engine.cache(counting_loader(RuntimeError("boom")), key="x")
        assert "x" not in engine.store

    @pytest.mark.asyncio
    async def test_plain_value_loader(self, engine: LoadEngine) -> None:
        assert await engine.cache(lambda: 42, key="answer") == 42


# ======================================================================
# Module-level helpers
# ======================================================================


class TestActiveEngine:
    def test_no_active_engine_raises(self) -> None:
        with pytest.raises(EngineNotActiveError):
            current_engine()
        with pytest.raises(EngineNotActiveError):
            presta.load(MagicMock(), key="k")

    def test_use_engine_binds_and_restores(self, engine: LoadEngine) -> None:
        engine.prime("k", "v")
        with use_engine(engine) as bound:
            assert bound is engine
            assert current_engine() is engine
            assert presta.load(MagicMock(), key="k") == "v"
        with pytest.raises(EngineNotActiveError):
            current_engine()

    @pytest.mark.asyncio
    async def test_module_cache_and_prime(self, engine: LoadEngine, counting_loader) -> None:
        with use_engine(engine):
            presta.prime("p", 1)
            assert await presta.cache(counting_loader(2), key="c") == 2
        assert engine.store.dump() == {"p": 1, "c": 2}

    def test_cleanup_resets_store(self, engine: LoadEngine) -> None:
        engine.prime("k", "v")
        engine.cleanup()
        assert engine.store.dump() == {}
        assert engine.registry.has_pending() is False

    def test_invalid_max_passes(self, memory_store: MemoryCacheProvider) -> None:
        with pytest.raises(ValueError):
            LoadEngine(memory_store, max_passes=0)
