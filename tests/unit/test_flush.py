"""Unit tests for the flush convergence loop."""

from __future__ import annotations

import json
from datetime import date
from unittest.mock import MagicMock

import pytest

import presta
from presta.engine.load_engine import LoadEngine, current_engine
from presta.providers.cache.file_cache import FileCacheProvider
from presta.providers.cache.memory_cache import MemoryCacheProvider
from presta.utils.errors import (
    CacheStoreError,
    EngineNotActiveError,
    FlushConvergenceError,
)


def _load_failed_calls(logger: MagicMock) -> list:
    return [c for c in logger.error.call_args_list if c.args and c.args[0] == "load_failed"]


class TestFlush:
    @pytest.mark.asyncio
    async def test_render_without_loads_is_single_pass(self, engine: LoadEngine) -> None:
        render = MagicMock(return_value="<h1>static</h1>")
        result = await engine.flush(render)
        assert result.content == "<h1>static</h1>"
        assert result.data == {}
        assert result.passes == 1
        render.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_single_key_resolves_on_second_pass(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        seen: list = []
        loader = counting_loader("A")

        def render() -> str:
            value = presta.load(loader, key="/page")
            seen.append(value)
            return f"<p>{value}</p>"

        result = await engine.flush(render)

        assert seen == [None, "A"]
        assert result.content == "<p>A</p>"
        assert result.data["/page"] == "A"
        assert result.passes == 2

    @pytest.mark.asyncio
    async def test_three_independent_keys_settle_together(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loaders = {
            "a": counting_loader("A", delay=0.03),
            "b": counting_loader("B", delay=0.01),
            "c": counting_loader("C"),
        }

        def render() -> str:
            return ",".join(str(presta.load(loader, key=key)) for key, loader in loaders.items())

        result = await engine.flush(render)

        assert result.content == "A,B,C"
        assert result.data == {"a": "A", "b": "B", "c": "C"}
        assert result.passes == 2
        assert all(loader.calls == 1 for loader in loaders.values())

    @pytest.mark.asyncio
    async def test_same_key_twice_in_one_pass_runs_loader_once(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        loader = counting_loader("shared", delay=0.01)

        def render() -> tuple:
            return (presta.load(loader, key="k"), presta.load(loader, key="k"))

        result = await engine.flush(render)

        assert result.content == ("shared", "shared")
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_chained_loads_take_one_pass_per_link(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        index_loader = counting_loader({"first": "/posts/1"})
        post_loader = counting_loader({"title": "Hello"})

        def render() -> str:
            index = presta.load(index_loader, key="/index")
            if index is None:
                return ""
            post = presta.load(post_loader, key=index["first"])
            return post["title"] if post else ""

        result = await engine.flush(render)

        assert result.content == "Hello"
        assert result.passes == 3
        assert set(result.data) == {"/index", "/posts/1"}

    @pytest.mark.asyncio
    async def test_failure_then_success_retries_and_logs_once(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        engine._logger = MagicMock()
        loader = counting_loader(RuntimeError("flaky upstream"), {"ok": True})

        result = await engine.flush(lambda: presta.load(loader, key="k"))

        assert result.data["k"] == {"ok": True}
        assert result.content == {"ok": True}
        assert loader.calls == 2
        assert len(_load_failed_calls(engine._logger)) == 1

    @pytest.mark.asyncio
    async def test_failing_loader_does_not_block_others(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        flaky = counting_loader(RuntimeError("down"), "recovered")
        steady = counting_loader("steady", delay=0.01)

        def render() -> tuple:
            return (presta.load(flaky, key="flaky"), presta.load(steady, key="steady"))

        result = await engine.flush(render)

        assert result.content == ("recovered", "steady")
        assert steady.calls == 1

    @pytest.mark.asyncio
    async def test_synchronous_raise_is_retried_next_pass(self, engine: LoadEngine) -> None:
        attempts = {"count": 0}

        def loader():
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise ValueError("first call fails")
            return "second"

        result = await engine.flush(lambda: presta.load(loader, key="k"))

        assert result.content == "second"
        assert attempts["count"] == 2

    @pytest.mark.asyncio
    async def test_always_failing_loader_hits_pass_limit(
        self, memory_store: MemoryCacheProvider, counting_loader
    ) -> None:
        engine = LoadEngine(memory_store, max_passes=5)
        loader = counting_loader(RuntimeError("never"))

        with pytest.raises(FlushConvergenceError) as exc_info:
            await engine.flush(lambda: presta.load(loader, key="broken"))

        assert exc_info.value.unresolved_keys == ["broken"]
        # Attempts on passes 1, 3 and 5; passes 2 and 4 acknowledge the error.
        assert loader.calls == 3
        assert engine.registry.has_pending() is False

    @pytest.mark.asyncio
    async def test_async_render_is_awaited(self, engine: LoadEngine, counting_loader) -> None:
        loader = counting_loader("async")

        async def render() -> str:
            return str(presta.load(loader, key="k"))

        result = await engine.flush(render)
        assert result.content == "async"

    @pytest.mark.asyncio
    async def test_data_contains_previously_cached_entries(
        self, engine: LoadEngine, counting_loader
    ) -> None:
        engine.prime("site", {"name": "presta"})
        result = await engine.flush(lambda: presta.load(counting_loader("x"), key="k"))
        assert result.data == {"site": {"name": "presta"}, "k": "x"}

    @pytest.mark.asyncio
    async def test_engine_unbound_after_flush(self, engine: LoadEngine) -> None:
        await engine.flush(lambda: current_engine())
        with pytest.raises(EngineNotActiveError):
            current_engine()

    @pytest.mark.asyncio
    async def test_store_write_failure_propagates(
        self, file_store: FileCacheProvider
    ) -> None:
        engine = LoadEngine(file_store)

        async def unserialisable():
            return object()

        with pytest.raises(CacheStoreError):
            await engine.flush(lambda: presta.load(unserialisable, key="k", duration=60))

    @pytest.mark.asyncio
    async def test_bad_immortal_value_fails_on_its_own_key(
        self, file_store: FileCacheProvider, counting_loader
    ) -> None:
        engine = LoadEngine(file_store)
        when = counting_loader(date(2024, 1, 1))
        title = counting_loader("T")

        def render() -> tuple:
            return (presta.load(when, key="date"), presta.load(title, key="title", duration=60))

        with pytest.raises(CacheStoreError) as exc_info:
            await engine.flush(render)

        assert exc_info.value.key == "date"
        assert "date" not in file_store
        assert file_store.get("title") == "T"
        assert json.loads(file_store.path.read_text(encoding="utf-8"))["title"][0] == "T"

    @pytest.mark.asyncio
    async def test_ttl_results_survive_into_next_store(
        self, file_store: FileCacheProvider, counting_loader, clock
    ) -> None:
        engine = LoadEngine(file_store)
        await engine.flush(lambda: presta.load(counting_loader("v"), key="k", duration=60))

        on_disk = json.loads(file_store.path.read_text(encoding="utf-8"))
        assert on_disk["k"][0] == "v"

        fresh = LoadEngine(FileCacheProvider(name=file_store.name, directory=file_store.path.parent))
        loader = MagicMock()
        result = await fresh.flush(lambda: presta.load(loader, key="k"))
        assert result.content == "v"
        assert result.passes == 1
        loader.assert_not_called()
