"""Load engine: cached data access for render code plus the flush loop.

Render functions are synchronous (they build a string and return it),
yet the data they need is fetched asynchronously.  The engine bridges the
two with a two-phase protocol:

    render pass ──load(key)──→ cached?  yes → value
                                        no  → schedule loader task, return None
    flush loop ──polls registry──→ pending work? → wait for all → render again
                                   nothing new?  → done: content + cache dump

# ─── HOW A FLUSH CONVERGES (Junior Developer Guide) ───────────────────
#
#   pass 1: load("a") → None   load("b") → None    (two loader tasks start)
#           flush waits for both tasks, however they end
#   pass 2: load("a") → "A"    load("b") → None    (b failed; error acknowledged)
#   pass 3: load("a") → "A"    load("b") → None    (b retried)
#   pass 4: load("a") → "A"    load("b") → "B"     (nothing pending → done)
#
# A key discovered only inside another key's data ("chained" loads) costs
# one extra pass per link, so the loop runs until a pass schedules no new
# work rather than for a fixed number of passes.
# ──────────────────────────────────────────────────────────────────────

``cache`` is the awaiting counterpart for code that can simply ``await``.
It has no registry: two overlapping ``cache`` calls for the same missing
key both run their loader.

The engine active inside a flush is published through a ``ContextVar`` so
page code can call the module-level :func:`load` / :func:`cache` without
holding a reference to the engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable, Iterator
from contextvars import ContextVar
from typing import Any

import structlog

from presta.engine.registry import InFlightRegistry
from presta.interfaces.cache_provider import ICacheProvider
from presta.models.flush import FlushResult
from presta.utils.concurrency import settle_all, throttled
from presta.utils.errors import (
    CacheStoreError,
    EngineNotActiveError,
    FlushConvergenceError,
    LoaderError,
)
from presta.utils.logging import get_logger

Loader = Callable[[], Any]
Render = Callable[[], Any]

DEFAULT_MAX_PASSES = 100

# Distinguishes "not cached" from a cached None.
_MISSING: Any = object()

_active_engine: ContextVar[LoadEngine | None] = ContextVar(
    "presta_active_engine", default=None
)


class LoadEngine:
    """Owns one cache store and one in-flight registry.

    Parameters
    ----------
    store:
        Cache provider shared by ``load``, ``cache`` and ``flush``.
    max_passes:
        Upper bound on render passes per flush.  ``None`` lets a flush run
        until it converges, however long that takes.
    max_concurrent_loads:
        Optional cap on loaders executing at the same time.  Loaders are
        still scheduled immediately; the cap only delays their execution.
    """

    def __init__(
        self,
        store: ICacheProvider,
        *,
        max_passes: int | None = DEFAULT_MAX_PASSES,
        max_concurrent_loads: int | None = None,
    ) -> None:
        if max_passes is not None and max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self._store = store
        self._registry = InFlightRegistry()
        self._max_passes = max_passes
        self._semaphore = (
            asyncio.Semaphore(max_concurrent_loads) if max_concurrent_loads else None
        )
        # Keys that came back empty during the current render pass.
        self._pass_misses: set[str] = set()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def store(self) -> ICacheProvider:
        return self._store

    @property
    def registry(self) -> InFlightRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def load(
        self,
        loader: Loader,
        *,
        key: str,
        duration: float | None = None,
    ) -> Any:
        """Return the cached value for *key*, scheduling *loader* on a miss.

        Never blocks and never raises a loader's error.  On a miss the
        loader is started unless one is already running for *key* or the
        last attempt failed and that failure has not been reported yet;
        the failure is reported (and cleared) by this call so the next
        pass retries.  Returns ``None`` until the value is cached.

        Parameters
        ----------
        loader:
            Zero-argument callable returning an awaitable (or a plain
            value, which is cached immediately).
        key:
            Cache key identifying the data.
        duration:
            Time-to-live in seconds for the stored result.
        """
        value = self._store.get(key, _MISSING)
        error = self._registry.acknowledge_error(key)

        if value is _MISSING:
            if error is not None:
                self._logger.debug("load_error_acknowledged", key=key)
                self._registry.request_rerender()
            elif not self._registry.is_pending(key):
                self._start(loader, key, duration)

        value = self._store.get(key, _MISSING)
        if value is _MISSING:
            self._pass_misses.add(key)
            return None
        return value

    async def cache(
        self,
        loader: Loader,
        *,
        key: str,
        duration: float | None = None,
    ) -> Any:
        """Return the cached value for *key*, awaiting *loader* on a miss.

        No deduplication: concurrent calls for the same missing key each
        run the loader, and the last one to finish wins the cache slot.
        Loader errors propagate to the caller.
        """
        value = self._store.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = loader()
        if inspect.isawaitable(value):
            value = await throttled(value, self._semaphore)
        self._store.set(key, value, duration)
        return value

    def prime(self, key: str, value: Any, duration: float | None = None) -> None:
        """Seed the cache so the first ``load`` for *key* is already a hit."""
        self._store.set(key, value, duration)

    # ------------------------------------------------------------------
    # Flush convergence loop
    # ------------------------------------------------------------------

    async def flush(self, render: Render) -> FlushResult:
        """Render repeatedly until no pass schedules new work.

        Parameters
        ----------
        render:
            Zero-argument callable producing the page content.  Called once
            per pass; may also be a coroutine function.

        Returns
        -------
        FlushResult
            Content of the final pass, a dump of every live cached value,
            and the number of passes it took.

        Raises
        ------
        FlushConvergenceError
            If ``max_passes`` passes ran and work was still outstanding.
        CacheStoreError
            If storing a loader's result failed.
        """
        token = _active_engine.set(self)
        passes = 0
        try:
            while True:
                passes += 1
                self._pass_misses = set()

                content = render()
                if inspect.isawaitable(content):
                    content = await content

                pending = self._registry.pending_operations()
                rerender = self._registry.take_rerender_requested()

                self._logger.debug(
                    "flush_pass",
                    pass_number=passes,
                    pending=len(pending),
                    misses=len(self._pass_misses),
                    rerender=rerender,
                )

                if not pending and not rerender:
                    break

                if self._max_passes is not None and passes >= self._max_passes:
                    self._abandon(pending)
                    raise FlushConvergenceError(
                        f"flush did not settle after {passes} render passes",
                        unresolved_keys=sorted(self._pass_misses),
                    )

                if pending:
                    for outcome in await settle_all(pending):
                        if isinstance(outcome, CacheStoreError):
                            raise outcome
        finally:
            _active_engine.reset(token)

        self._logger.debug("flush_complete", passes=passes)
        return FlushResult(content=content, data=self._store.dump(), passes=passes)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Cancel outstanding loaders, forget errors, and reset the store."""
        self._abandon(self._registry.pending_operations())
        self._registry.clear()
        self._store.cleanup()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _start(self, loader: Loader, key: str, duration: float | None) -> None:
        """Invoke *loader* and register its task under *key*."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise EngineNotActiveError(
                "load() needs a running event loop to schedule its loader", key=key
            ) from exc

        try:
            result = loader()
        except Exception as exc:
            self._fail(key, exc)
            return

        if not inspect.isawaitable(result):
            self._store.set(key, result, duration)
            return

        task = loop.create_task(self._run(key, result, duration))
        if not self._registry.start(key, task):
            task.cancel()
            return
        self._logger.debug("load_started", key=key)

    async def _run(self, key: str, aw: Awaitable[Any], duration: float | None) -> None:
        try:
            value = await throttled(aw, self._semaphore)
        except Exception as exc:
            self._fail(key, exc)
            return
        except BaseException:
            self._registry.settle(key)
            raise

        try:
            self._store.set(key, value, duration)
        finally:
            self._registry.settle(key)
        self._logger.debug("load_resolved", key=key)

    def _fail(self, key: str, exc: Exception) -> None:
        self._logger.error(
            "load_failed",
            key=key,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        error = LoaderError(str(exc), key=key)
        error.__cause__ = exc
        self._registry.record_error(key, error)

    def _abandon(self, tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            task.cancel()
        self._registry.clear()


# ---------------------------------------------------------------------------
# Module-level access to the engine bound to the current flush
# ---------------------------------------------------------------------------

def current_engine() -> LoadEngine:
    """Return the engine bound to the running flush (or :func:`use_engine`)."""
    engine = _active_engine.get()
    if engine is None:
        raise EngineNotActiveError()
    return engine


@contextlib.contextmanager
def use_engine(engine: LoadEngine) -> Iterator[LoadEngine]:
    """Bind *engine* as the active engine outside of a flush."""
    token = _active_engine.set(engine)
    try:
        yield engine
    finally:
        _active_engine.reset(token)


def load(loader: Loader, *, key: str, duration: float | None = None) -> Any:
    """:meth:`LoadEngine.load` on the active engine."""
    return current_engine().load(loader, key=key, duration=duration)


async def cache(loader: Loader, *, key: str, duration: float | None = None) -> Any:
    """:meth:`LoadEngine.cache` on the active engine."""
    return await current_engine().cache(loader, key=key, duration=duration)


def prime(key: str, value: Any, duration: float | None = None) -> None:
    """:meth:`LoadEngine.prime` on the active engine."""
    current_engine().prime(key, value, duration)
