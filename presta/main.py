"""Composition root: builds cache stores and load engines from Settings.

Everything that needs an engine (the static builder, the CLI, tests) goes
through these factories, so the choice of cache backend and the flush
limits live in exactly one place.
"""

from __future__ import annotations

import structlog

from presta.config.settings import Settings
from presta.engine.load_engine import LoadEngine
from presta.interfaces.cache_provider import ICacheProvider
from presta.providers.cache.file_cache import FileCacheProvider
from presta.providers.cache.memory_cache import MemoryCacheProvider
from presta.utils.errors import ConfigurationError
from presta.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def create_store(app_settings: Settings | None = None) -> ICacheProvider:
    """Instantiate the cache provider selected by ``cache_backend``."""
    app_settings = app_settings or Settings()
    backend = app_settings.cache_backend.lower()

    if backend == "file":
        store: ICacheProvider = FileCacheProvider(
            name=app_settings.cache_name,
            directory=app_settings.cache_dir or None,
        )
    elif backend == "memory":
        store = MemoryCacheProvider(max_size=app_settings.memory_cache_size)
    else:
        raise ConfigurationError(f"unknown cache backend: {app_settings.cache_backend!r}")

    logger.debug("cache_store_created", backend=backend, cache=app_settings.cache_name)
    return store


def create_engine(
    app_settings: Settings | None = None,
    store: ICacheProvider | None = None,
) -> LoadEngine:
    """Build a :class:`LoadEngine` wired to *store* (or a fresh one)."""
    app_settings = app_settings or Settings()
    engine = LoadEngine(
        store if store is not None else create_store(app_settings),
        max_passes=app_settings.pass_limit,
        max_concurrent_loads=app_settings.load_concurrency,
    )
    logger.debug(
        "load_engine_created",
        max_passes=app_settings.pass_limit,
        max_concurrent_loads=app_settings.load_concurrency,
    )
    return engine
