"""Utility modules for presta.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at PrestaError;
  each engine layer raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **concurrency** -- the settle-all join used by the flush loop and the
  semaphore wrapper that throttles concurrent loaders.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from presta.utils.errors import (
    BuildError,
    CacheStoreError,
    ConfigurationError,
    EngineNotActiveError,
    FlushConvergenceError,
    LoaderError,
    PrestaError,
)

# -- Async concurrency helpers ---------------------------------------------
from presta.utils.concurrency import settle_all, throttled

# -- Structured logging setup ----------------------------------------------
from presta.utils.logging import configure_logging, get_logger

__all__ = [
    "BuildError",
    "CacheStoreError",
    "ConfigurationError",
    "EngineNotActiveError",
    "FlushConvergenceError",
    "LoaderError",
    "PrestaError",
    "configure_logging",
    "get_logger",
    "settle_all",
    "throttled",
]
