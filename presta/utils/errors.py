"""Custom exception hierarchy for presta.

All application exceptions inherit from :class:`PrestaError`, which
carries an optional cache ``key`` so error handlers and log lines can
identify which piece of page data was involved.

The hierarchy is organized by engine layer:

    PrestaError  (base -- catch-all for any presta error)
    +-- CacheStoreError          (durable store could not be written)
    +-- LoaderError              (a page-data loader failed)
    +-- FlushConvergenceError    (render passes never settled)
    +-- EngineNotActiveError     (load/cache used outside a flush)
    +-- ConfigurationError       (startup / invalid config)
    +-- BuildError               (one or more static pages failed)

Loader failures are normally *recorded* rather than raised; the flush
loop keeps rendering the other keys.  The recorded error is a
``LoaderError`` carrying the key, chained to the loader's exception.
"""

from __future__ import annotations


class PrestaError(Exception):
    """Base exception for all presta errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``key`` naming the cache entry involved.  ``__str__`` prefixes the key
    in brackets for log scanning, e.g. ``[/about] Loader failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        key: str | None = None,
    ) -> None:
        self._message = message
        self._key = key
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def key(self) -> str | None:
        return self._key

    def __str__(self) -> str:
        if self._key:
            return f"[{self._key}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Cache store errors
# ---------------------------------------------------------------------------

class CacheStoreError(PrestaError):
    """Raised when the durable cache file cannot be written.

    Read failures never raise: an unreadable file is treated as an empty
    cache.  A failed write is fatal to the calling ``set``/``clear`` so a
    silently stale cache can't leak into the next build.
    """

    def __init__(
        self,
        message: str = "Cache store write failed",
        key: str | None = None,
    ) -> None:
        super().__init__(message=message, key=key)


# ---------------------------------------------------------------------------
# Engine errors
# ---------------------------------------------------------------------------

class LoaderError(PrestaError):
    """Raised (or reported) when a page-data loader fails for a key."""

    def __init__(
        self,
        message: str = "Loader failed",
        key: str | None = None,
    ) -> None:
        super().__init__(message=message, key=key)


class FlushConvergenceError(PrestaError):
    """Raised when a flush cycle exceeds its maximum number of render passes.

    ``unresolved_keys`` lists the keys that were still pending or failing
    on the last pass, which is usually enough to find the loader that
    never settles.
    """

    def __init__(
        self,
        message: str = "Flush did not converge",
        key: str | None = None,
        unresolved_keys: list[str] | None = None,
    ) -> None:
        super().__init__(message=message, key=key)
        self._unresolved_keys = list(unresolved_keys or [])

    @property
    def unresolved_keys(self) -> list[str]:
        return list(self._unresolved_keys)


class EngineNotActiveError(PrestaError):
    """Raised when module-level ``load``/``cache`` is called outside a flush."""

    def __init__(
        self,
        message: str = "No load engine is active; call inside LoadEngine.flush()",
        key: str | None = None,
    ) -> None:
        super().__init__(message=message, key=key)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(PrestaError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        key: str | None = None,
    ) -> None:
        super().__init__(message=message, key=key)


class BuildError(PrestaError):
    """Raised when a static build finishes with one or more failed pages.

    ``failures`` maps page path to the exception that page raised.
    """

    def __init__(
        self,
        message: str = "presta build failed",
        key: str | None = None,
        failures: dict[str, BaseException] | None = None,
    ) -> None:
        super().__init__(message=message, key=key)
        self._failures = dict(failures or {})

    @property
    def failures(self) -> dict[str, BaseException]:
        return dict(self._failures)
