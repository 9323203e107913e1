"""Build lifecycle hooks with callback-based listener notification.

# ─── HOW BUILD HOOKS WORK (Junior Developer Guide) ────────────────────
#
# This implements the Observer pattern:
#
#   StaticBuilder ──emit("build_file")──→ BuildHooks ──callback()──→ plugin
#                 ──emit("post_build")──→            ──callback()──→ deploy step
#
# Key design decisions:
#   - on() returns an "unsubscribe" callable, so a listener can be
#     removed without keeping a reference to the hooks object around
#   - Listener errors are caught and logged → one broken plugin can't
#     fail the build or starve the other listeners
#   - Both sync and async callbacks are supported (asyncio.iscoroutine check)
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from presta.utils.logging import get_logger

BUILD_FILE = "build_file"
POST_BUILD = "post_build"


class BuildHooks:
    """Named events with ordered listener lists."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on(self, event: str, callback: Callable) -> Callable[[], None]:
        """Register *callback* for *event* and return an unsubscribe function.

        Registering the same callback twice for one event is a no-op.
        """
        listeners = self._listeners.setdefault(event, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                hook=event,
                total_listeners=len(listeners),
            )

        def _unsubscribe() -> None:
            self.off(event, callback)

        return _unsubscribe

    def off(self, event: str, callback: Callable) -> None:
        """Remove a previously registered callback (no-op if absent)."""
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                hook=event,
                remaining_listeners=len(listeners),
            )

    def listeners(self, event: str) -> list[Callable]:
        return list(self._listeners.get(event, []))

    def clear(self) -> None:
        self._listeners = {}

    async def emit(self, event: str, payload: Any = None) -> None:
        """Invoke every listener for *event* with *payload*.

        Listeners that raise are logged and skipped so a single faulty
        listener cannot break the build.
        """
        for callback in self.listeners(event):
            try:
                result = callback(payload)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    hook=event,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
