"""In-flight request registry for the load engine.

Tracks, per cache key, the loader task currently executing and the last
error a loader raised.  Two rules hold at all times:

- at most one pending task per key (insert-if-absent is the critical
  section, guarded by a lock);
- a recorded error is reported to exactly one later ``load`` call and then
  cleared; recording it asks the flush loop for one more render pass so
  that acknowledgement happens, and the pass after it retries the key.
"""

from __future__ import annotations

import asyncio
import threading


class InFlightRegistry:
    """Pending loader tasks and unacknowledged errors, keyed by cache key."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task] = {}
        self._errors: dict[str, BaseException] = {}
        self._rerender_requested = False
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Pending operations
    # ------------------------------------------------------------------

    def start(self, key: str, task: asyncio.Task) -> bool:
        """Register *task* for *key* unless one is already running.

        Returns ``False`` (and leaves the registry untouched) when the key
        already has a pending task.
        """
        with self._lock:
            if key in self._pending:
                return False
            self._pending[key] = task
            return True

    def settle(self, key: str) -> None:
        """Drop the pending task for *key* (no-op if absent)."""
        with self._lock:
            self._pending.pop(key, None)

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def has_pending(self) -> bool:
        """Return ``True`` if any key still has an unsettled task."""
        with self._lock:
            return bool(self._pending)

    def pending_operations(self) -> list[asyncio.Task]:
        """Snapshot of every unsettled task, for a joint wait."""
        with self._lock:
            return list(self._pending.values())

    def pending_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def record_error(self, key: str, error: BaseException) -> None:
        """Remember *error* for *key* and drop its pending task.

        A new error always asks for one more render pass, so the error can
        be acknowledged by the next ``load`` for the key.
        """
        with self._lock:
            self._errors[key] = error
            self._pending.pop(key, None)
            self._rerender_requested = True

    def has_error(self, key: str) -> bool:
        with self._lock:
            return key in self._errors

    def acknowledge_error(self, key: str) -> BaseException | None:
        """Clear and return the recorded error for *key*, if any."""
        with self._lock:
            return self._errors.pop(key, None)

    def error_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._errors)

    def request_rerender(self) -> None:
        """Ask the flush loop for another render pass."""
        with self._lock:
            self._rerender_requested = True

    def take_rerender_requested(self) -> bool:
        """Return and reset the "another pass needed" flag."""
        with self._lock:
            requested = self._rerender_requested
            self._rerender_requested = False
            return requested

    def clear(self) -> None:
        """Forget all pending tasks, errors and retry requests."""
        with self._lock:
            self._pending.clear()
            self._errors.clear()
            self._rerender_requested = False
