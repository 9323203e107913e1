"""Abstract base class for cache store providers.

Defines the contract for the key/value store behind the load engine.
Implementations may keep entries in memory only or back them with a file;
the engine never knows which.

Unlike most provider contracts, every operation here is **synchronous**:
``LoadEngine.load`` has to answer inside a single render pass and cannot
await, so the store it consults can't either.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for the load engine's key/value cache."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value stored under *key*.

        Parameters
        ----------
        key:
            The cache key to look up.
        default:
            Returned when the key is absent or expired.

        Returns
        -------
        Any
            The cached value, or *default*.  An expired entry is evicted
            as a side effect of the read.
        """

    @abstractmethod
    def set(self, key: str, value: Any, duration: float | None = None) -> None:
        """Store *value* under *key*.

        Parameters
        ----------
        key:
            The cache key.
        value:
            The value to store.  Durable providers require it to be
            JSON-serialisable.
        duration:
            Time-to-live in seconds.  ``None`` (or ``0``) stores an
            immortal entry.
        """

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove the entry stored under *key* (no-op if absent)."""

    @abstractmethod
    def clear_all_memory(self) -> None:
        """Drop every immortal entry from memory.

        Entries with an expiration, and anything already on durable
        storage, are left alone.
        """

    @abstractmethod
    def cleanup(self) -> None:
        """Reset the store to empty and remove any durable backing."""

    @abstractmethod
    def dump(self) -> dict[str, Any]:
        """Return ``{key: value}`` for every live entry."""

    @abstractmethod
    def persist(self) -> None:
        """Write the full in-memory mapping to durable storage, if any."""

    @abstractmethod
    def __contains__(self, key: object) -> bool:
        """Return ``True`` if *key* holds a live (unexpired) entry."""
