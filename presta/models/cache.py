"""Cache entry model shared by every cache provider.

A ``CacheEntry`` is one ``(key, value, expiration)`` triple.  ``expiration``
is an absolute epoch timestamp in **milliseconds** -- the same unit the
backing file stores -- or ``None`` for an immortal entry that never
expires.

Entries are frozen: replacing a value means storing a new entry, which
keeps providers free of partially-updated state.
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def expiration_for(duration: float | None, now: int | None = None) -> int | None:
    """Translate a duration in seconds into an absolute expiration.

    A falsy duration (``None`` or ``0``) means "no expiration".
    """
    if not duration:
        return None
    if now is None:
        now = now_ms()
    return now + int(duration * 1000)


class CacheEntry(BaseModel):
    """A single cached value plus its optional expiration."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: Any = None
    # Epoch milliseconds; None means the entry lives until removed.
    expiration: int | None = None

    @property
    def is_immortal(self) -> bool:
        return self.expiration is None

    def is_expired(self, now: int | None = None) -> bool:
        """Return ``True`` once the current time is past the expiration."""
        if self.expiration is None:
            return False
        if now is None:
            now = now_ms()
        return now > self.expiration

    def to_record(self) -> list[Any]:
        """Serialise to the ``[value, expiration]`` pair used on disk."""
        return [self.value, self.expiration]

    @classmethod
    def from_record(cls, key: str, record: Any) -> CacheEntry:
        """Build an entry from an on-disk ``[value, expiration]`` pair.

        Raises ``ValueError`` when the record does not have that shape.
        """
        if not isinstance(record, (list, tuple)) or len(record) != 2:
            raise ValueError(f"malformed cache record for key {key!r}")
        value, expiration = record
        if expiration is not None and not isinstance(expiration, (int, float)):
            raise ValueError(f"malformed expiration for key {key!r}")
        return cls(
            key=key,
            value=value,
            expiration=int(expiration) if expiration is not None else None,
        )
