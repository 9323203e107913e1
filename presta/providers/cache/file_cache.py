"""JSON-file-backed durable cache provider.

Keeps every entry in memory and mirrors the mapping to a single JSON file
(``<directory>/.<name>``) so that data fetched during one build is still
warm for the next one.  The file holds one object::

    {"<key>": [<value>, <expiration epoch ms or null>], ...}

Persistence policy
------------------
Only writes that carry an expiration go straight to disk.  Immortal
entries are per-process memoisation: they stay in memory and only reach
the file when some later TTL'd write (or an explicit :meth:`persist`)
serialises the whole mapping.  Call :meth:`persist` to force them out.

Failure policy
--------------
* reading: a missing, unreadable or corrupt file is an empty cache; the
  build keeps going cold and the file is recreated;
* writing: failures raise :class:`CacheStoreError` to the caller of
  ``set``/``clear``/``persist`` and leave the in-memory mapping as it was
  before the call;
* values: ``set`` rejects anything JSON can't encode, immortal or not, so
  a bad value fails where it is stored rather than on a later rewrite.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

import structlog

from presta.interfaces.cache_provider import ICacheProvider
from presta.models.cache import CacheEntry, expiration_for, now_ms
from presta.utils.errors import CacheStoreError
from presta.utils.logging import get_logger

DEFAULT_CACHE_NAME = "presta-load-cache"


class FileCacheProvider(ICacheProvider):
    """Durable key/value store with per-entry expiration.

    Parameters
    ----------
    name:
        Cache name; the backing file is ``.<name>`` inside *directory*.
        Distinct names give independent caches.
    directory:
        Directory holding the backing file.  Defaults to the current
        working directory.
    """

    def __init__(
        self,
        name: str = DEFAULT_CACHE_NAME,
        directory: str | Path | None = None,
    ) -> None:
        self._name = name
        self._path = Path(directory or os.getcwd()) / f".{name}"
        self._lock = threading.Lock()
        self._logger: structlog.BoundLogger = get_logger(__name__)
        self._entries: dict[str, CacheEntry] = self._read()

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        """Location of the backing file."""
        return self._path

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for *key*, evicting it first if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return default

        if entry.is_expired():
            del self._entries[key]
            self._logger.debug("cache_expired", key=key, cache=self._name)
            self._write()
            return default

        return entry.value

    def set(self, key: str, value: Any, duration: float | None = None) -> None:
        """Store *value*; write through to disk only when it has a TTL."""
        entry = CacheEntry(key=key, value=value, expiration=expiration_for(duration))
        # Immortal values are checked too; they reach the file on the next rewrite.
        self._check_serialisable(key, value)

        previous = self._entries.get(key)
        self._entries[key] = entry
        if not entry.is_immortal:
            try:
                self._write()
            except CacheStoreError:
                self._restore(key, previous)
                raise
        self._logger.debug(
            "cache_set",
            key=key,
            cache=self._name,
            expiration=entry.expiration,
        )

    def clear(self, key: str) -> None:
        """Remove *key* from memory and rewrite the backing file."""
        previous = self._entries.pop(key, None)
        try:
            self._write()
        except CacheStoreError:
            self._restore(key, previous)
            raise
        self._logger.debug("cache_clear", key=key, cache=self._name)

    def clear_all_memory(self) -> None:
        """Forget every immortal entry; TTL'd entries and the file are kept."""
        immortal = [key for key, entry in self._entries.items() if entry.is_immortal]
        for key in immortal:
            del self._entries[key]
        self._logger.debug("cache_memory_cleared", cache=self._name, dropped=len(immortal))

    def cleanup(self) -> None:
        """Empty the store and delete the backing file if it exists."""
        self._entries = {}
        # The file may never have been created.
        with contextlib.suppress(OSError):
            self._path.unlink()
        self._logger.debug("cache_cleanup", cache=self._name, path=str(self._path))

    def dump(self) -> dict[str, Any]:
        """Return ``{key: value}`` for every entry that has not expired."""
        now = now_ms()
        return {
            key: entry.value
            for key, entry in self._entries.items()
            if not entry.is_expired(now)
        }

    def persist(self) -> None:
        """Write the whole in-memory mapping, immortal entries included."""
        self._write()

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key) if isinstance(key, str) else None
        return entry is not None and not entry.is_expired()

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, CacheEntry]:
        """Load the backing file, falling back to an empty cache."""
        if not self._path.exists():
            self._recreate()
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self._logger.warning(
                "cache_read_failed",
                cache=self._name,
                path=str(self._path),
                error=str(exc),
            )
            self._recreate()
            return {}

        if not isinstance(raw, dict):
            self._logger.warning(
                "cache_read_failed",
                cache=self._name,
                path=str(self._path),
                error="backing file is not a JSON object",
            )
            self._recreate()
            return {}

        entries: dict[str, CacheEntry] = {}
        for key, record in raw.items():
            try:
                entries[key] = CacheEntry.from_record(key, record)
            except ValueError as exc:
                self._logger.warning("cache_record_skipped", key=key, error=str(exc))

        self._logger.debug("cache_loaded", cache=self._name, entries=len(entries))
        return entries

    def _check_serialisable(self, key: str, value: Any) -> None:
        try:
            json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheStoreError(
                f"cache value is not JSON-serialisable: {exc}", key=key
            ) from exc

    def _restore(self, key: str, previous: CacheEntry | None) -> None:
        """Undo an in-memory change whose write failed."""
        if previous is None:
            self._entries.pop(key, None)
        else:
            self._entries[key] = previous

    def _recreate(self) -> None:
        """Write an empty object to the backing file.

        Part of the read path, so failures are logged rather than raised.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text("{}", encoding="utf-8")
        except OSError as exc:
            self._logger.warning(
                "cache_create_failed",
                cache=self._name,
                path=str(self._path),
                error=str(exc),
            )

    def _write(self) -> None:
        """Atomically rewrite the backing file from memory."""
        try:
            body = json.dumps(
                {key: entry.to_record() for key, entry in self._entries.items()},
                ensure_ascii=False,
                separators=(",", ":"),
            )
        except (TypeError, ValueError) as exc:
            raise CacheStoreError(f"cache value is not JSON-serialisable: {exc}") from exc

        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    prefix=self._path.name,
                    suffix=".tmp",
                    dir=str(self._path.parent),
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(body)
                    Path(tmp_path).replace(self._path)
                finally:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
            except OSError as exc:
                raise CacheStoreError(
                    f"could not write cache file {self._path}: {exc}"
                ) from exc

        self._logger.debug("cache_write", cache=self._name, entries=len(self._entries))
