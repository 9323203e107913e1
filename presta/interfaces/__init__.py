"""Public interface definitions for pluggable presta components.

The load engine talks to its cache exclusively through the abstract base
class defined here.  Concrete stores live in ``presta/providers/`` and are
chosen in ``presta/main.py``:

    Interface        →  Concrete implementations (in presta/providers/)
    ─────────────────────────────────────────────────────────────────
    ICacheProvider   →  FileCacheProvider, MemoryCacheProvider
"""

from presta.interfaces.cache_provider import ICacheProvider

__all__ = ["ICacheProvider"]
