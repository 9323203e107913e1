"""Cache providers.

FileCacheProvider mirrors entries with an expiration to a JSON file so
fetched page data stays warm between builds.  MemoryCacheProvider keeps the
same contract in memory only; nothing survives the process.
"""

from presta.providers.cache.file_cache import DEFAULT_CACHE_NAME, FileCacheProvider
from presta.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["DEFAULT_CACHE_NAME", "FileCacheProvider", "MemoryCacheProvider"]
