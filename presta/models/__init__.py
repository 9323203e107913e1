"""presta domain models -- re-exports all public model classes.

The models are organized by concern:
    - cache.py : Cache entries and expiration helpers
    - flush.py : Flush cycle results and static build summaries
    - page.py  : Pages handed to the static builder
"""

from __future__ import annotations

from presta.models.cache import CacheEntry, expiration_for, now_ms
from presta.models.flush import BuildSummary, BuiltPage, FlushResult
from presta.models.page import Page

__all__ = [
    "BuildSummary",
    "BuiltPage",
    "CacheEntry",
    "FlushResult",
    "Page",
    "expiration_for",
    "now_ms",
]
