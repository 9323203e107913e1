"""Load engine components: the in-flight registry and the flush loop."""

from presta.engine.load_engine import (
    DEFAULT_MAX_PASSES,
    LoadEngine,
    cache,
    current_engine,
    load,
    prime,
    use_engine,
)
from presta.engine.registry import InFlightRegistry

__all__ = [
    "DEFAULT_MAX_PASSES",
    "InFlightRegistry",
    "LoadEngine",
    "cache",
    "current_engine",
    "load",
    "prime",
    "use_engine",
]
