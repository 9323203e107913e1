"""presta: static pages whose data loads converge through a cached flush loop.

Typical page code::

    import presta

    def render(path):
        post = presta.load(lambda: fetch_post(path), key=path, duration=3600)
        return f"<h1>{post['title']}</h1>" if post else "<h1>Loading</h1>"

    engine = presta.create_engine()
    result = await engine.flush(lambda: render("/hello"))
    result.content, result.data
"""

from presta.engine.load_engine import (
    LoadEngine,
    cache,
    current_engine,
    load,
    prime,
    use_engine,
)
from presta.main import create_engine, create_store
from presta.models.flush import FlushResult
from presta.models.page import Page

__version__ = "0.1.0"

__all__ = [
    "FlushResult",
    "LoadEngine",
    "Page",
    "__version__",
    "cache",
    "create_engine",
    "create_store",
    "current_engine",
    "load",
    "prime",
    "use_engine",
]
