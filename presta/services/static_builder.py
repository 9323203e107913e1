"""Static page builder: runs every page through a flush and writes HTML.

Each page is rendered with :meth:`LoadEngine.flush`, so its data loads
converge before anything is written.  The flushed cache snapshot is
embedded in the page as a JSON hydration payload::

    <script id="presta-data" type="application/json">{...}</script>

A failing page does not stop the others: every page is attempted, the
failures are logged, and a single :class:`BuildError` listing them is
raised at the end.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import Any

import structlog

from presta.engine.load_engine import LoadEngine
from presta.models.flush import BuildSummary, BuiltPage
from presta.models.page import Page
from presta.pipeline.hooks import BUILD_FILE, POST_BUILD, BuildHooks
from presta.utils.errors import BuildError
from presta.utils.logging import get_logger

DATA_SCRIPT_ID = "presta-data"


def output_path_for(output_dir: Path, page_path: str) -> Path:
    """Map a URL path to the file it is written to.

    ``/`` → ``index.html``, ``/about`` → ``about/index.html``; paths that
    already carry a file extension (``/404.html``, ``/feed.xml``) are kept.
    """
    relative = PurePosixPath(page_path.lstrip("/"))
    if not relative.parts:
        return output_dir / "index.html"
    if relative.suffix:
        return output_dir.joinpath(*relative.parts)
    return output_dir.joinpath(*relative.parts, "index.html")


def embed_data(content: str, data: dict[str, Any]) -> str:
    """Insert the hydration payload before ``</body>`` (or append it)."""
    payload = json.dumps(data, ensure_ascii=False, default=str).replace("</", "<\\/")
    script = f'<script id="{DATA_SCRIPT_ID}" type="application/json">{payload}</script>'

    marker = content.rfind("</body>")
    if marker == -1:
        return content + script
    return content[:marker] + script + content[marker:]


class StaticBuilder:
    """Renders pages through a load engine and writes them to disk.

    Parameters
    ----------
    engine:
        Engine whose cache and registry the pages load through.
    output_dir:
        Root directory for the generated files.
    hooks:
        Optional hooks receiving ``build_file`` per page and
        ``post_build`` once with the :class:`BuildSummary`.
    """

    def __init__(
        self,
        engine: LoadEngine,
        output_dir: str | Path,
        hooks: BuildHooks | None = None,
    ) -> None:
        self._engine = engine
        self._output_dir = Path(output_dir)
        self._hooks = hooks or BuildHooks()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def hooks(self) -> BuildHooks:
        return self._hooks

    async def build(self, pages: Iterable[Page]) -> BuildSummary:
        """Build every page, then report all failures together."""
        started = time.perf_counter()
        pages = list(pages)
        built: list[BuiltPage] = []
        failures: dict[str, BaseException] = {}

        if not pages:
            self._logger.warning("no_pages", message="no pages were found, nothing to build")

        # Pages share one engine, so they are flushed one at a time.
        for page in pages:
            try:
                built.append(await self.build_page(page))
            except Exception as exc:
                failures[page.path] = exc
                self._logger.error(
                    "page_failed",
                    path=page.path,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

        # Immortal entries are per-build memoisation.
        self._engine.store.clear_all_memory()

        if failures:
            self._logger.debug("build_partially_failed", failed=len(failures), built=len(built))
            raise BuildError(
                f"presta build failed: {len(failures)} of {len(pages)} page(s) errored",
                failures=failures,
            )

        summary = BuildSummary(
            output_dir=str(self._output_dir),
            pages=built,
            duration=round(time.perf_counter() - started, 3),
        )
        self._logger.info(
            "build_complete",
            pages=summary.page_count,
            duration=summary.duration,
            output_dir=summary.output_dir,
        )
        await self._hooks.emit(POST_BUILD, summary)
        return summary

    async def build_page(self, page: Page) -> BuiltPage:
        """Flush one page and write its HTML file."""
        result = await self._engine.flush(lambda: page.render(page.path))

        content = "" if result.content is None else result.content
        if not isinstance(content, str):
            raise TypeError(
                f"render for {page.path} returned {type(content).__name__}, expected str"
            )

        output_file = output_path_for(self._output_dir, page.path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(embed_data(content, result.data), encoding="utf-8")

        built = BuiltPage(
            path=page.path,
            output_file=str(output_file),
            passes=result.passes,
            data_keys=sorted(result.data),
        )
        self._logger.debug("page_built", path=page.path, passes=result.passes)
        await self._hooks.emit(BUILD_FILE, built)
        return built
