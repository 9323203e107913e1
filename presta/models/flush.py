"""Result models produced by the flush convergence loop and the static builder."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FlushResult(BaseModel):
    """Outcome of one flush cycle.

    ``content`` is whatever the final render pass returned (usually an
    HTML string).  ``data`` is a snapshot of every live cached value at the
    moment the loop settled, ready to be serialised for hydration.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    content: Any = None
    data: dict[str, Any] = Field(default_factory=dict)
    # Number of render passes it took to converge (always >= 1).
    passes: int = 1


class BuiltPage(BaseModel):
    """One page written by the static builder."""

    model_config = ConfigDict(frozen=True)

    path: str
    output_file: str
    passes: int
    data_keys: list[str] = Field(default_factory=list)


class BuildSummary(BaseModel):
    """Summary emitted after a static build completes."""

    model_config = ConfigDict(frozen=True)

    output_dir: str
    pages: list[BuiltPage] = Field(default_factory=list)
    duration: float = 0.0

    @property
    def page_count(self) -> int:
        return len(self.pages)
