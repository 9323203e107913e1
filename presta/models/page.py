"""Page model consumed by the static builder.

A page pairs a URL path with a render callable.  The callable receives the
path and returns the page content; it may call ``presta.load`` any number
of times and will itself be called once per render pass.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class Page(BaseModel):
    """A statically rendered page."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    render: Callable[[str], Any]

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"page path must start with '/': {value!r}")
        # Output files are derived from the path and must stay inside the build dir.
        if ".." in PurePosixPath(value).parts:
            raise ValueError(f"page path must not contain '..': {value!r}")
        return value
