"""Resolve a ``module:attribute`` reference into a list of pages.

Accepted shapes, in order of precedence:

- ``pkg.pages:PAGES``: an iterable of :class:`Page` objects or
  ``(path, render)`` pairs;
- ``pkg.pages:get_pages``: a callable returning such an iterable;
- ``pkg.pages``: a page module exposing ``get_static_paths()`` and
  ``render(path)``, one page per returned path.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from presta.models.page import Page
from presta.utils.errors import ConfigurationError


def load_pages(target: str) -> list[Page]:
    """Import *target* and return the pages it describes.

    Raises
    ------
    ConfigurationError
        If the module can't be imported or doesn't describe any pages.
    """
    module_name, _, attribute = target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"could not import page module {module_name!r}: {exc}") from exc

    if attribute:
        try:
            source: Any = getattr(module, attribute)
        except AttributeError as exc:
            raise ConfigurationError(f"{module_name!r} has no attribute {attribute!r}") from exc
        if callable(source):
            source = source()
        return _coerce_pages(source, target)

    get_static_paths = getattr(module, "get_static_paths", None)
    render = getattr(module, "render", None)
    if not callable(get_static_paths) or not callable(render):
        raise ConfigurationError(
            f"{module_name!r} must define get_static_paths() and render(path)"
        )
    return _coerce_pages(((path, render) for path in get_static_paths()), target)


def _coerce_pages(source: Any, target: str) -> list[Page]:
    if not isinstance(source, Iterable) or isinstance(source, (str, bytes)):
        raise ConfigurationError(f"{target!r} did not produce a list of pages")

    pages: list[Page] = []
    for item in source:
        if isinstance(item, Page):
            pages.append(item)
            continue
        try:
            path, render = item
            pages.append(Page(path=path, render=render))
        except (TypeError, ValueError, ValidationError) as exc:
            raise ConfigurationError(f"invalid page entry in {target!r}: {item!r}") from exc
    return pages
