"""Shared concurrency primitives for the load engine.

Two patterns are exposed:

1. **settle_all** -- the "wait for everything, whatever the outcome" join
   used by the flush loop.  A failing loader must not abort the wait for
   the loaders that succeed, so exceptions are returned, never raised.

2. **throttled** -- wraps one awaitable in a semaphore acquire/release so
   the engine can cap how many loaders execute at once without changing
   when they are scheduled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

_T = TypeVar("_T")


async def settle_all(aws: Iterable[Awaitable[_T]]) -> list[_T | BaseException]:
    """Wait for every awaitable to finish, collecting results and errors.

    Parameters
    ----------
    aws:
        Awaitables (usually tasks already scheduled on the loop).

    Returns
    -------
    list[_T | BaseException]
        Results in input order; failed awaitables contribute their
        exception instead of raising it.
    """
    pending = list(aws)
    if not pending:
        return []
    return await asyncio.gather(*pending, return_exceptions=True)


async def throttled(
    aw: Awaitable[_T],
    semaphore: asyncio.Semaphore | None = None,
) -> _T:
    """Await *aw* while holding *semaphore* (no-op when ``None``)."""
    if semaphore is None:
        return await aw

    async with semaphore:
        return await aw
