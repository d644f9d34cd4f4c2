"""
Concurrency helpers for upstream fan-out.

gather_all      — every fetch is mandatory; the first failure cancels the rest
gather_settled  — every fetch is optional; failures fall back to defaults
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

log = logging.getLogger(__name__)


async def gather_all(*fetches: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently and return their results in order.

    If one raises, the still-running siblings are cancelled and awaited
    before the exception propagates, so no request outlives the call.
    """
    tasks = [asyncio.ensure_future(f) for f in fetches]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def gather_settled(fetches: dict[str, Awaitable[Any]], defaults: dict[str, Any]) -> dict[str, Any]:
    """
    Run named awaitables concurrently; a failure in one never affects the others.

    A failed fetch contributes defaults[name] instead of its result and is
    logged. Cancellation still propagates.
    """
    names = list(fetches)
    results = await asyncio.gather(*(fetches[n] for n in names), return_exceptions=True)

    settled: dict[str, Any] = {}
    for name, result in zip(names, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, Exception):
            log.warning("Optional fetch %r failed: %s", name, result)
            settled[name] = defaults.get(name)
        else:
            settled[name] = result
    return settled
