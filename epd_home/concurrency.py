"""Helpers for running upstream fetches side by side."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable


async def gather_all(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await everything concurrently, returning results in argument order.

    If one fails, or the caller is cancelled, the others are cancelled and
    the exception propagates unchanged.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


__all__ = ["gather_all"]
