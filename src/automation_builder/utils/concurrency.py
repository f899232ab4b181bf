"""Async fan-out helpers."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Run ``aws`` concurrently and wait for every one of them to finish.

    Unlike a bare ``asyncio.gather``, no request is left running when a
    sibling fails. Once all have settled the first failure, in argument
    order, is raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for item in results:
        if isinstance(item, BaseException):
            raise item
    return results
