"""
Async utilities.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional


def safe_ensure_future(coro: Awaitable) -> asyncio.Future:
    """
    Safely create a future from a coroutine.
    """
    try:
        return asyncio.ensure_future(coro)
    except Exception as e:
        logging.error(f"Error creating future: {e}")
        future = asyncio.get_event_loop().create_future()
        future.set_exception(e)
        return future


async def maybe_await(callback: Callable[..., Any], *args: Any) -> Optional[Any]:
    """Call a sync or async callback and return its result"""
    result = callback(*args)
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        return await result
    return result
