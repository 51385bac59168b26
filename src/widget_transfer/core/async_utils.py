"""Async utilities for bridging synchronous registry calls to async MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Registry reads and writes are synchronous (file or host API calls), so
    MCP tool handlers wrap them with this helper.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        # In MCP tool handler:
        payload = await run_sync(transfer.export)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
