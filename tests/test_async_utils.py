"""
Tests for async_utils module.

Covers run_sync.
"""

import threading

import pytest

from widget_transfer.core.async_utils import run_sync


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    """run_sync delegates to a worker thread with the given args."""
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_uses_worker_thread():
    main_thread = threading.get_ident()
    worker_thread = await run_sync(threading.get_ident)
    assert worker_thread != main_thread


async def test_run_sync_propagates_exceptions():
    def _fail():
        raise OSError("registry locked")

    with pytest.raises(OSError, match="registry locked"):
        await run_sync(_fail)
