"""Bridge from synchronous callers (click commands) into the async services."""

from __future__ import annotations

import asyncio
from typing import Coroutine, TypeVar

import anyio

T = TypeVar("T")


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Run ``coro`` to completion from sync code.

    From an AnyIO worker thread the coroutine is sent back to the loop that
    owns the thread. Anywhere else without a loop (the CLI) a fresh one is
    started. Calling this on a thread that already runs a loop is an error.

    Raises:
        TimeoutError: ``timeout`` seconds passed first
    """
    if _loop_running():
        coro.close()
        raise RuntimeError("run_async called from async context; use await instead")

    started = False

    async def _runner() -> T:
        nonlocal started
        started = True
        with anyio.fail_after(timeout):
            return await coro

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        if started:
            raise
        # Not an AnyIO worker thread
        return anyio.run(_runner)
