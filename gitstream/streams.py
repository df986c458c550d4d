"""Helpers for combining async line streams."""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from typing import TypeVar

T = TypeVar("T")

_END = object()


async def merge(*streams: AsyncGenerator[T, None]) -> AsyncIterator[T]:
    """Interleave items from several streams in arrival order.

    The first failure of any stream is raised once it is reached; the other
    streams are then closed.
    """
    queue: asyncio.Queue[tuple[object, BaseException | None]] = asyncio.Queue()

    async def pump(stream: AsyncGenerator[T, None]) -> None:
        try:
            async with aclosing(stream):
                async for item in stream:
                    await queue.put((item, None))
        except Exception as exc:
            await queue.put((_END, exc))
        else:
            await queue.put((_END, None))

    tasks = [asyncio.ensure_future(pump(stream)) for stream in streams]
    try:
        remaining = len(tasks)
        while remaining:
            item, error = await queue.get()
            if item is _END:
                if error is not None:
                    raise error
                remaining -= 1
                continue
            yield item  # type: ignore[misc]
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def has_any(lines: AsyncGenerator[str, None]) -> bool:
    """Return True as soon as the stream yields a line; stops the stream early."""
    async with aclosing(lines):
        async for _ in lines:
            return True
    return False
