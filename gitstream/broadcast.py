"""Multicast holder for the currently checked-out branch."""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable

from gitstream.models import Branch

logger = logging.getLogger(__name__)

_DONE = object()


class Subscription:
    """Handle returned by BranchBroadcast.subscribe."""

    def __init__(self, broadcast: "BranchBroadcast | None", key: int) -> None:
        self._broadcast = broadcast
        self._key = key

    @property
    def active(self) -> bool:
        return self._broadcast is not None and self._broadcast._has(self._key)

    def unsubscribe(self) -> None:
        if self._broadcast is not None:
            self._broadcast._remove(self._key)
            self._broadcast = None


class BranchBroadcast:
    """Last-value cache plus a registry of subscriber callbacks.

    Subscribers receive the cached value on subscription and every later
    publish. Once closed, pending subscribers are completed and detached and
    late subscribers are completed immediately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, tuple[Callable[[Branch], None], Callable[[], None] | None]] = {}
        self._next_key = 0
        self._latest: Branch | None = None
        self._closed = False

    @property
    def latest(self) -> Branch | None:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self,
        on_next: Callable[[Branch], None],
        on_completed: Callable[[], None] | None = None,
    ) -> Subscription:
        with self._lock:
            closed = self._closed
            if not closed:
                key = self._next_key
                self._next_key += 1
                self._subscribers[key] = (on_next, on_completed)
                cached = self._latest
        if closed:
            if on_completed is not None:
                on_completed()
            return Subscription(None, -1)
        if cached is not None:
            on_next(cached)
        return Subscription(self, key)

    def publish(self, branch: Branch) -> None:
        with self._lock:
            if self._closed:
                logger.debug("ignoring publish of %s after close", branch.name)
                return
            self._latest = branch
            callbacks = [on_next for on_next, _ in self._subscribers.values()]
        for on_next in callbacks:
            try:
                on_next(branch)
            except Exception:
                logger.exception("subscriber failed on publish of %s", branch.name)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._subscribers.values())
            self._subscribers.clear()
        for _, on_completed in pending:
            if on_completed is None:
                continue
            try:
                on_completed()
            except Exception:
                logger.exception("subscriber failed on completion")

    async def wait_latest(self) -> Branch | None:
        """Return the cached branch, else wait for the next one (None if closed first)."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Branch | None] = loop.create_future()

        def resolve(value: Branch | None) -> None:
            if not future.done():
                future.set_result(value)

        subscription = self.subscribe(
            lambda branch: loop.call_soon_threadsafe(resolve, branch),
            lambda: loop.call_soon_threadsafe(resolve, None),
        )
        try:
            return await future
        finally:
            subscription.unsubscribe()

    async def stream(self) -> AsyncIterator[Branch]:
        """Yield branches from now on until the broadcast closes."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[object] = asyncio.Queue()
        subscription = self.subscribe(
            lambda branch: loop.call_soon_threadsafe(queue.put_nowait, branch),
            lambda: loop.call_soon_threadsafe(queue.put_nowait, _DONE),
        )
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    return
                yield item  # type: ignore[misc]
        finally:
            subscription.unsubscribe()

    def _has(self, key: int) -> bool:
        with self._lock:
            return key in self._subscribers

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscribers.pop(key, None)
