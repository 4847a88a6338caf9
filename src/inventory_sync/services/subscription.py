import asyncio
from typing import Awaitable, Callable, List, Optional

from inventory_sync.models.events import ErrorEvent, SubscriptionEvent
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)

_END = object()

CancelCallback = Callable[[], Awaitable[None]]


class Subscription:
    """Cancellable stream of snapshot/error events for one collection path.

    The store pushes events in; the owner iterates with `async for`. Once
    cancelled, pending and late events are discarded. An ErrorEvent ends the
    stream.
    """

    def __init__(self, path: str):
        self.path = path
        self._queue: asyncio.Queue = asyncio.Queue()
        self._cancelled = False
        self._finished = False
        self._cancel_callbacks: List[CancelCallback] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._finished)

    def add_cancel_callback(self, callback: CancelCallback) -> None:
        self._cancel_callbacks.append(callback)

    def push(self, event: SubscriptionEvent) -> None:
        if not self.active:
            logger.debug(f"Discarding {type(event).__name__} for closed subscription {self.path}")
            return

        self._queue.put_nowait(event)
        if isinstance(event, ErrorEvent):
            self.finish()

    def finish(self) -> None:
        """Mark the stream as ended by the producer."""
        if self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_END)

    async def cancel(self) -> None:
        """Stop delivery and release the underlying connection. Safe to call repeatedly."""
        if self._cancelled:
            return
        self._cancelled = True
        self._queue.put_nowait(_END)

        callbacks, self._cancel_callbacks = self._cancel_callbacks, []
        for callback in callbacks:
            await callback()
        logger.debug(f"Subscription to {self.path} cancelled")

    def __aiter__(self):
        return self

    async def __anext__(self) -> SubscriptionEvent:
        if self._cancelled:
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _END or self._cancelled:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cancel()
