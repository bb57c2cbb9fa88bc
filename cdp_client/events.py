"""FIFO queue of CDP events for a single connection.

The receive loop is the only producer. Consumers call ``get`` and are served
in arrival order. After ``close`` the remaining events are still handed out;
once drained every ``get`` raises ConnectionClosedError.
"""

import asyncio
from typing import Optional

from .codec import Event
from .exceptions import CDPTimeoutError, ConnectionClosedError

_CLOSED = object()


class EventQueue:
    """Unbounded event queue with a terminal closed marker."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._close_reason = "Connection closed"

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        """Number of events waiting to be consumed."""
        size = self._queue.qsize()
        return size - 1 if self._closed else size

    def put(self, event: Event) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def close(self, reason: str = "Connection closed") -> None:
        """Mark the queue closed. Consumers drain it, then see ConnectionClosedError."""
        if self._closed:
            return
        self._closed = True
        self._close_reason = reason
        self._queue.put_nowait(_CLOSED)

    async def get(self, timeout: Optional[float] = None) -> Event:
        """Pop the oldest event, waiting up to ``timeout`` seconds.

        Args:
            timeout: Seconds to wait; None waits until an event or close

        Raises:
            CDPTimeoutError: If no event arrives in time
            ConnectionClosedError: If the queue is closed and drained
        """
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            if timeout is None:
                item = await self._queue.get()
            else:
                try:
                    item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
                except asyncio.TimeoutError:
                    raise CDPTimeoutError(
                        f"No event received within {timeout}s", timeout=timeout
                    ) from None

        if item is _CLOSED:
            # Leave the marker for the next consumer
            self._queue.put_nowait(_CLOSED)
            raise ConnectionClosedError(self._close_reason)
        return item
