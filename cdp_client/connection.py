"""CDP WebSocket connection management.

Provides CDPConnection, the engine that owns the socket, assigns command IDs,
correlates responses to waiting callers and queues events.
Handles WebSocket lifecycle, message routing and teardown of pending work.
"""

import asyncio
import enum
import logging
from typing import Any, Callable, Optional

try:
    import websockets
    from websockets.exceptions import ConnectionClosed
except ImportError:
    raise ImportError(
        "websockets library not found. Install with: pip3 install websockets"
    )

from .codec import Event, Response, decode, encode
from .correlation import CorrelationTable, Waiter
from .events import EventQueue
from .exceptions import (
    ConnectionClosedError,
    ConnectionFailedError,
    CommandFailedError,
    CDPTimeoutError,
    FrameDecodeError,
    NotConnectedError,
)
from .logging_setup import log_with_context

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_SIZE = 2_097_152  # 2MB, large DOM snapshots


class ConnectionState(enum.Enum):
    """Lifecycle of a connection. Transitions only move forward."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class PendingCommand:
    """Handle returned by ``CDPConnection.send`` for a command awaiting its reply.

    Attributes:
        id: Command ID assigned by the connection
        method: CDP method name
    """

    def __init__(self, waiter: Waiter):
        self.waiter = waiter

    @property
    def id(self) -> int:
        return self.waiter.command_id

    @property
    def method(self) -> str:
        return self.waiter.method

    def done(self) -> bool:
        return self.waiter.done()

    def __repr__(self) -> str:
        return f"PendingCommand(id={self.id}, method={self.method!r})"


class CDPConnection:
    """Manages WebSocket connection to Chrome DevTools Protocol endpoint.

    Handles:
    - Connection lifecycle (connect, disconnect, context manager)
    - Command ID allocation and response correlation
    - Event queueing in wire order
    - Failing every pending command when the socket closes

    Usage:
        async with CDPConnection(ws_url) as conn:
            result = await conn.execute_command("Runtime.evaluate", {"expression": "1+1"})

            pending = await conn.send("DOM.enable")
            event = await conn.wait_message(timeout=5.0)
            await conn.await_result(pending)

    A closed connection cannot be reopened; create a new CDPConnection instead.

    Attributes:
        ws_url: WebSocket debugger URL
        timeout: Default command timeout in seconds
        max_size: Maximum WebSocket message size in bytes (for large DOMs)
    """

    def __init__(
        self,
        ws_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        """Initialize CDP connection.

        Args:
            ws_url: WebSocket debugger URL (e.g., ws://localhost:9222/devtools/page/ABC123)
            timeout: Default command timeout in seconds
            max_size: Maximum WebSocket message size in bytes
        """
        if not ws_url.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URL: {ws_url}")

        self.ws_url = ws_url
        self.timeout = timeout
        self.max_size = max_size

        self._ws: Any = None
        self._state = ConnectionState.CONNECTING
        self._close_reason: Optional[str] = None
        self._next_command_id: int = 1
        self._pending = CorrelationTable()
        self._events = EventQueue()
        self._write_lock = asyncio.Lock()
        self._receive_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if WebSocket connection is open."""
        return self._state is ConnectionState.OPEN

    @property
    def close_reason(self) -> Optional[str]:
        return self._close_reason

    @property
    def pending_commands(self) -> int:
        """Number of commands sent and still awaiting a response."""
        return len(self._pending)

    @property
    def pending_events(self) -> int:
        """Number of queued events not yet consumed by wait_message."""
        return self._events.qsize()

    async def connect(self) -> None:
        """Establish WebSocket connection and start receive loop.

        Raises:
            ConnectionFailedError: If WebSocket connection fails
            ConnectionClosedError: If this connection was already closed
        """
        if self._state is ConnectionState.CLOSED:
            raise ConnectionClosedError(
                "Connection already closed; create a new CDPConnection",
                details={"url": self.ws_url},
            )
        if self._state is ConnectionState.OPEN:
            logger.debug("connect() called on an open connection")
            return

        try:
            logger.info(f"Connecting to {self.ws_url}")
            self._ws = await websockets.connect(self.ws_url, max_size=self.max_size)
        except Exception as e:
            self._mark_closed(f"Connection failed: {e}")
            raise ConnectionFailedError(
                f"Failed to connect to {self.ws_url}: {e}",
                details={"url": self.ws_url, "error": str(e)},
            ) from e

        self._state = ConnectionState.OPEN
        self._receive_task = asyncio.create_task(self._receive_loop())
        log_with_context(
            logger, logging.INFO, "CDP connection established", ws_url=self.ws_url
        )

    async def disconnect(self) -> None:
        """Close WebSocket connection gracefully.

        Pending commands fail with ConnectionClosedError. Safe to call twice.
        """
        logger.info("Disconnecting CDP connection")
        self._mark_closed("Connection closed by client")

        # Cancel receive loop
        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error closing WebSocket: {e}")

    async def __aenter__(self) -> "CDPConnection":
        """Context manager entry: connect automatically."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit: disconnect automatically."""
        await self.disconnect()

    def _ensure_open(self) -> None:
        if self._state is ConnectionState.CLOSED:
            raise ConnectionClosedError(
                f"Cannot send command: {self._close_reason or 'connection closed'}"
            )
        if self._state is not ConnectionState.OPEN:
            raise NotConnectedError("Cannot send command: connection not open")

    def _ensure_started(self) -> None:
        # A closed connection still drains its queue before raising
        if self._state is ConnectionState.CONNECTING:
            raise NotConnectedError("Cannot wait for events: connection not open")

    async def send(self, method: str, params: Optional[dict] = None) -> PendingCommand:
        """Send a CDP command without waiting for its response.

        The only suspension is the exclusive write of the frame; concurrent
        senders never wait on each other's responses.

        Args:
            method: CDP method name (e.g., "DOM.enable")
            params: Method parameters (default: empty dict)

        Returns:
            PendingCommand handle to pass to await_result

        Raises:
            NotConnectedError: If the connection is not open yet
            ConnectionClosedError: If the connection is closed, including
                while this command was waiting for its turn to write
        """
        self._ensure_open()

        cmd_id = self._next_command_id
        self._next_command_id += 1
        waiter = self._pending.register(cmd_id, method)
        message = encode(cmd_id, method, params)

        try:
            async with self._write_lock:
                # disconnect() may have run while this sender was queued
                self._ensure_open()
                await self._ws.send(message)
        except ConnectionClosed as e:
            self._pending.discard(cmd_id)
            raise ConnectionClosedError(
                f"Connection closed while sending {method}: {e}",
                details={"command_id": cmd_id},
            ) from e
        except BaseException:
            self._pending.discard(cmd_id)
            raise

        logger.debug(f"Sent command {cmd_id}: {method}")
        return PendingCommand(waiter)

    async def await_result(
        self, pending: PendingCommand, timeout: Optional[float] = None
    ) -> dict:
        """Wait for the response to a sent command.

        Args:
            pending: Handle returned by send
            timeout: Seconds to wait (default: self.timeout)

        Returns:
            Command result dict (contents of "result" field in response)

        Raises:
            CDPTimeoutError: If no response arrives in time; the command is
                forgotten and a later reply for it is discarded
            CommandFailedError: If Chrome returns error response
            ConnectionClosedError: If the connection closes first
        """
        cmd_timeout = timeout if timeout is not None else self.timeout

        if pending.done():
            response = await pending.waiter.wait()
        else:
            try:
                response = await asyncio.wait_for(
                    pending.waiter.wait(), timeout=cmd_timeout
                )
            except asyncio.TimeoutError:
                self._pending.discard(pending.id)
                raise CDPTimeoutError(
                    "Command timed out",
                    command_method=pending.method,
                    timeout=cmd_timeout,
                ) from None

        return self._unwrap(pending, response)

    @staticmethod
    def _unwrap(pending: PendingCommand, response: Response) -> dict:
        if response.is_error:
            raise CommandFailedError(
                response.error_message,
                method=pending.method,
                error_code=response.error_code,
                details={"error": response.error},
            )
        return response.result

    async def execute_command(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict:
        """Execute CDP command and wait for response.

        Args:
            method: CDP method name (e.g., "Runtime.evaluate", "Console.enable")
            params: Method parameters (default: empty dict)
            timeout: Command timeout in seconds (default: self.timeout)

        Returns:
            Command result dict (contents of "result" field in response)

        Raises:
            NotConnectedError: If connection is not open
            CDPTimeoutError: If command times out
            CommandFailedError: If Chrome returns error response
        """
        pending = await self.send(method, params)
        return await self.await_result(pending, timeout)

    async def wait_message(self, timeout: Optional[float] = None) -> Event:
        """Pop the oldest queued event.

        Args:
            timeout: Seconds to wait (default: wait until an event or close)

        Raises:
            NotConnectedError: If connect() has not been called yet
            CDPTimeoutError: If no event arrives in time
            ConnectionClosedError: If the connection is closed and no events remain
        """
        self._ensure_started()
        return await self._events.get(timeout)

    async def wait_for(
        self, predicate: Callable[[Event], bool], timeout: Optional[float] = None
    ) -> Event:
        """Consume events until one satisfies ``predicate``.

        Events that do not match are dropped.

        Args:
            predicate: Called with each event in arrival order
            timeout: Overall deadline in seconds (default: none)
        """
        self._ensure_started()
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            try:
                event = await self._events.get(remaining)
            except CDPTimeoutError:
                raise CDPTimeoutError(
                    f"No matching event received within {timeout}s", timeout=timeout
                ) from None

            if predicate(event):
                return event
            logger.debug(f"Dropping event while waiting: {event.method}")

    async def wait_event(self, method: str, timeout: Optional[float] = None) -> Event:
        """Wait for the next event named ``method``, dropping others.

        Example:
            await conn.wait_event("Page.loadEventFired", timeout=10.0)
        """
        return await self.wait_for(lambda event: event.method == method, timeout)

    def _mark_closed(self, reason: str) -> None:
        """Move to CLOSED and release everyone waiting. Runs once."""
        if self._state is ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        self._close_reason = reason

        failed = self._pending.fail_all(ConnectionClosedError(reason))
        self._events.close(reason)
        log_with_context(
            logger,
            logging.INFO,
            "CDP connection closed",
            ws_url=self.ws_url,
            reason=reason,
            failed_commands=failed,
        )

    def _dispatch(self, message) -> None:
        """Route one raw frame to its waiter or to the event queue."""
        try:
            frame = decode(message)
        except FrameDecodeError as e:
            logger.warning(f"Skipping malformed CDP frame: {e}")
            return

        if isinstance(frame, Response):
            self._pending.fulfill(frame)
        else:
            logger.debug(f"Received event: {frame.method}")
            self._events.put(frame)

    async def _receive_loop(self) -> None:
        """Background task to receive and route WebSocket messages.

        Frames are handled one at a time in wire order. Ends on socket EOF,
        socket error or cancellation, and always leaves the connection CLOSED.
        """
        reason = "Connection closed by browser"
        try:
            async for message in self._ws:
                self._dispatch(message)
        except ConnectionClosed as e:
            logger.warning(f"WebSocket connection closed: {e}")
            reason = f"Connection closed: {e}"
        except asyncio.CancelledError:
            reason = "Connection closed by client"
            raise
        except Exception as e:
            logger.error(f"Receive loop error: {e}", exc_info=True)
            reason = f"Receive loop error: {e}"
        finally:
            self._mark_closed(reason)
