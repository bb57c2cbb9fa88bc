"""Correlation of command IDs to waiting callers.

CorrelationTable maps each in-flight command ID to a single-use Waiter.
The receive loop settles waiters with the matching Response; teardown fails
whatever is left. All mutation happens synchronously on the event loop that
owns the connection, so no entry is ever touched by two paths at once.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .codec import Response
from .exceptions import DuplicateCommandIdError

logger = logging.getLogger(__name__)


class Waiter:
    """Single-use handoff slot between the receive loop and one caller.

    Settled exactly once, either with a Response or with an exception.

    Attributes:
        command_id: ID of the command this waiter belongs to
        method: CDP method name, kept for error reporting
    """

    def __init__(
        self,
        command_id: int,
        method: str = "",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.command_id = command_id
        self.method = method
        loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future = loop.create_future()

    def done(self) -> bool:
        return self._future.done()

    def resolve(self, response: Response) -> bool:
        """Settle with a response. Returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_result(response)
        return True

    def fail(self, exc: BaseException) -> bool:
        """Settle with an error. Returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_exception(exc)
        # Teardown fails waiters nobody may ever await; mark it retrieved
        self._future.exception()
        return True

    async def wait(self) -> Response:
        """Wait until settled. Cancelling the caller leaves the waiter intact."""
        return await asyncio.shield(self._future)

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"Waiter(id={self.command_id}, method={self.method!r}, {state})"


class CorrelationTable:
    """Map from in-flight command ID to its Waiter."""

    def __init__(self):
        self._waiters: Dict[int, Waiter] = {}

    def __len__(self) -> int:
        return len(self._waiters)

    def __contains__(self, command_id: int) -> bool:
        return command_id in self._waiters

    def ids(self) -> List[int]:
        return list(self._waiters)

    def register(self, command_id: int, method: str = "") -> Waiter:
        """Create and store a waiter for a command about to be sent.

        Raises:
            DuplicateCommandIdError: If the ID is already in flight
        """
        if command_id in self._waiters:
            raise DuplicateCommandIdError(command_id)
        waiter = Waiter(command_id, method)
        self._waiters[command_id] = waiter
        return waiter

    def fulfill(self, response: Response) -> bool:
        """Deliver a response to its waiter and drop the entry.

        A response whose ID has no waiter (late reply after a local timeout,
        duplicate reply) is discarded.

        Returns:
            True if a waiter received the response
        """
        waiter = self._waiters.pop(response.id, None)
        if waiter is None:
            logger.debug(f"Discarding response for unknown command id {response.id}")
            return False
        return waiter.resolve(response)

    def discard(self, command_id: int) -> bool:
        """Remove an entry without settling it."""
        return self._waiters.pop(command_id, None) is not None

    def fail_all(self, exc: BaseException) -> int:
        """Drain every entry and fail its waiter with ``exc``.

        Returns:
            Number of waiters that were failed
        """
        waiters = list(self._waiters.values())
        self._waiters.clear()
        failed = 0
        for waiter in waiters:
            if waiter.fail(exc):
                failed += 1
        if failed:
            logger.debug(f"Failed {failed} pending command(s): {exc}")
        return failed
