"""Exception hierarchy for CDP client operations.

All exceptions raised by the library inherit from CDPError.
Errors fall into four groups: target discovery, connection lifecycle,
frame decoding and command outcomes (timeouts and protocol error replies).
"""

from typing import Optional


class CDPError(Exception):
    """Base exception for all CDP-related errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class DiscoveryError(CDPError):
    """Target listing failed.

    Raised when the browser's /json endpoint is unreachable or returns a body
    that cannot be parsed into target descriptors. Never retried internally.
    """

    pass


class CDPTargetNotFoundError(CDPError):
    """Target selection failures.

    Raised when requested target cannot be found.
    Example: no page target available, unknown target ID.
    """

    def __init__(
        self,
        message: str,
        target_id: Optional[str] = None,
        url_pattern: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.target_id = target_id
        self.url_pattern = url_pattern

    def __str__(self):
        if self.target_id:
            return f"Target not found: {self.target_id}"
        if self.url_pattern:
            return f"No target matching URL pattern: {self.url_pattern}"
        return super().__str__()


class TargetIndexError(CDPTargetNotFoundError, IndexError):
    """Target index is beyond the discovered target list."""

    def __init__(self, index: int, count: int):
        super().__init__(
            f"Target index {index} out of range",
            details={"index": index, "available": count},
        )
        self.index = index
        self.count = count


class CDPConnectionError(CDPError):
    """WebSocket connection failures.

    Raised when establishing or maintaining CDP WebSocket connection fails.
    """

    pass


class ConnectionFailedError(CDPConnectionError):
    """Initial connection failed.

    Raised when WebSocket connection cannot be established.
    Common causes: wrong port, Chrome not running, network issues.
    """

    pass


class NotConnectedError(CDPConnectionError):
    """Operation attempted on a connection that is not open."""

    pass


class ConnectionClosedError(NotConnectedError):
    """Connection is closed.

    Terminal: every pending and future operation on the connection raises
    this error. A new CDPConnection is needed to continue.
    Common causes: Chrome crash, network interruption, manual closure.
    """

    pass


class DuplicateCommandIdError(CDPError):
    """A command ID was registered twice while still in flight.

    Indicates broken ID allocation inside the connection, not a caller error.
    """

    def __init__(self, command_id: int):
        super().__init__(
            f"Command id {command_id} is already in flight",
            details={"command_id": command_id},
        )
        self.command_id = command_id


class FrameDecodeError(CDPError):
    """Incoming frame is not a well-formed response or event.

    The receive loop logs and skips such frames; the connection stays open.
    """

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.raw = raw


class CDPCommandError(CDPError):
    """Command execution failures.

    Raised when CDP command returns an error response.
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        error_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.method = method
        self.error_code = error_code


class CommandFailedError(CDPCommandError):
    """Command returned error response.

    Raised when Chrome returns error response for executed command.
    Example: invalid JavaScript expression in Runtime.evaluate
    """

    pass


class CDPTimeoutError(CDPError, TimeoutError):
    """Local deadline elapsed.

    Raised when a command reply or an event does not arrive within the
    timeout. The connection stays usable.
    """

    def __init__(
        self,
        message: str,
        command_method: Optional[str] = None,
        timeout: Optional[float] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.command_method = command_method
        self.timeout = timeout

    def __str__(self):
        if self.command_method and self.timeout:
            return f"Command '{self.command_method}' timed out after {self.timeout}s"
        return self.message
