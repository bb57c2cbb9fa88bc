"""Python client for the Chrome DevTools Protocol.

This package provides:
- CDPClient: Target selection and connection factory
- CDPConnection: WebSocket connection with command/response correlation
- TargetDirectory: Target discovery via the browser's /json endpoint
- Wire codec, exception hierarchy, configuration and logging setup
"""

from .client import CDPClient
from .codec import Event, Response
from .config import Configuration
from .connection import CDPConnection, ConnectionState, PendingCommand
from .discovery import Target, TargetDirectory
from .exceptions import (
    CDPError,
    CDPCommandError,
    CDPConnectionError,
    CDPTargetNotFoundError,
    CDPTimeoutError,
    CommandFailedError,
    ConnectionClosedError,
    ConnectionFailedError,
    DiscoveryError,
    DuplicateCommandIdError,
    FrameDecodeError,
    NotConnectedError,
    TargetIndexError,
)
from .logging_setup import setup_logging

__version__ = "0.1.0"

__all__ = [
    "CDPClient",
    "CDPConnection",
    "ConnectionState",
    "PendingCommand",
    "Configuration",
    "Event",
    "Response",
    "Target",
    "TargetDirectory",
    "CDPError",
    "CDPCommandError",
    "CDPConnectionError",
    "CDPTargetNotFoundError",
    "CDPTimeoutError",
    "CommandFailedError",
    "ConnectionClosedError",
    "ConnectionFailedError",
    "DiscoveryError",
    "DuplicateCommandIdError",
    "FrameDecodeError",
    "NotConnectedError",
    "TargetIndexError",
    "setup_logging",
]
