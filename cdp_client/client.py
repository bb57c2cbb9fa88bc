"""
Client facade: pick a target and open a CDPConnection to it.

Usage:
    client = CDPClient()                     # localhost:9222
    client = CDPClient.custom("10.0.0.5", 9333)

    async with await client.connect_to_tab(0) as conn:
        await conn.execute_command("DOM.enable")

Discovery from the async connect helpers runs in a worker thread, so other
open connections keep receiving while the /json request is in flight.
"""

import asyncio
import logging
from typing import List

from .config import Configuration
from .connection import CDPConnection, DEFAULT_MAX_SIZE, DEFAULT_TIMEOUT
from .discovery import Target, TargetDirectory
from .exceptions import CDPError, CDPTargetNotFoundError

logger = logging.getLogger(__name__)


class CDPClient:
    """
    Stores which browser to talk to and hands out open connections.

    Attributes:
        host: Chrome host (default: "localhost")
        port: Chrome debugging port (default: 9222)
        timeout: Default command timeout for new connections
        max_size: Maximum WebSocket message size for new connections
        directory: TargetDirectory used for discovery
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 9222,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_size: int = DEFAULT_MAX_SIZE,
        discovery_timeout: float = 5.0,
    ):
        self.directory = TargetDirectory(host, port, timeout=discovery_timeout)
        self.host = host
        self.port = port
        self.timeout = timeout
        self.max_size = max_size

    @classmethod
    def custom(cls, host: str, port: int) -> "CDPClient":
        """Client for a browser on a non-default host and port."""
        return cls(host, port)

    @classmethod
    def from_config(cls, config: Configuration) -> "CDPClient":
        return cls(
            config.host,
            config.port,
            timeout=config.timeout,
            max_size=config.max_size,
            discovery_timeout=config.discovery_timeout,
        )

    def get_tabs(self) -> List[Target]:
        """
        All targets reported by the browser, in endpoint order.

        Raises:
            DiscoveryError: If the /json endpoint fails
        """
        return self.directory.list_targets()

    async def connect_to_tab(self, index: int) -> CDPConnection:
        """
        Open a connection to the target at ``index`` in endpoint order.

        Raises:
            DiscoveryError: If the /json endpoint fails
            TargetIndexError: If index is out of range
            ConnectionFailedError: If the WebSocket handshake fails
        """
        target = await asyncio.to_thread(self.directory.target_at, index)
        logger.debug(f"Selected target {index}: {target.id} ({target.type})")
        return await self.connect_to(target)

    async def connect_to_target(self, target_id: str) -> CDPConnection:
        """
        Open a connection to a page target by ID without listing targets first.

        Raises:
            ConnectionFailedError: If the WebSocket handshake fails
        """
        return await self.connect_to_url(self.directory.target_url(target_id))

    async def connect_to_first_page(self) -> CDPConnection:
        """
        Open a connection to the first page target.

        Raises:
            CDPTargetNotFoundError: If no page targets found
            ConnectionFailedError: If the WebSocket handshake fails
        """
        targets = await asyncio.to_thread(
            self.directory.list_targets, target_type="page"
        )

        if not targets:
            raise CDPTargetNotFoundError(
                "No page targets found",
                details={
                    "host": self.host,
                    "port": self.port,
                    "recovery": "Navigate to a URL in Chrome or check --remote-debugging-port",
                },
            )

        return await self.connect_to(targets[0])

    async def connect_to(self, target: Target) -> CDPConnection:
        """
        Open a connection to a discovered target.

        Raises:
            CDPError: If the target has no WebSocket debugger URL
        """
        if not target.web_socket_debugger_url:
            raise CDPError(
                f"Target {target.id} has no WebSocket debugger URL",
                details={"target": target.to_dict()},
            )
        return await self.connect_to_url(target.web_socket_debugger_url)

    async def connect_to_url(self, ws_url: str) -> CDPConnection:
        """Open a connection to an explicit WebSocket debugger URL."""
        conn = CDPConnection(ws_url, timeout=self.timeout, max_size=self.max_size)
        await conn.connect()
        return conn
