"""
Target discovery through the browser's HTTP endpoint.

Lists debuggable targets from ``http://{host}:{port}/json`` in the order the
browser reports them. No retries are performed; callers decide.
"""

import json
import logging
import urllib.request
import urllib.error
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

from .exceptions import DiscoveryError, TargetIndexError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """
    Debuggable Chrome target (page, worker, service worker, iframe).

    Attributes:
        id: Unique target ID
        type: Target type ("page", "iframe", "worker", "service_worker", "browser")
        title: Page title or worker name
        url: Target URL
        web_socket_debugger_url: CDP WebSocket URL for this target
        description: Additional metadata (optional)
        devtools_frontend_url: DevTools UI URL (optional)
        favicon_url: Page favicon URL (optional)
    """

    id: str
    type: str
    web_socket_debugger_url: str
    title: str = ""
    url: str = ""
    description: str = ""
    devtools_frontend_url: str = ""
    favicon_url: str = ""

    @classmethod
    def from_dict(cls, target_data: Dict[str, Any]) -> "Target":
        """
        Build Target from one entry of the /json endpoint response.

        Raises:
            KeyError: If id, type or webSocketDebuggerUrl is missing
        """
        return cls(
            id=target_data["id"],
            type=target_data["type"],
            web_socket_debugger_url=target_data["webSocketDebuggerUrl"],
            title=target_data.get("title", ""),
            url=target_data.get("url", ""),
            description=target_data.get("description", ""),
            devtools_frontend_url=target_data.get("devtoolsFrontendUrl", ""),
            favicon_url=target_data.get("faviconUrl", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert target to the endpoint's field names for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "webSocketDebuggerUrl": self.web_socket_debugger_url,
            "description": self.description,
            "devtoolsFrontendUrl": self.devtools_frontend_url,
            "faviconUrl": self.favicon_url,
        }


class TargetDirectory:
    """
    Lists Chrome targets and selects one by index or ID.

    Usage:
        directory = TargetDirectory("localhost", 9222)
        targets = directory.list_targets(target_type="page")
        first = directory.target_at(0)

    Attributes:
        host: Chrome host (default: "localhost")
        port: Chrome debugging port (default: 9222)
        timeout: HTTP request timeout for target discovery (default: 5s)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 9222,
        timeout: float = 5.0,
    ):
        """
        Args:
            host: Chrome host
            port: Chrome debugging port (1-65535)
            timeout: HTTP request timeout in seconds

        Raises:
            ValueError: If port is out of range
        """
        if not 1 <= port <= 65535:
            raise ValueError(f"port must be 1-65535, got {port}")

        self.host = host
        self.port = port
        self.timeout = timeout

    @property
    def endpoint_url(self) -> str:
        return f"http://{self.host}:{self.port}/json"

    def target_url(self, target_id: str) -> str:
        """WebSocket URL of a page target, built without a discovery round-trip."""
        return f"ws://{self.host}:{self.port}/devtools/page/{target_id}"

    def list_targets(
        self,
        target_type: Optional[str] = None,
        url_pattern: Optional[str] = None,
    ) -> List[Target]:
        """
        Fetch targets from Chrome HTTP endpoint with optional filtering.

        Args:
            target_type: Filter by target type ("page", "iframe", "worker", "service_worker", "browser")
            url_pattern: Case-insensitive substring the target URL must contain

        Returns:
            Targets in endpoint order

        Raises:
            DiscoveryError: If HTTP endpoint is unreachable or returns invalid data
        """
        endpoint_url = self.endpoint_url

        try:
            with urllib.request.urlopen(endpoint_url, timeout=self.timeout) as response:
                targets_data = json.loads(response.read())
        except urllib.error.URLError as e:
            raise DiscoveryError(
                f"Failed to connect to Chrome at {endpoint_url}: {e}",
                details={
                    "host": self.host,
                    "port": self.port,
                    "recovery": "Ensure Chrome is running with --remote-debugging-port",
                },
            ) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DiscoveryError(
                f"Invalid JSON response from Chrome endpoint: {e}",
                details={"endpoint": endpoint_url},
            ) from e
        except OSError as e:
            # Socket timeouts and resets surface outside URLError
            raise DiscoveryError(
                f"Error reading from Chrome endpoint: {e}",
                details={"endpoint": endpoint_url},
            ) from e

        if not isinstance(targets_data, list):
            raise DiscoveryError(
                "Chrome endpoint did not return a target list",
                details={"endpoint": endpoint_url},
            )

        try:
            targets = [Target.from_dict(data) for data in targets_data]
        except (KeyError, TypeError) as e:
            raise DiscoveryError(
                f"Malformed target entry: {e}", details={"endpoint": endpoint_url}
            ) from e

        logger.debug(f"Discovered {len(targets)} target(s) at {endpoint_url}")

        if target_type:
            targets = [t for t in targets if t.type == target_type]

        if url_pattern:
            url_pattern_lower = url_pattern.lower()
            targets = [t for t in targets if url_pattern_lower in t.url.lower()]

        return targets

    def target_at(self, index: int) -> Target:
        """
        Select the target at ``index`` in endpoint order.

        Raises:
            TargetIndexError: If index is negative or beyond the target list
            DiscoveryError: If HTTP endpoint is unreachable
        """
        targets = self.list_targets()
        if not 0 <= index < len(targets):
            raise TargetIndexError(index, len(targets))
        return targets[index]

    def get_target_by_id(self, target_id: str) -> Optional[Target]:
        """
        Find target by ID.

        Returns:
            Target object if found, None otherwise

        Raises:
            DiscoveryError: If HTTP endpoint is unreachable
        """
        for target in self.list_targets():
            if target.id == target_id:
                return target
        return None
