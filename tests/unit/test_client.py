"""Unit tests for the CDPClient facade."""

import asyncio
import json

import pytest
from unittest.mock import Mock, patch

from cdp_client.client import CDPClient
from cdp_client.config import Configuration
from cdp_client.connection import ConnectionState
from cdp_client.discovery import Target
from cdp_client.exceptions import CDPError, CDPTargetNotFoundError, TargetIndexError

TARGETS = [
    {
        "id": "worker-1",
        "type": "service_worker",
        "url": "https://example.com/sw.js",
        "webSocketDebuggerUrl": "ws://localhost:9222/devtools/page/worker-1",
    },
    {
        "id": "page-1",
        "type": "page",
        "title": "Example Domain",
        "url": "https://example.com",
        "webSocketDebuggerUrl": "ws://localhost:9222/devtools/page/page-1",
    },
]


def patch_targets(targets=TARGETS):
    mock_response = Mock()
    mock_response.read.return_value = json.dumps(targets).encode()
    mock_response.__enter__ = Mock(return_value=mock_response)
    mock_response.__exit__ = Mock(return_value=False)
    return patch("urllib.request.urlopen", return_value=mock_response)


@pytest.mark.unit
class TestClientConstruction:
    def test_defaults(self):
        client = CDPClient()
        assert client.host == "localhost"
        assert client.port == 9222
        assert client.directory.endpoint_url == "http://localhost:9222/json"

    def test_custom(self):
        client = CDPClient.custom("10.0.0.5", 9333)
        assert client.directory.endpoint_url == "http://10.0.0.5:9333/json"

    def test_from_config(self):
        config = Configuration()
        config.merge(host="chrome", port=9444, timeout=12.0, discovery_timeout=1.0)

        client = CDPClient.from_config(config)

        assert client.port == 9444
        assert client.timeout == 12.0
        assert client.directory.host == "chrome"
        assert client.directory.timeout == 1.0

    def test_get_tabs(self):
        with patch_targets():
            tabs = CDPClient().get_tabs()
        assert [t.id for t in tabs] == ["worker-1", "page-1"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestClientConnect:
    async def test_connect_to_tab(self, mock_connect):
        with patch_targets():
            conn = await CDPClient(timeout=7.0).connect_to_tab(1)

        assert conn.state is ConnectionState.OPEN
        assert conn.timeout == 7.0
        mock_connect.assert_called_once_with(
            "ws://localhost:9222/devtools/page/page-1", max_size=2_097_152
        )
        await conn.disconnect()

    async def test_connect_to_tab_out_of_range(self, mock_connect):
        with patch_targets():
            with pytest.raises(TargetIndexError):
                await CDPClient().connect_to_tab(2)
        mock_connect.assert_not_called()

    async def test_discovery_runs_in_worker_thread(self, mock_connect):
        client = CDPClient()
        with patch_targets(), patch(
            "cdp_client.client.asyncio.to_thread", side_effect=asyncio.to_thread
        ) as to_thread:
            conn = await client.connect_to_tab(1)
            await conn.disconnect()
            conn = await client.connect_to_first_page()
            await conn.disconnect()

        assert to_thread.await_count == 2
        first, second = to_thread.await_args_list
        assert first.args == (client.directory.target_at, 1)
        assert second.args == (client.directory.list_targets,)
        assert second.kwargs == {"target_type": "page"}

    async def test_connect_to_target_builds_page_url(self, mock_connect):
        conn = await CDPClient("127.0.0.1", 9333).connect_to_target("ABC")

        mock_connect.assert_called_once_with(
            "ws://127.0.0.1:9333/devtools/page/ABC", max_size=2_097_152
        )
        await conn.disconnect()

    async def test_connect_to_first_page(self, mock_connect):
        with patch_targets():
            conn = await CDPClient().connect_to_first_page()

        assert conn.ws_url.endswith("/page-1")
        await conn.disconnect()

    async def test_connect_to_first_page_none(self, mock_connect):
        with patch_targets(TARGETS[:1]):
            with pytest.raises(CDPTargetNotFoundError, match="No page targets found"):
                await CDPClient().connect_to_first_page()

    async def test_connect_to_target_without_url(self, mock_connect):
        target = Target(id="x", type="page", web_socket_debugger_url="")
        with pytest.raises(CDPError, match="no WebSocket debugger URL"):
            await CDPClient().connect_to(target)

    async def test_end_to_end_command(self, mock_connect, fake_ws):
        with patch_targets():
            conn = await CDPClient().connect_to_tab(1)

        async with conn:
            pending = await conn.send("DOM.enable", {})
            fake_ws.feed({"id": pending.id, "result": {}})
            assert await conn.await_result(pending, timeout=1.0) == {}
