"""Shared fixtures: an in-memory WebSocket standing in for Chrome."""

import asyncio
import json
from typing import Any, List

import pytest
from unittest.mock import AsyncMock, patch
from websockets.exceptions import ConnectionClosedOK


class FakeWebSocket:
    """Scriptable WebSocket: tests feed frames, the connection reads them in order."""

    def __init__(self):
        self.sent: List[str] = []
        self.close_calls = 0
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    @property
    def sent_frames(self) -> List[dict]:
        return [json.loads(message) for message in self.sent]

    def feed(self, frame: Any) -> None:
        """Queue a frame; dicts are JSON-encoded, strings and bytes pass through."""
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._incoming.put_nowait(frame)

    def feed_eof(self) -> None:
        self._incoming.put_nowait(None)

    def feed_error(self, exc: BaseException) -> None:
        self._incoming.put_nowait(exc)

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self.feed_eof()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            item = await self._incoming.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


@pytest.fixture
def fake_ws():
    return FakeWebSocket()


@pytest.fixture
def mock_connect(fake_ws):
    """Patch websockets.connect so every connection gets ``fake_ws``."""
    with patch(
        "cdp_client.connection.websockets.connect",
        new=AsyncMock(return_value=fake_ws),
    ) as connect:
        yield connect
