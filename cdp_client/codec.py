"""Wire codec for CDP frames.

Outgoing commands are encoded as ``{"id": N, "method": "...", "params": {...}}``.
Incoming frames decode into one of two variants, decided solely by the
presence of a top-level ``id`` key:

- Response: ``{"id": N, "result": {...}}`` or ``{"id": N, "error": {...}}``
- Event: ``{"method": "Domain.event", "params": {...}}``
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .exceptions import FrameDecodeError


@dataclass(frozen=True)
class Response:
    """Reply correlated to a command by ``id``."""

    id: int
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_code(self) -> Optional[int]:
        if self.error is None:
            return None
        return self.error.get("code")

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return self.error.get("message", "Unknown CDP error")


@dataclass(frozen=True)
class Event:
    """Unsolicited notification pushed by the browser."""

    method: str
    params: Dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None


IncomingFrame = Union[Response, Event]


def encode(command_id: int, method: str, params: Optional[dict] = None) -> str:
    """Encode a command into its wire text.

    Args:
        command_id: Connection-assigned command ID
        method: CDP method name (e.g., "DOM.enable")
        params: JSON-shaped parameters (default: empty object)

    Returns:
        Compact JSON text ready to be written to the socket
    """
    return json.dumps(
        {"id": command_id, "method": method, "params": params or {}},
        separators=(",", ":"),
    )


def decode(data: Union[str, bytes]) -> IncomingFrame:
    """Decode one incoming frame.

    Args:
        data: Raw WebSocket message (text or binary)

    Returns:
        Response if the frame carries a top-level ``id``, Event otherwise

    Raises:
        FrameDecodeError: If the frame is not JSON or fits neither variant
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {e}") from e

    try:
        message = json.loads(data)
    except json.JSONDecodeError as e:
        raise FrameDecodeError(f"Malformed CDP message: {e}", raw=data) from e

    if not isinstance(message, dict):
        raise FrameDecodeError(
            "Frame is not a JSON object",
            raw=data,
            details={"type": type(message).__name__},
        )

    if "id" in message:
        return _decode_response(message, data)
    return _decode_event(message, data)


def _decode_response(message: dict, raw: str) -> Response:
    command_id = message["id"]
    # bool is an int subclass but never a valid id
    if not isinstance(command_id, int) or isinstance(command_id, bool):
        raise FrameDecodeError(
            "Response id is not an integer", raw=raw, details={"id": command_id}
        )

    error = message.get("error")
    if error is not None:
        if not isinstance(error, dict):
            raise FrameDecodeError(
                "Response error is not an object", raw=raw, details={"id": command_id}
            )
        return Response(id=command_id, error=error)

    result = message.get("result", {})
    if not isinstance(result, dict):
        raise FrameDecodeError(
            "Response result is not an object", raw=raw, details={"id": command_id}
        )
    return Response(id=command_id, result=result)


def _decode_event(message: dict, raw: str) -> Event:
    method = message.get("method")
    if not isinstance(method, str):
        raise FrameDecodeError("Frame has neither id nor method", raw=raw)

    params = message.get("params", {})
    if not isinstance(params, dict):
        raise FrameDecodeError(
            "Event params is not an object", raw=raw, details={"method": method}
        )
    return Event(method=method, params=params, session_id=message.get("sessionId"))
