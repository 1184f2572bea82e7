"""Inbound CDP message model.

Every text frame is decoded once, at the dispatch boundary, into either a
Reply (carries an integer "id") or an Event (carries a "method" and no
usable id). A frame with both an integer id and a method decodes as a Reply
that also carries its Event, so the dispatch loop can fall back to event
delivery when no command is waiting for that id.
"""

import json
from typing import Any, Dict, Optional, Union

from .exceptions import MalformedFrameError


class Event:
    """Out-of-band protocol event.

    Attributes:
        method: Event name (e.g., "Page.loadEventFired")
        params: Event parameters
        session_id: Session the event belongs to, or None for the browser session
    """

    __slots__ = ("method", "params", "session_id")

    def __init__(self, method: str, params: Optional[dict] = None, session_id: Optional[str] = None):
        self.method = method
        self.params = params if params is not None else {}
        self.session_id = session_id

    def __repr__(self):
        return f"Event(method={self.method!r}, session_id={self.session_id!r})"


class Reply:
    """Response to a previously sent command.

    Attributes:
        id: Correlation id of the command
        result: Result payload (empty dict when absent)
        error: Remote error object, or None on success
        event: Event carried by the same frame when it also had a method
    """

    __slots__ = ("id", "result", "error", "event")

    def __init__(
        self,
        id: int,
        result: Optional[dict] = None,
        error: Optional[dict] = None,
        event: Optional[Event] = None,
    ):
        self.id = id
        self.result = result if result is not None else {}
        self.error = error
        self.event = event

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def __repr__(self):
        status = "error" if self.is_error else "ok"
        return f"Reply(id={self.id!r}, {status})"


InboundMessage = Union[Reply, Event]


def encode_command(
    command_id: int,
    method: str,
    params: Optional[dict] = None,
    session_id: Optional[str] = None,
) -> str:
    """Serialize an outbound command frame.

    sessionId is only present when a session is given.
    """
    message: Dict[str, Any] = {"id": command_id, "method": method, "params": params or {}}
    if session_id:
        message["sessionId"] = session_id
    return json.dumps(message, separators=(",", ":"))


def _is_command_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_frame(payload: Union[str, bytes]) -> Optional[InboundMessage]:
    """Decode one inbound frame.

    Args:
        payload: Raw text (or UTF-8 bytes) of a WebSocket frame

    Returns:
        Reply for an integer id (with .event set when a method is present too),
        Event for a method without an integer id, or None for a well-formed
        object carrying neither

    Raises:
        MalformedFrameError: If the frame is not a JSON object or a known
            field has the wrong type. request_id is set when the frame
            carried an integer id.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrameError(f"Frame is not valid UTF-8: {e}")

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedFrameError(f"Malformed CDP message: {e}")

    if not isinstance(data, dict):
        raise MalformedFrameError(
            f"Expected JSON object, got {type(data).__name__}"
        )

    raw_id = data.get("id")
    request_id = raw_id if _is_command_id(raw_id) else None

    session_id = data.get("sessionId")
    if session_id is not None and not isinstance(session_id, str):
        raise MalformedFrameError("sessionId must be a string", request_id=request_id)

    event = None
    if "method" in data:
        method = data["method"]
        if not isinstance(method, str):
            raise MalformedFrameError("Event method must be a string", request_id=request_id)
        params = data.get("params")
        if params is not None and not isinstance(params, dict):
            raise MalformedFrameError("Event params must be an object", request_id=request_id)
        event = Event(method, params=params, session_id=session_id)

    if request_id is not None:
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"message": str(error)}
        result = data.get("result")
        if result is not None and not isinstance(result, dict):
            raise MalformedFrameError("Reply result must be an object", request_id=request_id)
        return Reply(request_id, result=result, error=error, event=event)

    if event is not None:
        return event

    if raw_id is not None:
        raise MalformedFrameError(f"Reply id must be an integer, got {raw_id!r}")
    return None
