"""WebSocket transport for CDP.

Owns the raw socket: opens it under a deadline, sends text frames and yields
received frames as text. Knows nothing about ids or events.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

try:
    import websockets
    from websockets.exceptions import ConnectionClosed, WebSocketException
except ImportError:
    raise ImportError(
        "websockets library not found. Install with: pip3 install websockets"
    )

from .exceptions import (
    ConnectionClosedError,
    ConnectionFailedError,
    ConnectTimeoutError,
    EndpointConfigError,
)
from .redact import describe_endpoint, redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 2_097_152  # 2MB, large DOM / AX tree replies


class WebSocketTransport:
    """Bidirectional text-frame channel over one WebSocket.

    Usage:
        transport = await WebSocketTransport.open(ws_url, timeout=5.0)
        await transport.send('{"id":1,"method":"Browser.getVersion"}')
        async for frame in transport.frames():
            ...
        await transport.close()

    Attributes:
        ws_url: WebSocket URL the transport is connected to
    """

    def __init__(self, ws, ws_url: str):
        self._ws = ws
        self.ws_url = ws_url
        self._closed = False

    @classmethod
    async def open(
        cls,
        ws_url: str,
        *,
        timeout: float = 5.0,
        max_size: int = DEFAULT_MAX_SIZE,
    ) -> "WebSocketTransport":
        """Open a WebSocket, failing instead of hanging past the deadline.

        Args:
            ws_url: ws:// or wss:// URL
            timeout: Connect deadline in seconds
            max_size: Maximum inbound message size in bytes

        Raises:
            EndpointConfigError: If ws_url is not a WebSocket URL
            ConnectTimeoutError: If the handshake did not finish in time
            ConnectionFailedError: On socket, TLS or handshake errors
        """
        if not ws_url.startswith(("ws://", "wss://")):
            raise EndpointConfigError(
                f"Invalid WebSocket URL: {describe_endpoint(ws_url)}"
            )

        endpoint = describe_endpoint(ws_url)
        logger.info(f"Connecting to {endpoint}")
        try:
            # wait_for cancels the handshake on expiry, which closes the socket
            ws = await asyncio.wait_for(
                websockets.connect(ws_url, max_size=max_size, open_timeout=None),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ConnectTimeoutError(
                "WebSocket connect timeout",
                timeout=timeout,
                details={"endpoint": endpoint, "timeout": timeout},
            )
        except (OSError, WebSocketException) as e:
            raise ConnectionFailedError(
                f"WebSocket error: {redact_secrets(e)}",
                details={"endpoint": endpoint},
            )
        logger.info("CDP WebSocket established")
        return cls(ws, ws_url)

    @property
    def is_open(self) -> bool:
        if self._closed:
            return False
        try:
            return self._ws.state.name == "OPEN"
        except AttributeError:
            return not getattr(self._ws, "closed", True)

    async def send(self, payload: str) -> None:
        """Send one text frame.

        Raises:
            ConnectionClosedError: If the socket is closed
        """
        if self._closed:
            raise ConnectionClosedError("Cannot send: transport closed")
        try:
            await self._ws.send(payload)
        except ConnectionClosed as e:
            raise ConnectionClosedError(f"Connection closed: {e}")

    async def frames(self) -> AsyncIterator[str]:
        """Yield inbound frames as text until the socket closes.

        Binary frames are decoded as UTF-8. A remote close ends the
        iteration normally; the close reason is logged.
        """
        try:
            async for message in self._ws:
                if isinstance(message, (bytes, bytearray)):
                    message = bytes(message).decode("utf-8", errors="replace")
                yield message
        except ConnectionClosed as e:
            if not self._closed:
                logger.warning(f"WebSocket connection closed: {e}")

    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._ws.close()
        except (OSError, WebSocketException) as e:
            logger.warning(f"Error closing WebSocket: {e}")

    def __repr__(self):
        return f"WebSocketTransport({describe_endpoint(self.ws_url)!r})"
