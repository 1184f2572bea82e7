"""Shared pytest fixtures for pandacdp tests.

FakeTransport stands in for WebSocketTransport: tests feed inbound frames
and inspect what the client sent, without a browser or a socket.
"""

import asyncio
import json

import pytest

from pandacdp.exceptions import ConnectionClosedError


class FakeTransport:
    """In-memory transport with the same surface as WebSocketTransport."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._inbound = None

    @property
    def inbound(self) -> asyncio.Queue:
        if self._inbound is None:
            self._inbound = asyncio.Queue()
        return self._inbound

    async def send(self, payload: str) -> None:
        if self.closed:
            raise ConnectionClosedError("Cannot send: transport closed")
        self.sent.append(json.loads(payload))

    async def frames(self):
        while True:
            frame = await self.inbound.get()
            if frame is None:
                return
            yield frame

    def feed(self, message) -> None:
        """Queue an inbound frame (dicts are JSON-encoded, strings sent raw)."""
        if not isinstance(message, (str, bytes)):
            message = json.dumps(message)
        self.inbound.put_nowait(message)

    def remote_close(self) -> None:
        self.inbound.put_nowait(None)

    async def close(self) -> None:
        self.closed = True

    async def wait_sent(self, count: int = 1, timeout: float = 1.0) -> list:
        """Wait until at least count frames were sent."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.sent) < count:
            if loop.time() > deadline:
                raise AssertionError(f"expected {count} sent frames, got {len(self.sent)}")
            await asyncio.sleep(0)
        return self.sent

    async def flush(self) -> None:
        """Let the dispatch loop drain queued frames."""
        for _ in range(10):
            await asyncio.sleep(0)


@pytest.fixture
def fake_transport():
    return FakeTransport()
