"""CDP client facade.

Provides CDPClient: the one object callers hold. It wires a transport to the
Correlator (command replies), the EventBus (push events) and session routing,
and offers the handful of high-level operations the CLI needs.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from .correlator import Correlator
from .events import EventBus, EventHandler
from .exceptions import (
    CDPCommandError,
    CDPTargetNotFoundError,
    CDPTimeoutError,
    ConnectionClosedError,
    EvaluationError,
    MalformedFrameError,
)
from .messages import Event, Reply, decode_frame, encode_command
from .session import CDPSession, Target

logger = logging.getLogger(__name__)

ISOLATED_WORLD_NAME = "pandacdp-eval"


class CDPClient:
    """Multiplexes CDP commands and events over a single transport.

    Handles:
    - Command execution with per-command timeouts
    - Event subscription and dispatching
    - Session-scoped routing (flattened sessions)
    - Rejection of pending commands when the connection goes away

    Usage:
        client = await connect("ws://localhost:9222/devtools/browser/abc")
        async with client:
            pages = await client.get_pages()
            session_id = await client.attach_to_page(pages[-1]["targetId"])
            title = await client.evaluate(session_id, "document.title")

    Attributes:
        transport: Object with async send(str), frames() and close()
        timeout: Default command timeout in seconds
    """

    def __init__(self, transport, *, timeout: float = 10.0):
        """Wrap an open transport and start the dispatch loop.

        Must be called with a running event loop.

        Args:
            transport: Open transport (see WebSocketTransport)
            timeout: Default command timeout in seconds, must be positive
        """
        if timeout is None or not timeout > 0:
            raise ValueError(f"Default command timeout must be positive, got {timeout!r}")
        self.transport = transport
        self.timeout = timeout

        self._correlator = Correlator()
        self._events = EventBus()
        self._closed = False
        self._shutdown = False
        self._sessions: Dict[str, CDPSession] = {}
        self._receive_task: asyncio.Task = asyncio.get_running_loop().create_task(
            self._receive_loop()
        )

    @property
    def is_connected(self) -> bool:
        return not self._closed

    @property
    def pending_count(self) -> int:
        """Number of commands still awaiting a reply."""
        return len(self._correlator)

    async def __aenter__(self) -> "CDPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Raw protocol

    async def send(
        self,
        method: str,
        params: Optional[dict] = None,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Execute CDP command and wait for response.

        Args:
            method: CDP method name (e.g., "Runtime.evaluate", "Page.enable")
            params: Method parameters (default: empty dict)
            session_id: Route the command to this attached session
            timeout: Command timeout in seconds; None or <= 0 uses self.timeout

        Returns:
            Command result dict (contents of "result" field in response)

        Raises:
            ConnectionClosedError: If connection is closed before or while waiting
            CDPTimeoutError: If command times out
            CommandFailedError: If the remote side returns an error response
        """
        if self._closed:
            raise ConnectionClosedError("Cannot execute command: connection closed")

        pending = self._correlator.register(method, self._effective_timeout(timeout))
        message = encode_command(pending.id, method, params, session_id)

        try:
            await self.transport.send(message)
            logger.debug(f"Sent command {pending.id}: {method}")
        except Exception:
            self._correlator.discard(pending.id)
            raise

        try:
            return await pending.future
        finally:
            # no-op unless the caller was cancelled while waiting
            self._correlator.discard(pending.id)

    async def send_optional(
        self,
        method: str,
        params: Optional[dict] = None,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[dict]:
        """Send a command whose failure is acceptable.

        Remote errors and timeouts are logged at debug level and turned into
        None. Connection loss still raises.
        """
        try:
            return await self.send(method, params, session_id, timeout)
        except (CDPCommandError, CDPTimeoutError) as e:
            logger.debug(f"Optional command {method} failed: {e}")
            return None

    def on(self, method: str, handler: EventHandler) -> Callable[[], None]:
        """Register handler(params, session_id) for an event.

        Returns:
            Function that unregisters the handler
        """
        return self._events.on(method, handler)

    def off(self, method: str, handler: EventHandler) -> None:
        self._events.off(method, handler)

    def session(self, session_id: str) -> CDPSession:
        """Handle that routes commands and events through session_id.

        Handles are cached per session id, so on() and off() through any
        handle for the same session see the same registrations.
        """
        handle = self._sessions.get(session_id)
        if handle is None:
            handle = CDPSession(self, session_id)
            self._sessions[session_id] = handle
        return handle

    def _effective_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None or not timeout > 0:
            return self.timeout
        return timeout

    async def wait_for_event(
        self,
        method: str,
        *,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Wait for the next occurrence of an event.

        Raises:
            CDPTimeoutError: If the event does not arrive in time
        """
        future = asyncio.get_running_loop().create_future()

        def _handler(params: dict, event_session_id: Optional[str] = None) -> None:
            if session_id is not None and event_session_id != session_id:
                return
            if not future.done():
                future.set_result(params)

        unsubscribe = self.on(method, _handler)
        wait_timeout = self._effective_timeout(timeout)
        try:
            return await asyncio.wait_for(future, timeout=wait_timeout)
        except asyncio.TimeoutError:
            raise CDPTimeoutError(
                "Event not received", command_method=method, timeout=wait_timeout
            )
        finally:
            unsubscribe()

    async def close(self) -> None:
        """Close the connection and reject every pending command."""
        if self._shutdown:
            return
        logger.info("Closing CDP connection")
        self._shutdown = True
        self._closed = True

        if not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        await self.transport.close()
        self._fail_pending("Connection closed")
        self._events.cancel_pending()
        logger.info("CDP connection closed")

    # ------------------------------------------------------------------
    # Dispatch

    async def _receive_loop(self) -> None:
        """Route inbound frames to the correlator or the event bus.

        Runs until the transport stops yielding frames. Malformed frames are
        logged and dropped; the loop keeps going.
        """
        try:
            async for frame in self.transport.frames():
                self._dispatch(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Receive loop error: {e}", exc_info=True)
        finally:
            if not self._closed:
                self._closed = True
                self._fail_pending("Connection closed by remote")

    def _dispatch(self, frame) -> None:
        """Route one frame.

        A Reply settles its command only when that id is pending; otherwise a
        method carried by the same frame is delivered as an event.
        """
        try:
            message = decode_frame(frame)
        except MalformedFrameError as e:
            if e.request_id is not None and self._correlator.reject(e.request_id, e):
                logger.warning(f"Malformed reply for command {e.request_id}: {e}")
            else:
                logger.warning(f"Dropping malformed frame: {e}")
            return

        if isinstance(message, Reply):
            if message.id in self._correlator or message.event is None:
                self._correlator.settle(message)
                return
            message = message.event

        if isinstance(message, Event):
            logger.debug(f"Received event: {message.method}")
            self._events.emit(message.method, message.params, message.session_id)

    def _fail_pending(self, reason: str) -> None:
        failed = self._correlator.fail_all(
            lambda pending: ConnectionClosedError(
                f"{reason} while waiting for {pending.method}",
                details={"method": pending.method},
            )
        )
        if failed:
            logger.warning(f"Rejected {failed} pending command(s): {reason}")

    # ------------------------------------------------------------------
    # Convenience operations

    async def get_targets(self) -> List[Target]:
        """List targets; entries without a targetId are skipped."""
        result = await self.send("Target.getTargets")
        return [Target(info) for info in _target_infos(result)]

    async def get_pages(self) -> List[Dict[str, Any]]:
        """List top-level page targets as raw targetInfo dicts."""
        result = await self.send("Target.getTargets")
        return [info for info in _target_infos(result) if info.get("type") == "page"]

    async def create_target(self, url: str = "about:blank") -> str:
        """Open a new page target and return its targetId."""
        result = await self.send("Target.createTarget", {"url": url})
        target_id = result.get("targetId")
        if not target_id:
            raise CDPTargetNotFoundError("Target.createTarget returned no targetId")
        return target_id

    async def attach_to_page(self, target_id: str) -> str:
        """Attach to a target with flattened session semantics.

        Returns:
            sessionId for subsequent scoped commands
        """
        result = await self.send(
            "Target.attachToTarget", {"targetId": target_id, "flatten": True}
        )
        session_id = result.get("sessionId")
        if not session_id:
            raise CDPTargetNotFoundError(
                "Target.attachToTarget returned no sessionId", target_id=target_id
            )
        return session_id

    async def enable_domains(self, session_id: Optional[str], *domains: str) -> List[str]:
        """Best-effort <Domain>.enable for each domain.

        Returns:
            Domains that were enabled successfully
        """
        enabled = []
        for domain in domains:
            if await self.send_optional(f"{domain}.enable", {}, session_id) is not None:
                enabled.append(domain)
        return enabled

    async def navigate(self, session_id: str, url: str, *, timeout: float = 30.0) -> dict:
        """Issue Page.navigate. Does not wait for the load to finish."""
        return await self.send("Page.navigate", {"url": url}, session_id, timeout)

    async def evaluate(self, session_id: str, expression: str, *, timeout: float = 30.0) -> Any:
        """Evaluate expression in the page and return its value.

        Raises:
            EvaluationError: If the expression threw
        """
        result = await self.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
            session_id,
            timeout,
        )
        return _evaluation_value(result)

    async def get_frame_tree(self, session_id: str) -> dict:
        result = await self.send("Page.getFrameTree", {}, session_id)
        return result.get("frameTree")

    async def evaluate_in_frame(
        self,
        session_id: str,
        frame_id: str,
        expression: str,
        *,
        timeout: float = 30.0,
    ) -> Any:
        """Evaluate expression in an isolated world bound to frame_id.

        Raises:
            EvaluationError: If the expression threw
        """
        world = await self.send(
            "Page.createIsolatedWorld",
            {"frameId": frame_id, "worldName": ISOLATED_WORLD_NAME},
            session_id,
        )
        result = await self.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "contextId": world.get("executionContextId"),
                "returnByValue": True,
                "awaitPromise": True,
            },
            session_id,
            timeout,
        )
        return _evaluation_value(result)

    async def get_version(self) -> dict:
        return await self.send("Browser.getVersion")

    async def get_accessibility_tree(
        self, session_id: str, *, timeout: float = 30.0
    ) -> List[dict]:
        result = await self.send("Accessibility.getFullAXTree", {}, session_id, timeout)
        return result.get("nodes") or []


def _target_infos(result: dict) -> List[Dict[str, Any]]:
    infos = result.get("targetInfos")
    if not isinstance(infos, list):
        return []
    return [info for info in infos if isinstance(info, dict) and info.get("targetId")]


def _evaluation_value(result: dict) -> Any:
    exception_details = result.get("exceptionDetails")
    if exception_details:
        raise EvaluationError.from_exception_details(exception_details)
    return (result.get("result") or {}).get("value")
