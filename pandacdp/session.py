"""
Session routing for CDP targets.

Flattened sessions multiplex several attached targets over one WebSocket:
commands carry a sessionId and events come back tagged with one. CDPSession
binds a sessionId to a client so callers don't have to thread it through
every call.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .client import CDPClient
    from .events import EventHandler


class Target:
    """
    Represents an attachable target as reported by Target.getTargets.

    Attributes:
        id: Unique target ID (targetId)
        type: Target type ("page", "iframe", "worker", "service_worker", "browser")
        title: Page title or worker name
        url: Target URL
        attached: Whether some client is attached to the target
        browser_context_id: Owning browser context (optional)
    """

    def __init__(self, target_info: Dict[str, Any]):
        """
        Initialize Target from a TargetInfo object.

        Args:
            target_info: Raw targetInfo dictionary
        """
        self.id = target_info["targetId"]
        self.type = target_info.get("type", "")
        self.title = target_info.get("title", "")
        self.url = target_info.get("url", "")
        self.attached = bool(target_info.get("attached", False))
        self.browser_context_id = target_info.get("browserContextId")

    @property
    def is_page(self) -> bool:
        return self.type == "page"

    def to_dict(self) -> Dict[str, Any]:
        """Convert target back to its protocol shape for JSON output."""
        return {
            "targetId": self.id,
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "attached": self.attached,
            "browserContextId": self.browser_context_id,
        }

    def __repr__(self):
        return f"Target(id={self.id!r}, type={self.type!r}, url={self.url!r})"


class CDPSession:
    """
    Commands and events scoped to one attached target.

    Handlers registered through on() only see events whose sessionId matches
    this session. The session does not track whether the target is still
    alive; once it detaches, commands fail remotely like any other.

    Usage:
        session_id = await client.attach_to_page(target_id)
        page = client.session(session_id)
        await page.navigate("https://example.com")
        title = await page.evaluate("document.title")
    """

    def __init__(self, client: "CDPClient", session_id: str):
        if not session_id:
            raise ValueError("session_id must be a non-empty string")
        self.client = client
        self.session_id = session_id
        self._wrappers: Dict[Tuple[str, Callable], Callable] = {}

    async def send(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict:
        return await self.client.send(method, params, self.session_id, timeout)

    async def send_optional(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[dict]:
        return await self.client.send_optional(method, params, self.session_id, timeout)

    def on(self, method: str, handler: "EventHandler") -> Callable[[], None]:
        """Register handler for events of this session only.

        Returns:
            Function that unregisters the handler
        """
        key = (method, handler)
        wrapper = self._wrappers.get(key)
        if wrapper is None:
            session_id = self.session_id

            def wrapper(params: dict, event_session_id: Optional[str] = None):
                if event_session_id == session_id:
                    return handler(params, event_session_id)
                return None

            self._wrappers[key] = wrapper
        self.client.on(method, wrapper)
        return lambda: self.off(method, handler)

    def off(self, method: str, handler: "EventHandler") -> None:
        wrapper = self._wrappers.pop((method, handler), None)
        if wrapper is not None:
            self.client.off(method, wrapper)

    async def enable(self, *domains: str) -> List[str]:
        return await self.client.enable_domains(self.session_id, *domains)

    async def navigate(self, url: str, *, timeout: float = 30.0) -> dict:
        return await self.client.navigate(self.session_id, url, timeout=timeout)

    async def evaluate(self, expression: str, *, timeout: float = 30.0) -> Any:
        return await self.client.evaluate(self.session_id, expression, timeout=timeout)

    async def evaluate_in_frame(
        self, frame_id: str, expression: str, *, timeout: float = 30.0
    ) -> Any:
        return await self.client.evaluate_in_frame(
            self.session_id, frame_id, expression, timeout=timeout
        )

    async def get_frame_tree(self) -> dict:
        return await self.client.get_frame_tree(self.session_id)

    def __repr__(self):
        return f"CDPSession(session_id={self.session_id!r})"
