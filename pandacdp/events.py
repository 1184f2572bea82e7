"""Event subscription and dispatch.

Handlers are keyed by CDP method name and called as handler(params, session_id).
Plain callables run inline; coroutine functions are scheduled as tasks so a
slow handler never holds up the next inbound frame.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict, Optional[str]], Any]


class EventBus:
    """Registry of event handlers with failure isolation.

    Handler sets have set semantics: registering the same handler twice for
    one method is a no-op, and invocation order is unspecified. Dispatch
    iterates over a snapshot, so on()/off() from inside a handler is safe.
    """

    def __init__(self):
        self._handlers: Dict[str, Set[EventHandler]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def on(self, method: str, handler: EventHandler) -> Callable[[], None]:
        """Register handler for method.

        Returns:
            Function that unregisters this handler
        """
        self._handlers.setdefault(method, set()).add(handler)
        logger.debug(f"Subscribed to event: {method}")
        return lambda: self.off(method, handler)

    def off(self, method: str, handler: EventHandler) -> None:
        """Unregister handler; drops the method entry when it was the last one."""
        handlers = self._handlers.get(method)
        if not handlers:
            return
        handlers.discard(handler)
        if not handlers:
            del self._handlers[method]
        logger.debug(f"Unsubscribed from event: {method}")

    def handlers(self, method: str) -> Set[EventHandler]:
        """Snapshot of the handlers registered for method."""
        return set(self._handlers.get(method, ()))

    def has_handlers(self, method: str) -> bool:
        return bool(self._handlers.get(method))

    @property
    def methods(self) -> Set[str]:
        return set(self._handlers)

    def emit(self, method: str, params: dict, session_id: Optional[str] = None) -> int:
        """Deliver an event to every handler registered for method.

        Exceptions raised by handlers are logged and swallowed.

        Returns:
            Number of handlers invoked
        """
        handlers = self.handlers(method)
        for handler in handlers:
            try:
                outcome = handler(params, session_id)
                if inspect.isawaitable(outcome):
                    self._schedule(method, outcome)
            except Exception as e:
                logger.error(f"Event handler error for {method}: {e}", exc_info=True)
        return len(handlers)

    async def drain(self) -> None:
        """Wait for all scheduled async handlers to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        """Cancel async handlers that are still running."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _schedule(self, method: str, awaitable) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.error(
                    f"Event handler error for {method}: {error}",
                    exc_info=(type(error), error, error.__traceback__),
                )

        task.add_done_callback(_done)
