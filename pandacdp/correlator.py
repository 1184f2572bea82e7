"""Request/response correlation for CDP commands.

The Correlator hands out command ids, keeps one PendingRequest per id and
settles it exactly once: by a reply, a rejection, its timer or fail_all().
All methods must be called from the event loop thread that owns the client.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from .exceptions import CDPError, CDPTimeoutError, CommandFailedError
from .messages import Reply

logger = logging.getLogger(__name__)


class PendingRequest:
    """A command awaiting its reply.

    Attributes:
        id: Correlation id
        method: CDP method name (for error messages)
        future: Future resolved with the result dict or failed with CDPError
        timeout: Timeout in seconds
    """

    __slots__ = ("id", "method", "future", "timeout", "_timer")

    def __init__(
        self,
        request_id: int,
        method: str,
        future: asyncio.Future,
        timeout: Optional[float] = None,
    ):
        self.id = request_id
        self.method = method
        self.future = future
        self.timeout = timeout
        self._timer: Optional[asyncio.TimerHandle] = None

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self):
        return f"PendingRequest(id={self.id}, method={self.method!r})"


class Correlator:
    """Tracks outstanding commands and matches replies to them.

    Settle-once rule: a request is popped from the pending map before its
    future is touched. Whichever of reply, timer or fail_all pops it first
    wins; the others find nothing and do nothing.
    """

    def __init__(self):
        self._next_id: int = 1
        self._pending: Dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: int) -> bool:
        return request_id in self._pending

    def register(self, method: str, timeout: float) -> PendingRequest:
        """Allocate a fresh id and arm its timer.

        Args:
            method: CDP method name
            timeout: Seconds to wait for a reply, must be positive

        Returns:
            The new PendingRequest

        Raises:
            ValueError: If timeout is missing or not positive
        """
        if timeout is None or not timeout > 0:
            raise ValueError(f"Command timeout must be a positive number, got {timeout!r}")

        loop = asyncio.get_running_loop()
        request_id = self._next_id
        self._next_id += 1

        pending = PendingRequest(request_id, method, loop.create_future(), timeout)
        pending._timer = loop.call_later(timeout, self._expire, request_id)
        self._pending[request_id] = pending
        return pending

    def settle(self, reply: Reply) -> bool:
        """Resolve or fail the request matching reply.id.

        Returns:
            True if a pending request was settled, False if the reply was dropped
        """
        pending = self._pending.pop(reply.id, None)
        if pending is None:
            logger.debug(f"Dropping reply for unknown or expired id {reply.id}")
            return False

        pending.cancel_timer()
        if pending.future.done():
            return False

        if reply.is_error:
            error = reply.error
            pending.future.set_exception(
                CommandFailedError(
                    error.get("message", "Unknown CDP error"),
                    method=pending.method,
                    error_code=error.get("code"),
                    details={"method": pending.method},
                )
            )
        else:
            pending.future.set_result(reply.result)
        logger.debug(f"Settled command {reply.id}: {pending.method}")
        return True

    def reject(self, request_id: int, error: CDPError) -> bool:
        """Fail the request matching request_id with error.

        Returns:
            True if a pending request was failed, False if none was waiting
        """
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return False
        pending.cancel_timer()
        if pending.future.done():
            return False
        pending.future.set_exception(error)
        return True

    def discard(self, request_id: int) -> None:
        """Forget a request without settling it (send failed or caller gave up)."""
        pending = self._pending.pop(request_id, None)
        if pending is not None:
            pending.cancel_timer()

    def fail_all(self, error_factory: Callable[[PendingRequest], CDPError]) -> int:
        """Fail every outstanding request.

        Args:
            error_factory: Builds the exception for each request

        Returns:
            Number of requests failed
        """
        pending_requests = list(self._pending.values())
        self._pending.clear()
        failed = 0
        for pending in pending_requests:
            pending.cancel_timer()
            if not pending.future.done():
                pending.future.set_exception(error_factory(pending))
                failed += 1
        return failed

    def _expire(self, request_id: int) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            return
        logger.warning(f"Command {request_id} timed out: {pending.method}")
        pending.future.set_exception(
            CDPTimeoutError(
                f"CDP timeout: {pending.method}",
                command_method=pending.method,
                timeout=pending.timeout,
            )
        )
