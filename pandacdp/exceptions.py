"""Exception hierarchy for CDP operations.

All CDP-related exceptions inherit from CDPError base class.
Provides structured error types for endpoint configuration, resolution,
connection, command, evaluation and timeout failures.
"""

from typing import Optional


class CDPError(Exception):
    """Base exception for all CDP-related errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class EndpointConfigError(CDPError):
    """Endpoint is missing or uses an unsupported scheme.

    Raised before any network I/O. Not retryable without new input.
    """

    pass


class ResolutionError(CDPError):
    """Endpoint could not be resolved to a WebSocket URL."""

    pass


class DNSResolutionError(ResolutionError):
    """Hostname of the endpoint does not resolve.

    Attributes:
        hostname: Hostname that failed to resolve
    """

    def __init__(
        self,
        message: str,
        hostname: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.hostname = hostname


class DiscoveryError(ResolutionError):
    """HTTP discovery endpoint failed.

    Raised on non-200 status, malformed JSON or a document without
    a webSocketDebuggerUrl field.
    """

    pass


class CDPConnectionError(CDPError):
    """WebSocket connection failures.

    Raised when establishing or maintaining CDP WebSocket connection fails.
    """

    pass


class ConnectionFailedError(CDPConnectionError):
    """Initial connection failed.

    Raised when WebSocket connection cannot be established.
    Common causes: socket reset, TLS failure, handshake rejected.
    """

    pass


class ConnectTimeoutError(ConnectionFailedError):
    """WebSocket did not open within the connect timeout."""

    def __init__(
        self,
        message: str,
        timeout: Optional[float] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.timeout = timeout


class ConnectionClosedError(CDPConnectionError):
    """Connection closed while commands were pending or being sent.

    Common causes: browser crash, network interruption, client.close().
    """

    pass


class CDPCommandError(CDPError):
    """Command execution failures.

    Raised when CDP command returns an error response.
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        error_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.method = method
        self.error_code = error_code


class CommandFailedError(CDPCommandError):
    """Command returned error response.

    Example: Page.navigate with a session id that no longer exists.
    """

    pass


class CDPTimeoutError(CDPError):
    """Command timed out.

    Raised when CDP command does not receive response within timeout period.
    """

    def __init__(
        self,
        message: str,
        command_method: Optional[str] = None,
        timeout: Optional[float] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.command_method = command_method
        self.timeout = timeout

    def __str__(self):
        if self.command_method and self.timeout:
            return f"CDP timeout: '{self.command_method}' got no reply after {self.timeout}s"
        if self.command_method:
            return f"CDP timeout: {self.command_method}"
        return self.message


class EvaluationError(CDPError):
    """Evaluated expression threw inside the page.

    Distinct from CommandFailedError: the command itself succeeded, the
    script did not.

    Attributes:
        exception_details: Raw exceptionDetails object from Runtime.evaluate
    """

    def __init__(
        self,
        message: str,
        exception_details: Optional[dict] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.exception_details = exception_details or {}

    @classmethod
    def from_exception_details(cls, exception_details: dict) -> "EvaluationError":
        """Build error from a Runtime.evaluate exceptionDetails object."""
        exception = exception_details.get("exception") or {}
        message = (
            exception.get("description")
            or exception_details.get("text")
            or "Evaluation failed"
        )
        return cls(message, exception_details=exception_details)


class MalformedFrameError(CDPError):
    """Inbound frame is not a valid protocol message.

    Only raised by the frame decoder. The dispatch loop fails the pending
    command named by request_id, if any, and otherwise logs and drops it.

    Attributes:
        request_id: Integer id carried by the frame, when it had one
    """

    def __init__(
        self,
        message: str,
        request_id: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.request_id = request_id


class CDPTargetNotFoundError(CDPError):
    """Target discovery failures.

    Raised when requested target cannot be found or created.
    """

    def __init__(
        self,
        message: str,
        target_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.target_id = target_id

    def __str__(self):
        if self.target_id:
            return f"Target not found: {self.target_id}"
        return self.message
