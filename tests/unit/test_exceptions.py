"""Unit tests for CDP exception hierarchy.

Tests exception types, inheritance, attributes, and string representations.
"""

import pytest
from pandacdp.exceptions import (
    CDPError,
    CDPConnectionError,
    ConnectionFailedError,
    ConnectTimeoutError,
    ConnectionClosedError,
    CDPCommandError,
    CommandFailedError,
    CDPTimeoutError,
    CDPTargetNotFoundError,
    DiscoveryError,
    DNSResolutionError,
    EndpointConfigError,
    EvaluationError,
    MalformedFrameError,
    ResolutionError,
)


@pytest.mark.unit
class TestCDPError:
    """Test base CDPError exception."""

    def test_base_exception_message(self):
        error = CDPError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}

    def test_base_exception_with_details(self):
        """Test error with details dict."""
        error = CDPError("Test error", details={"key": "value", "count": 42})
        assert str(error) == "Test error (key=value, count=42)"
        assert error.details == {"key": "value", "count": 42}

    @pytest.mark.parametrize(
        "error_class",
        [
            EndpointConfigError,
            DiscoveryError,
            DNSResolutionError,
            ConnectionFailedError,
            ConnectTimeoutError,
            ConnectionClosedError,
            CommandFailedError,
            CDPTimeoutError,
            EvaluationError,
            MalformedFrameError,
            CDPTargetNotFoundError,
        ],
    )
    def test_everything_is_a_cdp_error(self, error_class):
        assert issubclass(error_class, CDPError)


@pytest.mark.unit
class TestResolutionErrors:
    def test_dns_error_hostname(self):
        error = DNSResolutionError("DNS lookup failed for host 'x.invalid'", hostname="x.invalid")
        assert isinstance(error, ResolutionError)
        assert error.hostname == "x.invalid"
        assert "x.invalid" in str(error)

    def test_discovery_error(self):
        error = DiscoveryError("HTTP 404", details={"url": "http://h/json/version"})
        assert isinstance(error, ResolutionError)
        assert str(error) == "HTTP 404 (url=http://h/json/version)"

    def test_config_error_is_not_a_resolution_error(self):
        assert not isinstance(EndpointConfigError("bad scheme"), ResolutionError)


@pytest.mark.unit
class TestConnectionErrors:
    """Test connection-related exceptions."""

    def test_connection_failed_error(self):
        error = ConnectionFailedError(
            "Failed to connect",
            details={"url": "ws://localhost:9222", "reason": "reset"},
        )
        assert isinstance(error, CDPConnectionError)
        assert "Failed to connect" in str(error)
        assert error.details["url"] == "ws://localhost:9222"

    def test_connect_timeout_is_connection_failure(self):
        error = ConnectTimeoutError("WebSocket connect timeout", timeout=5.0)
        assert isinstance(error, ConnectionFailedError)
        assert error.timeout == 5.0

    def test_connection_closed_error(self):
        error = ConnectionClosedError("Connection closed unexpectedly")
        assert isinstance(error, CDPConnectionError)
        assert "Connection closed unexpectedly" in str(error)


@pytest.mark.unit
class TestCommandErrors:
    """Test command execution exceptions."""

    def test_command_error_with_method(self):
        error = CDPCommandError(
            "Invalid expression", method="Runtime.evaluate", error_code=-32000
        )
        assert error.method == "Runtime.evaluate"
        assert error.error_code == -32000

    def test_command_failed_error(self):
        """Test CommandFailedError for browser error responses."""
        error = CommandFailedError(
            "Cannot find context with specified id",
            method="Runtime.evaluate",
            error_code=-32000,
        )
        assert isinstance(error, CDPCommandError)
        assert "Cannot find context" in str(error)


@pytest.mark.unit
class TestTimeoutError:
    """Test timeout exception."""

    def test_timeout_error_basic(self):
        error = CDPTimeoutError("Command timed out")
        assert str(error) == "Command timed out"

    def test_timeout_error_names_method(self):
        error = CDPTimeoutError("CDP timeout: Page.navigate", command_method="Page.navigate")
        assert str(error) == "CDP timeout: Page.navigate"

    def test_timeout_error_with_duration(self):
        error = CDPTimeoutError(
            "Timeout occurred", command_method="Runtime.evaluate", timeout=30.0
        )
        assert "Runtime.evaluate" in str(error)
        assert "30" in str(error)
        assert error.timeout == 30.0

    def test_timeout_is_not_a_connection_error(self):
        assert not isinstance(CDPTimeoutError("x"), CDPConnectionError)


@pytest.mark.unit
class TestEvaluationError:
    def test_prefers_exception_description(self):
        details = {
            "text": "Uncaught",
            "exception": {"description": "ReferenceError: foo is not defined"},
        }
        error = EvaluationError.from_exception_details(details)
        assert str(error) == "ReferenceError: foo is not defined"
        assert error.exception_details is details

    def test_falls_back_to_text(self):
        error = EvaluationError.from_exception_details({"text": "Uncaught"})
        assert str(error) == "Uncaught"

    def test_generic_message(self):
        error = EvaluationError.from_exception_details({})
        assert str(error) == "Evaluation failed"
        assert not isinstance(error, CDPCommandError)


@pytest.mark.unit
class TestTargetNotFoundError:
    """Test target discovery exception."""

    def test_target_not_found_by_id(self):
        error = CDPTargetNotFoundError("Target not found", target_id="ABC123")
        assert "ABC123" in str(error)
        assert error.target_id == "ABC123"

    def test_target_not_found_generic(self):
        error = CDPTargetNotFoundError("No targets available")
        assert "No targets available" in str(error)
        assert error.target_id is None
