"""Endpoint resolution and connection establishment.

Turns a user-supplied endpoint string into a connected CDPClient:

- ws:// and wss:// URLs are opened directly.
- http:// and https:// URLs are first tried as-is with the scheme swapped to
  ws/wss (people often paste the base URL of a hosted browser), then resolved
  through the DevTools discovery document (webSocketDebuggerUrl).
- Anything else is rejected before touching the network.

Every attempt is bounded by a timeout and every message is redacted.
"""

import asyncio
import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from .client import CDPClient
from .exceptions import (
    CDPConnectionError,
    DiscoveryError,
    DNSResolutionError,
    EndpointConfigError,
)
from .redact import describe_endpoint, redact_secrets
from .transport import DEFAULT_MAX_SIZE, WebSocketTransport

logger = logging.getLogger(__name__)

WS_SCHEMES = ("ws", "wss")
HTTP_SCHEMES = ("http", "https")
DISCOVERY_PATH = "/json/version"
LOCAL_DISCOVERY_URL = "http://localhost:9222/json/version"
DEFAULT_WS_PATH = "/ws"


def validate_endpoint(endpoint: Optional[str]) -> str:
    """Check that endpoint is a ws/wss/http/https URL with a host.

    Returns:
        The stripped endpoint

    Raises:
        EndpointConfigError: On empty input, unknown scheme or missing host
    """
    raw = (endpoint or "").strip()
    if not raw:
        raise EndpointConfigError("No CDP endpoint configured")

    try:
        parts = urlsplit(raw)
        hostname = parts.hostname
    except ValueError:
        raise EndpointConfigError(f"Invalid CDP endpoint: {describe_endpoint(raw)}")

    scheme = parts.scheme.lower()
    if scheme not in WS_SCHEMES + HTTP_SCHEMES:
        raise EndpointConfigError(
            "Invalid CDP endpoint (must start with ws://, wss://, http://, or https://)",
            details={"scheme": scheme or "(none)"},
        )
    if not hostname:
        raise EndpointConfigError(f"CDP endpoint has no host: {describe_endpoint(raw)}")
    return raw


def guess_ws_from_http(http_url: str) -> str:
    """Swap http->ws / https->wss and default an empty path to /ws.

    >>> guess_ws_from_http("https://uswest.cloud.lightpanda.io?token=x")
    'wss://uswest.cloud.lightpanda.io/ws?token=x'
    """
    parts = urlsplit(http_url)
    scheme = "wss" if parts.scheme.lower() == "https" else "ws"
    path = parts.path if parts.path not in ("", "/") else DEFAULT_WS_PATH
    return urlunsplit((scheme, parts.netloc, path, parts.query, parts.fragment))


def join_url(base: str, path: str) -> str:
    """Append path to the path of base, keeping its query string."""
    parts = urlsplit(base)
    normalized = path if path.startswith("/") else f"/{path}"
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path.rstrip("/") + normalized, parts.query, "")
    )


def _fetch_json(url: str, timeout: float) -> Any:
    request = urllib.request.Request(url, headers={"Accept": "application/json"})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            status = getattr(response, "status", None)
            if isinstance(status, int) and status != 200:
                raise DiscoveryError(f"HTTP {status}", details={"url": describe_endpoint(url)})
            body = response.read()
    except urllib.error.HTTPError as e:
        raise DiscoveryError(f"HTTP {e.code}", details={"url": describe_endpoint(url)})
    except urllib.error.URLError as e:
        raise DiscoveryError(
            f"Discovery request failed: {redact_secrets(e.reason)}",
            details={"url": describe_endpoint(url)},
        )
    except (TimeoutError, OSError) as e:
        raise DiscoveryError(
            f"Discovery request failed: {redact_secrets(e)}",
            details={"url": describe_endpoint(url)},
        )

    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DiscoveryError(
            f"Invalid JSON from discovery endpoint: {e}",
            details={"url": describe_endpoint(url)},
        )


async def fetch_json(url: str, timeout: float) -> Any:
    """GET url and parse JSON without blocking the event loop.

    Raises:
        DiscoveryError: On HTTP errors, timeouts or malformed JSON
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_fetch_json, url, timeout), timeout=timeout
        )
    except asyncio.TimeoutError:
        raise DiscoveryError(
            "Discovery request timed out",
            details={"url": describe_endpoint(url), "timeout": timeout},
        )


async def resolve_ws_from_http(http_url: str, timeout: float = 5.0) -> str:
    """Find the webSocketDebuggerUrl advertised by an HTTP endpoint.

    The URL is tried as given first (it may already point at /json/version),
    then with /json/version appended. Only the second attempt's error is
    reported.

    Raises:
        DiscoveryError: If neither document yields a webSocketDebuggerUrl
    """
    try:
        document = await fetch_json(http_url, timeout)
        ws_url = _debugger_url(document)
        if ws_url:
            return ws_url
    except DiscoveryError as e:
        logger.debug(f"Discovery at {describe_endpoint(http_url)} failed: {e}")

    version_url = join_url(http_url, DISCOVERY_PATH)
    document = await fetch_json(version_url, timeout)
    ws_url = _debugger_url(document)
    if ws_url:
        return ws_url
    raise DiscoveryError(
        "Could not resolve webSocketDebuggerUrl from HTTP endpoint",
        details={"url": describe_endpoint(version_url)},
    )


def _debugger_url(document: Any) -> Optional[str]:
    if isinstance(document, dict):
        ws_url = document.get("webSocketDebuggerUrl")
        if isinstance(ws_url, str) and ws_url:
            return ws_url
    return None


async def assert_dns_resolves(hostname: str, timeout: float = 5.0) -> None:
    """Fail fast with a labeled error when hostname does not resolve.

    A lookup that itself times out is not treated as a failure; the connect
    attempt reports whatever happens next.

    Raises:
        DNSResolutionError: If the resolver says the name does not exist
    """
    loop = asyncio.get_running_loop()
    try:
        await asyncio.wait_for(
            loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM), timeout=timeout
        )
    except socket.gaierror as e:
        raise DNSResolutionError(
            f"DNS lookup failed for host '{hostname}' ({e.strerror or e})",
            hostname=hostname,
        )
    except asyncio.TimeoutError:
        logger.debug(f"DNS lookup for {hostname} timed out, continuing")


async def connect(
    endpoint: Optional[str] = None,
    *,
    timeout: float = 5.0,
    command_timeout: float = 10.0,
    max_size: int = DEFAULT_MAX_SIZE,
    check_dns: bool = True,
) -> CDPClient:
    """Resolve endpoint and return a connected CDPClient.

    Args:
        endpoint: ws/wss/http/https URL; None falls back to a local Chrome
            on port 9222
        timeout: Deadline in seconds for each connect or discovery attempt
        command_timeout: Default timeout for commands sent by the client
        max_size: Maximum inbound message size in bytes
        check_dns: Resolve the hostname before connecting

    Raises:
        EndpointConfigError: Unsupported scheme or malformed URL
        DNSResolutionError: Hostname does not resolve
        DiscoveryError: HTTP discovery failed
        ConnectTimeoutError: WebSocket did not open in time
        ConnectionFailedError: Socket, TLS or handshake failure
        ValueError: command_timeout is not positive
    """
    if command_timeout is None or not command_timeout > 0:
        raise ValueError(f"Default command timeout must be positive, got {command_timeout!r}")

    if endpoint is None:
        logger.info("No CDP endpoint configured, trying local Chrome on :9222")
        ws_url = await resolve_ws_from_http(LOCAL_DISCOVERY_URL, timeout)
        transport = await WebSocketTransport.open(ws_url, timeout=timeout, max_size=max_size)
        return CDPClient(transport, timeout=command_timeout)

    endpoint = validate_endpoint(endpoint)
    parts = urlsplit(endpoint)
    scheme = parts.scheme.lower()
    logger.debug(f"Resolving CDP endpoint {describe_endpoint(endpoint)}")

    if check_dns:
        await assert_dns_resolves(parts.hostname, timeout)

    if scheme in WS_SCHEMES:
        transport = await WebSocketTransport.open(endpoint, timeout=timeout, max_size=max_size)
        return CDPClient(transport, timeout=command_timeout)

    guessed = guess_ws_from_http(endpoint)
    try:
        transport = await WebSocketTransport.open(guessed, timeout=timeout, max_size=max_size)
        return CDPClient(transport, timeout=command_timeout)
    except CDPConnectionError as e:
        logger.debug(
            f"Direct WebSocket at {describe_endpoint(guessed)} failed ({e}), trying discovery"
        )

    ws_url = await resolve_ws_from_http(endpoint, timeout)
    logger.debug(f"Discovered WebSocket URL {describe_endpoint(ws_url)}")
    transport = await WebSocketTransport.open(ws_url, timeout=timeout, max_size=max_size)
    return CDPClient(transport, timeout=command_timeout)


async def connect_from_config(config) -> CDPClient:
    """connect() using a Configuration's endpoint, timeouts and limits."""
    return await connect(
        config.resolved_endpoint(),
        timeout=config.connect_timeout,
        command_timeout=config.command_timeout,
        max_size=config.max_size,
        check_dns=config.check_dns,
    )
