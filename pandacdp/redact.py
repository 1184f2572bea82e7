"""Secret redaction for URLs and error text.

Endpoints for hosted browsers usually carry an API token in the query string,
so anything that may reach a log line or an exception message goes through
redact_secrets() or describe_endpoint() first.
"""

import re
from urllib.parse import urlsplit

MASK = "***"

_QUERY_SECRET_RE = re.compile(
    r"((?:access[_-]?)?token|api[_-]?key|apikey|password|secret|auth)=[^&\s#]+",
    re.IGNORECASE,
)
_AUTH_HEADER_RE = re.compile(r"(authorization:)\s*(?:(?:bearer|basic)\s+)?\S+", re.IGNORECASE)
_USERINFO_RE = re.compile(r"((?:wss?|https?)://)[^/@\s]+@", re.IGNORECASE)


def redact_secrets(text) -> str:
    """Mask credential-bearing query parameters, auth headers and URL userinfo.

    >>> redact_secrets("wss://h/ws?token=abc&x=1")
    'wss://h/ws?token=***&x=1'
    """
    if not text:
        return ""
    text = str(text)
    text = _QUERY_SECRET_RE.sub(lambda m: f"{m.group(1)}={MASK}", text)
    text = _AUTH_HEADER_RE.sub(lambda m: f"{m.group(1)} {MASK}", text)
    text = _USERINFO_RE.sub(lambda m: f"{m.group(1)}{MASK}@", text)
    return text


def describe_endpoint(url: str) -> str:
    """Render scheme://host:port/path without query string or credentials."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return "(invalid url)"
    if not parts.scheme or not host:
        return "(invalid url)"
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port else host
    return f"{parts.scheme}://{netloc}{parts.path}"
