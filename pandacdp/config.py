"""Configuration management for pandacdp tools.

Supports multiple configuration sources with precedence:
CLI flags > Environment variables > Config file > Defaults

Usage:
    >>> config = Configuration()
    >>> config.load_from_file("~/.pandacdprc")
    >>> config.load_from_env()
    >>> config.merge(connect_timeout=2.0)  # CLI overrides
    >>> print(config.connect_timeout)
    2.0
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional

from .redact import redact_secrets

logger = logging.getLogger(__name__)

CONFIG_FILE = "~/.pandacdprc"
DEFAULT_REGION = "uswest"
CLOUD_HOST_TEMPLATE = "{region}.cloud.lightpanda.io"


def _positive_millis(value: str) -> float:
    """Convert a millisecond string to seconds; only positive numbers are accepted."""
    millis = float(value)
    if not millis > 0 or millis == float("inf"):
        raise ValueError("must be a positive number of milliseconds")
    return millis / 1000.0


def _is_positive_seconds(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and 0 < value < float("inf")
    )


def _flag(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError("expected a boolean")


class Configuration:
    """Configuration manager with layered precedence.

    Precedence order (highest to lowest):
    1. CLI arguments (via merge method)
    2. Environment variables
    3. Config file (~/.pandacdprc JSON)
    4. Default values

    Timeouts are stored in seconds. Environment variables carry them in
    milliseconds (CDP_*_MS).

    Attributes:
        endpoint: CDP endpoint URL (ws, wss, http or https)
        token: Lightpanda Cloud token used when no endpoint is set
        region: Lightpanda Cloud region (default: "uswest")
        cloud_host: Explicit cloud host, overrides region
        connect_timeout: Connect/discovery deadline (default: 5.0)
        command_timeout: Default command timeout (default: 10.0)
        nav_timeout: Page.navigate timeout (default: 30.0)
        eval_timeout: Runtime.evaluate timeout (default: 30.0)
        a11y_timeout: Accessibility tree timeout (default: 30.0)
        global_timeout: Whole-run deadline for CLI commands (default: 45.0)
        max_size: Maximum WebSocket message size in bytes (default: 2MB)
        check_dns: Resolve the endpoint host before connecting (default: True)
        log_level: Logging level (default: "INFO")
        log_format: Log output format "text" or "json" (default: "text")
    """

    DEFAULTS = {
        "endpoint": None,
        "token": None,
        "region": DEFAULT_REGION,
        "cloud_host": None,
        "connect_timeout": 5.0,
        "command_timeout": 10.0,
        "nav_timeout": 30.0,
        "eval_timeout": 30.0,
        "a11y_timeout": 30.0,
        "global_timeout": 45.0,
        "max_size": 2_097_152,  # 2MB
        "check_dns": True,
        "log_level": "INFO",
        "log_format": "text",
    }

    # env var -> (attribute, converter); first match wins for shared attributes
    ENV_MAPPINGS = (
        ("LIGHTPANDA_CDP_URL", "endpoint", str),
        ("CDP_WS_URL", "endpoint", str),
        ("LIGHTPANDA_TOKEN", "token", str),
        ("LIGHTPANDA_REGION", "region", str),
        ("LIGHTPANDA_CLOUD_HOST", "cloud_host", str),
        ("CDP_TIMEOUT_MS", "connect_timeout", _positive_millis),
        ("CDP_COMMAND_TIMEOUT_MS", "command_timeout", _positive_millis),
        ("CDP_NAV_TIMEOUT_MS", "nav_timeout", _positive_millis),
        ("CDP_EVAL_TIMEOUT_MS", "eval_timeout", _positive_millis),
        ("CDP_A11Y_TIMEOUT_MS", "a11y_timeout", _positive_millis),
        ("CDP_GLOBAL_TIMEOUT_MS", "global_timeout", _positive_millis),
        ("CDP_MAX_SIZE", "max_size", int),
        ("CDP_CHECK_DNS", "check_dns", _flag),
        ("CDP_LOG_LEVEL", "log_level", str),
        ("CDP_LOG_FORMAT", "log_format", str),
    )

    def __init__(self):
        """Initialize configuration with default values."""
        self.endpoint: Optional[str] = self.DEFAULTS["endpoint"]
        self.token: Optional[str] = self.DEFAULTS["token"]
        self.region: str = self.DEFAULTS["region"]
        self.cloud_host: Optional[str] = self.DEFAULTS["cloud_host"]
        self.connect_timeout: float = self.DEFAULTS["connect_timeout"]
        self.command_timeout: float = self.DEFAULTS["command_timeout"]
        self.nav_timeout: float = self.DEFAULTS["nav_timeout"]
        self.eval_timeout: float = self.DEFAULTS["eval_timeout"]
        self.a11y_timeout: float = self.DEFAULTS["a11y_timeout"]
        self.global_timeout: float = self.DEFAULTS["global_timeout"]
        self.max_size: int = self.DEFAULTS["max_size"]
        self.check_dns: bool = self.DEFAULTS["check_dns"]
        self.log_level: str = self.DEFAULTS["log_level"]
        self.log_format: str = self.DEFAULTS["log_format"]

    def load_from_file(self, file_path: str = CONFIG_FILE) -> None:
        """Load configuration from JSON file.

        Args:
            file_path: Path to config file (typically ~/.pandacdprc)

        Note:
            Invalid JSON or missing file is silently ignored with warning log.
            Partial configs are merged with existing values.
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            logger.debug(f"Config file not found: {path}")
            return

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in config file {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Error loading config file {path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Config file {path} must contain a JSON object")
            return

        self._merge_dict(data)
        logger.info(f"Loaded configuration from {path}")

    def load_from_env(self, environ: Optional[dict] = None) -> None:
        """Load configuration from environment variables.

        Recognized variables:
        - LIGHTPANDA_CDP_URL, CDP_WS_URL (endpoint, first one set wins)
        - LIGHTPANDA_TOKEN, LIGHTPANDA_REGION, LIGHTPANDA_CLOUD_HOST
        - CDP_TIMEOUT_MS, CDP_COMMAND_TIMEOUT_MS, CDP_NAV_TIMEOUT_MS,
          CDP_EVAL_TIMEOUT_MS, CDP_A11Y_TIMEOUT_MS, CDP_GLOBAL_TIMEOUT_MS
        - CDP_MAX_SIZE, CDP_CHECK_DNS
        - CDP_LOG_LEVEL, CDP_LOG_FORMAT, DEBUG=1 (forces DEBUG level)

        Invalid values are ignored with a warning log.
        """
        environ = os.environ if environ is None else environ
        seen = set()

        for env_var, attr_name, type_converter in self.ENV_MAPPINGS:
            if attr_name in seen:
                continue
            value = environ.get(env_var)
            if value is None or not value.strip():
                continue
            try:
                converted_value = type_converter(value.strip())
            except (ValueError, TypeError) as e:
                logger.warning(
                    f"Invalid value for {env_var}: {redact_secrets(value)} ({e})"
                )
                continue
            setattr(self, attr_name, converted_value)
            seen.add(attr_name)
            logger.debug(f"Loaded {attr_name} from {env_var}")

        if environ.get("DEBUG") == "1":
            self.log_level = "DEBUG"

    def merge(self, **kwargs) -> None:
        """Merge CLI arguments into configuration (highest precedence).

        Args:
            **kwargs: Configuration key-value pairs to override

        Example:
            >>> config.merge(endpoint="wss://example.test/ws", connect_timeout=2.0)
        """
        self._merge_dict(kwargs)

    def _merge_dict(self, data: dict) -> None:
        for key, value in data.items():
            if key not in self.DEFAULTS or value is None:
                continue
            if key.endswith("_timeout") and not _is_positive_seconds(value):
                logger.warning(f"Ignoring {key}={value!r}: must be a positive number of seconds")
                continue
            setattr(self, key, value)
            logger.debug(f"Set {key}")

    def resolved_endpoint(self) -> Optional[str]:
        """Endpoint to connect to.

        Returns the configured endpoint, else a Lightpanda Cloud URL built from
        the token, else None (callers then fall back to a local Chrome).
        """
        if self.endpoint:
            return self.endpoint.strip()
        if self.token:
            host = self.cloud_host or CLOUD_HOST_TEMPLATE.format(region=self.region)
            return f"wss://{host}/ws?token={self.token}"
        return None

    def to_dict(self) -> dict:
        """Export configuration as dictionary.

        Secrets are redacted; use resolved_endpoint() for the real URL.
        """
        data = {key: getattr(self, key) for key in self.DEFAULTS}
        if data["endpoint"]:
            data["endpoint"] = redact_secrets(data["endpoint"])
        if data["token"]:
            data["token"] = "***"
        return data

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"Configuration({self.to_dict()})"
