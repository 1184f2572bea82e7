"""Unit tests for Configuration with precedence testing.

CLI > env > config file > defaults, millisecond env timeouts, and
endpoint resolution from a Lightpanda Cloud token.
"""

import json
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from pandacdp.config import Configuration


@pytest.mark.unit
class TestConfigurationPrecedence:
    """Test configuration precedence (CLI > env > file > defaults)."""

    def test_default_values(self):
        """Verify default configuration values are set correctly."""
        config = Configuration()

        assert config.endpoint is None
        assert config.region == "uswest"
        assert config.connect_timeout == 5.0
        assert config.command_timeout == 10.0
        assert config.nav_timeout == 30.0
        assert config.max_size == 2_097_152  # 2MB
        assert config.check_dns is True
        assert config.log_level == "INFO"
        assert config.log_format == "text"

    def test_load_from_file(self):
        """Verify configuration loads from a ~/.pandacdprc style file."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_data = {
                "endpoint": "ws://127.0.0.1:9222/devtools/browser/x",
                "command_timeout": 60.0,
                "log_level": "DEBUG",
            }
            config_file.write_text(json.dumps(config_data))

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.endpoint == "ws://127.0.0.1:9222/devtools/browser/x"
            assert config.command_timeout == 60.0
            assert config.log_level == "DEBUG"
            # Defaults still apply for unset values
            assert config.max_size == 2_097_152

    def test_load_from_env(self):
        """Verify configuration loads from environment variables."""
        config = Configuration()
        config.load_from_env(
            {
                "LIGHTPANDA_CDP_URL": "wss://example.test/ws",
                "CDP_TIMEOUT_MS": "2500",
                "CDP_LOG_LEVEL": "WARNING",
            }
        )

        assert config.endpoint == "wss://example.test/ws"
        assert config.connect_timeout == 2.5
        assert config.log_level == "WARNING"
        assert config.max_size == 2_097_152

    def test_real_environment(self, monkeypatch):
        """Verify os.environ is read when no mapping is passed."""
        monkeypatch.setenv("CDP_NAV_TIMEOUT_MS", "12000")
        monkeypatch.delenv("DEBUG", raising=False)

        config = Configuration()
        config.load_from_env()

        assert config.nav_timeout == 12.0

    def test_cli_overrides_all(self):
        """Verify CLI arguments override env vars and config file."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_file.write_text(json.dumps({"connect_timeout": 9.0, "endpoint": "ws://file/ws"}))

            config = Configuration()
            config.load_from_file(str(config_file))
            config.load_from_env({"CDP_TIMEOUT_MS": "4000", "CDP_WS_URL": "ws://env/ws"})
            config.merge(connect_timeout=1.0, endpoint="ws://cli/ws")

            assert config.connect_timeout == 1.0  # CLI wins
            assert config.endpoint == "ws://cli/ws"  # CLI wins

    def test_precedence_chain_file_env_cli(self):
        """Test complete precedence chain: defaults < file < env < CLI."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_file.write_text(json.dumps({"region": "euwest", "command_timeout": 60.0}))

            config = Configuration()
            config.load_from_file(str(config_file))
            config.load_from_env({"LIGHTPANDA_REGION": "uswest", "CDP_LOG_LEVEL": "DEBUG"})
            config.merge(command_timeout=15.0, log_level=None)

            assert config.region == "uswest"  # Env wins over file
            assert config.command_timeout == 15.0  # CLI wins over file
            assert config.log_level == "DEBUG"  # None in CLI is not an override
            assert config.max_size == 2_097_152  # Default

    def test_invalid_config_file_graceful_fallback(self):
        """Verify invalid config file doesn't crash, uses defaults."""
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_file.write_text("INVALID JSON{{{")

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.connect_timeout == 5.0

    @pytest.mark.parametrize("value", [0, -1, "30", True])
    def test_non_positive_file_timeout_ignored(self, value):
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_file.write_text(json.dumps({"command_timeout": value, "nav_timeout": 12}))

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.command_timeout == 10.0
            assert config.nav_timeout == 12

    def test_non_object_config_file_ignored(self):
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / ".pandacdprc"
            config_file.write_text("[1, 2, 3]")

            config = Configuration()
            config.load_from_file(str(config_file))

            assert config.endpoint is None

    def test_nonexistent_config_file_ignored(self):
        """Verify nonexistent config file is silently ignored."""
        config = Configuration()
        config.load_from_file("/nonexistent/path/.pandacdprc")

        assert config.command_timeout == 10.0

    def test_unknown_keys_ignored(self):
        config = Configuration()
        config.merge(chrome_port=9333, endpoint="ws://h/ws")

        assert not hasattr(config, "chrome_port")
        assert config.endpoint == "ws://h/ws"


@pytest.mark.unit
class TestConfigurationTypes:
    """Test type conversion and validation."""

    def test_millisecond_conversion(self):
        """Env timeouts are milliseconds, stored as float seconds."""
        config = Configuration()
        config.load_from_env(
            {
                "CDP_COMMAND_TIMEOUT_MS": "250",
                "CDP_EVAL_TIMEOUT_MS": "1",
                "CDP_GLOBAL_TIMEOUT_MS": "90000",
            }
        )

        assert config.command_timeout == 0.25
        assert config.eval_timeout == 0.001
        assert config.global_timeout == 90.0

    @pytest.mark.parametrize("value", ["not_a_number", "0", "-5", "inf", "nan"])
    def test_invalid_timeout_ignored(self, value):
        """Verify invalid environment variable values are ignored."""
        config = Configuration()
        config.load_from_env({"CDP_TIMEOUT_MS": value})

        assert config.connect_timeout == 5.0

    def test_max_size_and_flag(self):
        config = Configuration()
        config.load_from_env({"CDP_MAX_SIZE": "1048576", "CDP_CHECK_DNS": "off"})

        assert config.max_size == 1_048_576
        assert config.check_dns is False

    def test_invalid_flag_ignored(self):
        config = Configuration()
        config.load_from_env({"CDP_CHECK_DNS": "maybe"})

        assert config.check_dns is True

    def test_first_endpoint_variable_wins(self):
        config = Configuration()
        config.load_from_env(
            {"LIGHTPANDA_CDP_URL": "wss://first/ws", "CDP_WS_URL": "ws://second/ws"}
        )

        assert config.endpoint == "wss://first/ws"

    def test_blank_variable_skipped(self):
        config = Configuration()
        config.load_from_env({"LIGHTPANDA_CDP_URL": "  ", "CDP_WS_URL": "ws://second/ws"})

        assert config.endpoint == "ws://second/ws"

    def test_debug_forces_debug_level(self):
        config = Configuration()
        config.load_from_env({"CDP_LOG_LEVEL": "ERROR", "DEBUG": "1"})

        assert config.log_level == "DEBUG"


@pytest.mark.unit
class TestResolvedEndpoint:
    def test_explicit_endpoint(self):
        config = Configuration()
        config.merge(endpoint="  http://localhost:9222 ", token="ignored")

        assert config.resolved_endpoint() == "http://localhost:9222"

    def test_token_builds_cloud_url(self):
        config = Configuration()
        config.load_from_env({"LIGHTPANDA_TOKEN": "tok123", "LIGHTPANDA_REGION": "euwest"})

        assert config.resolved_endpoint() == "wss://euwest.cloud.lightpanda.io/ws?token=tok123"

    def test_cloud_host_overrides_region(self):
        config = Configuration()
        config.merge(token="tok123", cloud_host="browser.example.test")

        assert config.resolved_endpoint() == "wss://browser.example.test/ws?token=tok123"

    def test_nothing_configured(self):
        assert Configuration().resolved_endpoint() is None

    def test_to_dict_redacts(self):
        config = Configuration()
        config.merge(endpoint="wss://h/ws?token=abc", token="abc")

        data = config.to_dict()
        assert data["endpoint"] == "wss://h/ws?token=***"
        assert data["token"] == "***"
        assert "abc" not in repr(config)
