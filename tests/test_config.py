"""
Tests for configuration loading
"""

import os

import pytest

from playwright_mcp_cli.connection.config import (
    ENV_PREFIX,
    _apply_playwright_overrides,
    _get_bool_env,
    _get_float_env,
    _get_int_env,
    load_connection_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove any PW_MCP_CLI_* variables inherited from the environment."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


class TestConnectionConfig:
    """Tests for connection configuration."""

    def test_load_default_config(self):
        """Test loading default configuration."""
        config = load_connection_config()

        assert config["server_command"] == "npx"
        assert config["server_args"] == ["--yes", "@playwright/mcp@latest"]
        assert config["server_cwd"] is None
        assert config["request_timeout"] == 30.0
        assert config["protocol_version"] == "2024-11-05"
        assert config["client_name"] == "playwright-cli"
        assert config["client_version"] == "1.0.0"
        assert config["strict_handshake"] is False
        assert config["max_response_tokens"] == 20000
        assert config["image_responses"] == "allow"
        assert config["playwright"] == {}

    def test_load_config_from_env(self, monkeypatch):
        """Test loading configuration from environment variables."""
        monkeypatch.setenv("PW_MCP_CLI_SERVER_COMMAND", "node")
        monkeypatch.setenv("PW_MCP_CLI_SERVER_ARGS", "'/opt/mcp server/cli.js' --port 0")
        monkeypatch.setenv("PW_MCP_CLI_SERVER_CWD", "/opt")
        monkeypatch.setenv("PW_MCP_CLI_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("PW_MCP_CLI_STRICT_HANDSHAKE", "true")
        monkeypatch.setenv("PW_MCP_CLI_MAX_RESPONSE_TOKENS", "5000")
        monkeypatch.setenv("PW_MCP_CLI_IMAGE_RESPONSES", "OMIT")

        config = load_connection_config()

        assert config["server_command"] == "node"
        assert config["server_args"] == ["/opt/mcp server/cli.js", "--port", "0"]
        assert config["server_cwd"] == "/opt"
        assert config["request_timeout"] == 2.5
        assert config["strict_handshake"] is True
        assert config["max_response_tokens"] == 5000
        assert config["image_responses"] == "omit"

    def test_invalid_image_policy(self, monkeypatch):
        monkeypatch.setenv("PW_MCP_CLI_IMAGE_RESPONSES", "sometimes")

        with pytest.raises(ValueError, match="IMAGE_RESPONSES"):
            load_connection_config()

    @pytest.mark.parametrize("value", ["0", "-1", "soon"])
    def test_invalid_timeout_uses_default(self, monkeypatch, value):
        monkeypatch.setenv("PW_MCP_CLI_REQUEST_TIMEOUT", value)
        assert load_connection_config()["request_timeout"] == 30.0

    def test_playwright_flags_from_env(self, monkeypatch):
        monkeypatch.setenv("PW_MCP_CLI_BROWSER", "firefox")
        monkeypatch.setenv("PW_MCP_CLI_HEADLESS", "true")
        monkeypatch.setenv("PW_MCP_CLI_TIMEOUT_ACTION", "10000")

        playwright = load_connection_config()["playwright"]

        assert playwright == {"browser": "firefox", "headless": True, "timeout_action": 10000}


class TestApplyPlaywrightOverrides:
    """Tests for _apply_playwright_overrides."""

    def test_unset_variables_leave_config_alone(self):
        config = {"browser": "chromium"}
        _apply_playwright_overrides(config, prefix="TEST_PW_")
        assert config == {"browser": "chromium"}

    def test_overrides_by_type(self, monkeypatch):
        monkeypatch.setenv("TEST_PW_BROWSER", "webkit")
        monkeypatch.setenv("TEST_PW_ISOLATED", "yes")
        monkeypatch.setenv("TEST_PW_NO_SANDBOX", "0")
        monkeypatch.setenv("TEST_PW_TIMEOUT_NAVIGATION", "60000")

        config = {}
        _apply_playwright_overrides(config, prefix="TEST_PW_")

        assert config == {
            "browser": "webkit",
            "isolated": True,
            "no_sandbox": False,
            "timeout_navigation": 60000,
        }

    def test_invalid_int_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("TEST_PW_TIMEOUT_ACTION", "fast")

        config = {}
        _apply_playwright_overrides(config, prefix="TEST_PW_")

        assert "timeout_action" not in config
        assert "Ignoring invalid integer for TEST_PW_TIMEOUT_ACTION" in caplog.text


class TestGetBoolEnv:
    """Tests for _get_bool_env helper function."""

    def test_returns_default_when_not_set(self, monkeypatch):
        monkeypatch.delenv("TEST_BOOL_VAR", raising=False)
        assert _get_bool_env("TEST_BOOL_VAR", True) is True
        assert _get_bool_env("TEST_BOOL_VAR", False) is False

    def test_true_values(self, monkeypatch):
        for value in ["true", "TRUE", "1", "yes", "on"]:
            monkeypatch.setenv("TEST_BOOL_VAR", value)
            assert _get_bool_env("TEST_BOOL_VAR", False) is True

    def test_false_values(self, monkeypatch):
        for value in ["false", "0", "no", "off", ""]:
            monkeypatch.setenv("TEST_BOOL_VAR", value)
            assert _get_bool_env("TEST_BOOL_VAR", True) is False


class TestGetIntEnv:
    """Tests for _get_int_env helper function."""

    def test_returns_default_when_not_set(self, monkeypatch):
        monkeypatch.delenv("TEST_INT_VAR", raising=False)
        assert _get_int_env("TEST_INT_VAR", 42) == 42

    def test_parses_valid_integer(self, monkeypatch):
        monkeypatch.setenv("TEST_INT_VAR", "123")
        assert _get_int_env("TEST_INT_VAR", 0) == 123

    def test_returns_default_for_invalid_value(self, monkeypatch):
        monkeypatch.setenv("TEST_INT_VAR", "invalid")
        assert _get_int_env("TEST_INT_VAR", 99) == 99


class TestGetFloatEnv:
    """Tests for _get_float_env helper function."""

    def test_returns_default_when_not_set(self, monkeypatch):
        monkeypatch.delenv("TEST_FLOAT_VAR", raising=False)
        assert _get_float_env("TEST_FLOAT_VAR", 1.5) == 1.5

    def test_parses_valid_float(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT_VAR", "0.25")
        assert _get_float_env("TEST_FLOAT_VAR", 1.0) == 0.25

    def test_rejects_non_positive(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT_VAR", "0")
        assert _get_float_env("TEST_FLOAT_VAR", 1.0) == 1.0
