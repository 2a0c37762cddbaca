"""
Configuration management for the Playwright MCP CLI

Loads configuration from environment variables with sensible defaults for
the tool server subprocess, the JSON-RPC connection and the response budget.
"""

import logging
import os
import shlex
from pathlib import Path
from typing import TypedDict

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "PW_MCP_CLI_"

# Load environment variables from .env file
# Try multiple paths for .env file
env_loaded = False
for env_path in [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent.parent / ".env",
    Path.home() / ".env",
]:
    if env_path.exists():
        logger.info(f"Loading environment from: {env_path}")
        load_dotenv(env_path)
        env_loaded = True
        break

if not env_loaded:
    logger.debug("No .env file found, using system environment variables only")


IMAGE_RESPONSE_POLICIES = ("allow", "omit")


class PlaywrightConfig(TypedDict, total=False):
    """Flags forwarded to the @playwright/mcp server command line"""

    # Browser settings
    browser: str
    headless: bool
    no_sandbox: bool
    device: str | None
    viewport_size: str | None

    # Profile/storage
    isolated: bool
    user_data_dir: str | None
    storage_state: str | None

    # Network
    allowed_origins: str | None
    blocked_origins: str | None
    proxy_server: str | None

    # Capabilities
    caps: str

    # Output
    save_trace: bool
    output_dir: str

    # Timeouts (milliseconds)
    timeout_action: int
    timeout_navigation: int

    # Images
    image_responses: str

    # Stealth settings
    user_agent: str | None
    ignore_https_errors: bool


class ConnectionConfig(TypedDict):
    """Configuration for the tool server connection"""

    # Subprocess
    server_command: str
    server_args: list[str]
    server_cwd: str | None

    # Protocol
    request_timeout: float
    protocol_version: str
    client_name: str
    client_version: str
    strict_handshake: bool

    # Response budget
    max_response_tokens: int
    image_responses: str

    playwright: PlaywrightConfig


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable (must be positive)"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


# Each tuple: (env_suffix, config_key, value_type)
_PLAYWRIGHT_KEY_MAPPINGS: list[tuple[str, str, str]] = [
    # Browser settings
    ("BROWSER", "browser", "str"),
    ("HEADLESS", "headless", "bool"),
    ("NO_SANDBOX", "no_sandbox", "bool"),
    ("DEVICE", "device", "str"),
    ("VIEWPORT_SIZE", "viewport_size", "str"),
    # Profile/storage
    ("ISOLATED", "isolated", "bool"),
    ("USER_DATA_DIR", "user_data_dir", "str"),
    ("STORAGE_STATE", "storage_state", "str"),
    # Network
    ("ALLOWED_ORIGINS", "allowed_origins", "str"),
    ("BLOCKED_ORIGINS", "blocked_origins", "str"),
    ("PROXY_SERVER", "proxy_server", "str"),
    # Capabilities
    ("CAPS", "caps", "str"),
    # Output
    ("SAVE_TRACE", "save_trace", "bool"),
    ("OUTPUT_DIR", "output_dir", "str"),
    # Timeouts
    ("TIMEOUT_ACTION", "timeout_action", "int"),
    ("TIMEOUT_NAVIGATION", "timeout_navigation", "int"),
    # Images
    ("IMAGE_RESPONSES", "image_responses", "str"),
    # Stealth
    ("USER_AGENT", "user_agent", "str"),
    ("IGNORE_HTTPS_ERRORS", "ignore_https_errors", "bool"),
]


def _apply_playwright_overrides(config: PlaywrightConfig, prefix: str = ENV_PREFIX) -> None:
    """
    Apply @playwright/mcp flag overrides from environment variables.

    Only variables that are actually set end up in the config, so unset
    flags are left to the server's own defaults.

    Args:
        config: Config dict to update in-place
        prefix: Environment variable prefix
    """
    for env_suffix, config_key, value_type in _PLAYWRIGHT_KEY_MAPPINGS:
        env_var = f"{prefix}{env_suffix}"
        if os.getenv(env_var) is None:
            continue

        if value_type == "str":
            config[config_key] = os.getenv(env_var)  # type: ignore[literal-required]
        elif value_type == "bool":
            config[config_key] = _get_bool_env(env_var, False)  # type: ignore[literal-required]
        elif value_type == "int":
            value = _get_int_env(env_var, -1)
            if value >= 0:
                config[config_key] = value  # type: ignore[literal-required]
            else:
                logger.warning(f"Ignoring invalid integer for {env_var}")


def load_connection_config() -> ConnectionConfig:
    """
    Load connection configuration from environment variables.

    Returns:
        ConnectionConfig with all settings

    Raises:
        ValueError: If PW_MCP_CLI_IMAGE_RESPONSES is not a known policy
    """
    image_responses = os.getenv(f"{ENV_PREFIX}IMAGE_RESPONSES", "allow").lower()
    if image_responses not in IMAGE_RESPONSE_POLICIES:
        raise ValueError(
            f"Invalid {ENV_PREFIX}IMAGE_RESPONSES '{image_responses}'. "
            f"Expected one of: {', '.join(IMAGE_RESPONSE_POLICIES)}"
        )

    playwright: PlaywrightConfig = {}
    _apply_playwright_overrides(playwright)

    config: ConnectionConfig = {
        "server_command": os.getenv(f"{ENV_PREFIX}SERVER_COMMAND", "npx"),
        "server_args": shlex.split(
            os.getenv(f"{ENV_PREFIX}SERVER_ARGS", "--yes @playwright/mcp@latest")
        ),
        "server_cwd": os.getenv(f"{ENV_PREFIX}SERVER_CWD") or None,
        "request_timeout": _get_float_env(f"{ENV_PREFIX}REQUEST_TIMEOUT", 30.0),
        "protocol_version": os.getenv(f"{ENV_PREFIX}PROTOCOL_VERSION", "2024-11-05"),
        "client_name": os.getenv(f"{ENV_PREFIX}CLIENT_NAME", "playwright-cli"),
        "client_version": os.getenv(f"{ENV_PREFIX}CLIENT_VERSION", "1.0.0"),
        "strict_handshake": _get_bool_env(f"{ENV_PREFIX}STRICT_HANDSHAKE", False),
        "max_response_tokens": _get_int_env(f"{ENV_PREFIX}MAX_RESPONSE_TOKENS", 20000),
        "image_responses": image_responses,
        "playwright": playwright,
    }
    return config
