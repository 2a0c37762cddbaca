"""
Logging configuration utilities for playwright-mcp-cli

Provides file-only logging configuration so that diagnostics never interleave
with the interactive shell output. Upstream server traffic and stderr are
logged here as well, which keeps the terminal reserved for command results.
"""

import logging
from pathlib import Path
from typing import Any

DEFAULT_LOG_FILE = "logs/playwright-mcp-cli.log"

# Config keys containing any of these are never written to the log
SENSITIVE_KEY_PARTS = ("token", "password", "secret", "key")


def setup_file_logging(
    log_file: str | Path = DEFAULT_LOG_FILE,
    level: int = logging.INFO,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Configure file-only logging for the application.

    NOTE: We log ONLY to file, NOT to stdout/stderr, because the terminal is
    owned by the interactive shell and by command output.

    Args:
        log_file: Path to the log file (relative or absolute)
        level: Logging level (default: logging.INFO)
        format_string: Custom format string (default: timestamp - name - level - message)

    Returns:
        The root logger instance
    """
    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    except OSError:
        # Unwritable location, keep logging somewhere predictable
        log_path = Path("/tmp") / log_path.name
        handler = logging.FileHandler(log_path)

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[handler],
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger()
    logger.info(f"Logging configured: file={log_path}, level={logging.getLevelName(level)}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; output goes wherever setup_file_logging() pointed the root logger."""
    return logging.getLogger(name)


def log_dict(
    logger: logging.Logger, message: str, data: dict[str, Any], level: int = logging.INFO
) -> None:
    """
    Log a config mapping one "key: value" line at a time.

    Keys that look like credentials (see SENSITIVE_KEY_PARTS) are redacted
    and entries whose value is None are skipped.

    Args:
        logger: Logger to write to
        message: Header line
        data: Mapping to dump
        level: Log level (default: INFO)
    """
    logger.log(level, message)
    for key, value in data.items():
        if value is None:
            continue
        if any(part in key.lower() for part in SENSITIVE_KEY_PARTS):
            value = "***REDACTED***"
        logger.log(level, f"  {key}: {value}")


def truncate_for_log(text: str, max_length: int = 2000) -> str:
    """Shorten a protocol line for the log, noting how much was dropped."""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... ({len(text) - max_length} more chars)"
