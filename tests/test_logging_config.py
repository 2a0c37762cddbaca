"""Tests for logging_config utilities"""

import logging
from pathlib import Path

import pytest

from playwright_mcp_cli.utils.logging_config import (
    get_logger,
    log_dict,
    setup_file_logging,
    truncate_for_log,
)


@pytest.fixture
def root_logging():
    """Put the root logger back the way it was after setup_file_logging ran."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def file_handler_paths(root: logging.Logger) -> list[Path]:
    return [Path(h.baseFilename) for h in root.handlers if isinstance(h, logging.FileHandler)]


class TestSetupFileLogging:
    """Tests for setup_file_logging function"""

    def test_writes_only_to_file(self, tmp_path, root_logging):
        log_file = tmp_path / "cli.log"

        setup_file_logging(log_file=log_file)
        logging.getLogger("playwright_mcp_cli.test").info("tool call finished")

        assert file_handler_paths(root_logging) == [log_file]
        assert not any(
            type(h) is logging.StreamHandler for h in root_logging.handlers
        )
        contents = log_file.read_text()
        assert f"Logging configured: file={log_file}, level=INFO" in contents
        assert "tool call finished" in contents

    def test_level_and_format(self, tmp_path, root_logging):
        log_file = tmp_path / "cli.log"

        setup_file_logging(
            log_file=log_file, level=logging.DEBUG, format_string="%(levelname)s|%(message)s"
        )
        logging.getLogger("playwright_mcp_cli.test").debug("UPSTREAM_MCP → tools/call")

        assert root_logging.level == logging.DEBUG
        assert "DEBUG|UPSTREAM_MCP → tools/call" in log_file.read_text()

    def test_creates_missing_directories(self, tmp_path, root_logging):
        log_file = tmp_path / "logs" / "nested" / "cli.log"

        setup_file_logging(log_file=log_file)

        assert log_file.parent.is_dir()
        assert log_file.exists()

    def test_unwritable_location_falls_back_to_tmp(self, tmp_path, root_logging):
        # A regular file where the log directory should be makes mkdir fail
        blocker = tmp_path / "blocked"
        blocker.touch()
        fallback = Path("/tmp") / f"{tmp_path.name}-fallback.log"

        try:
            setup_file_logging(log_file=blocker / fallback.name)

            assert file_handler_paths(root_logging) == [fallback]
            assert f"Logging configured: file={fallback}" in fallback.read_text()
        finally:
            fallback.unlink(missing_ok=True)


class TestGetLogger:
    """Tests for get_logger function"""

    def test_named_logger(self):
        logger = get_logger("playwright_mcp_cli.connection")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "playwright_mcp_cli.connection"

    def test_same_name_same_logger(self):
        assert get_logger("playwright_mcp_cli.cli") is get_logger("playwright_mcp_cli.cli")


class TestLogDict:
    """Tests for log_dict function"""

    def test_header_then_one_line_per_key(self, caplog):
        logger = logging.getLogger("test_log_dict")

        with caplog.at_level(logging.INFO):
            log_dict(logger, "Playwright flags:", {"browser": "firefox", "timeout_action": 5000})

        assert caplog.messages == [
            "Playwright flags:",
            "  browser: firefox",
            "  timeout_action: 5000",
        ]

    def test_sensitive_keys_redacted(self, caplog):
        logger = logging.getLogger("test_log_dict_sensitive")

        with caplog.at_level(logging.INFO):
            log_dict(
                logger,
                "Config:",
                {"API_TOKEN": "tok-123", "proxy_password": "hunter2", "headless": True},
            )

        assert "  API_TOKEN: ***REDACTED***" in caplog.messages
        assert "  proxy_password: ***REDACTED***" in caplog.messages
        assert "  headless: True" in caplog.messages
        assert "tok-123" not in caplog.text
        assert "hunter2" not in caplog.text

    def test_unset_values_skipped(self, caplog):
        logger = logging.getLogger("test_log_dict_none")

        with caplog.at_level(logging.INFO):
            log_dict(logger, "Flags:", {"browser": "chromium", "device": None, "headless": False})

        assert caplog.messages == ["Flags:", "  browser: chromium", "  headless: False"]

    def test_custom_level(self, caplog):
        logger = logging.getLogger("test_log_dict_level")

        with caplog.at_level(logging.WARNING):
            log_dict(logger, "Ignored flags:", {"caps": "vision"}, level=logging.WARNING)

        assert [record.levelno for record in caplog.records] == [logging.WARNING] * 2


class TestTruncateForLog:
    """Tests for truncate_for_log function"""

    def test_short_text_unchanged(self):
        assert truncate_for_log('{"id":2}') == '{"id":2}'

    def test_text_at_limit_unchanged(self):
        assert truncate_for_log("x" * 2000) == "x" * 2000

    def test_long_text_truncated(self):
        """Long protocol lines are cut with a count of dropped chars"""
        assert truncate_for_log("x" * 2500) == "x" * 2000 + "... (500 more chars)"

    def test_custom_max_length(self):
        assert truncate_for_log("abcdef", max_length=3) == "abc... (3 more chars)"
