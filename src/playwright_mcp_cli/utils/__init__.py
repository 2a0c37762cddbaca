"""Utility modules for the Playwright MCP CLI."""

from .logging_config import get_logger, log_dict, setup_file_logging, truncate_for_log

__all__ = ["get_logger", "log_dict", "setup_file_logging", "truncate_for_log"]
