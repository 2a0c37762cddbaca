"""Token-bounded serialization of tool responses."""

from .budget import (
    IMAGES_TRUNCATED_NOTICE,
    MAX_TOKENS,
    RESPONSE_TRUNCATED_NOTICE,
    SNAPSHOT_TRUNCATED_NOTICE,
    estimate_tokens,
    truncate_to_token_limit,
)
from .tool_response import (
    ToolResponse,
    format_console_message,
    render_tab_snapshot,
    render_tabs_markdown,
)

__all__ = [
    "IMAGES_TRUNCATED_NOTICE",
    "MAX_TOKENS",
    "RESPONSE_TRUNCATED_NOTICE",
    "SNAPSHOT_TRUNCATED_NOTICE",
    "estimate_tokens",
    "truncate_to_token_limit",
    "ToolResponse",
    "format_console_message",
    "render_tab_snapshot",
    "render_tabs_markdown",
]
