"""
Bounded tool response

Collects the parts of a tool response (result text, generated code, tab
listing, page snapshot, images) and serializes them under a token budget.
Parts are rendered in priority order so that result text and code are never
sacrificed for snapshot or image content.
"""

import base64
import json
from typing import Any

from mcp.types import CallToolResult, ImageContent, TextContent

from ..types import ConsoleMessage, ImageAttachment, McpResponse, TabInfo, TabSnapshot
from ..utils.logging_config import get_logger
from .budget import (
    ARIA_RESERVE_TOKENS,
    CONSOLE_RESERVE_TOKENS,
    IMAGE_RESERVE_TOKENS,
    IMAGES_TRUNCATED_NOTICE,
    MAX_CONSOLE_MESSAGE_CHARS,
    MAX_TOKENS,
    MIN_SNAPSHOT_TOKENS,
    SNAPSHOT_RESERVE_TOKENS,
    SNAPSHOT_TRUNCATED_NOTICE,
    estimate_tokens,
    trim,
    truncate_to_token_limit,
)

logger = get_logger(__name__)


class ToolResponse:
    """
    Response being assembled for one tool call.

    Built incrementally with the add_* methods, finished once, then
    serialized. Serialization is computed on the first call and reused.
    """

    def __init__(
        self,
        tool_name: str,
        tool_args: dict[str, Any] | None = None,
        image_responses: str = "allow",
        max_tokens: int = MAX_TOKENS,
    ) -> None:
        self.tool_name = tool_name
        self.tool_args = tool_args or {}
        self.image_responses = image_responses
        self.max_tokens = max_tokens

        self._result: list[str] = []
        self._code: list[str] = []
        self._images: list[ImageAttachment] = []
        self._tabs: list[TabInfo] = []
        self._include_snapshot = False
        self._include_tabs = False
        self._is_error = False
        self._tab_snapshot: TabSnapshot | None = None
        self._finished = False
        self._serialized: CallToolResult | None = None

    @classmethod
    def from_call_result(
        cls,
        tool_name: str,
        tool_args: dict[str, Any] | None,
        response: McpResponse,
        image_responses: str = "allow",
        max_tokens: int = MAX_TOKENS,
    ) -> "ToolResponse":
        """
        Build a response from a tools/call reply received over the wire.

        Text content becomes result text and image content becomes image
        attachments. A JSON-RPC error or an isError result marks the
        response as an error.
        """
        tool_response = cls(tool_name, tool_args, image_responses, max_tokens)

        if "error" in response:
            error = response["error"]
            message = error.get("message") if isinstance(error, dict) else None
            tool_response.add_error(message or json.dumps(error))
            return tool_response

        result = response.get("result")
        content = result.get("content") if isinstance(result, dict) else None
        if not isinstance(content, list):
            # Not a content list; show the raw result rather than dropping it
            if result is not None and result != {}:
                tool_response.add_result(json.dumps(result, indent=2))
            return tool_response

        for item in content:
            item_type = item.get("type") if isinstance(item, dict) else None
            if item_type == "text":
                text = item.get("text", "")
                tool_response.add_result(text if isinstance(text, str) else json.dumps(text))
            elif item_type == "image":
                try:
                    data = base64.b64decode(item.get("data", ""), validate=True)
                except (ValueError, TypeError) as e:
                    logger.warning(f"Undecodable image in {tool_name} response: {e}")
                    tool_response.add_result(json.dumps(item, indent=2))
                    continue
                tool_response.add_image(item.get("mimeType", "image/png"), data)
            else:
                tool_response.add_result(json.dumps(item, indent=2))

        if result.get("isError"):
            tool_response._is_error = True
        return tool_response

    def _check_open(self) -> None:
        if self._finished:
            raise RuntimeError(f"Response for {self.tool_name} is already finished")

    def add_result(self, result: str) -> None:
        self._check_open()
        self._result.append(result)

    def add_error(self, error: str) -> None:
        self._check_open()
        self._result.append(error)
        self._is_error = True

    def is_error(self) -> bool:
        return self._is_error

    def result(self) -> str:
        return "\n".join(self._result)

    def add_code(self, code: str) -> None:
        self._check_open()
        self._code.append(code)

    def code(self) -> str:
        return "\n".join(self._code)

    def add_image(self, content_type: str, data: bytes) -> None:
        self._check_open()
        self._images.append({"content_type": content_type, "data": data})

    def images(self) -> list[ImageAttachment]:
        return list(self._images)

    def set_include_snapshot(self) -> None:
        self._check_open()
        self._include_snapshot = True

    def set_include_tabs(self) -> None:
        self._check_open()
        self._include_tabs = True

    def finish(
        self, tab_snapshot: TabSnapshot | None = None, tabs: list[TabInfo] | None = None
    ) -> None:
        """
        Attach the page state captured after the tool ran and freeze the response.

        The snapshot is kept only if set_include_snapshot() was called.
        """
        self._check_open()
        if tabs is not None:
            self._tabs = list(tabs)
        if self._include_snapshot and tab_snapshot is not None:
            self._tab_snapshot = tab_snapshot
        self._finished = True

    def tab_snapshot(self) -> TabSnapshot | None:
        return self._tab_snapshot

    def serialize(self) -> CallToolResult:
        """Render the response within the token budget."""
        if self._serialized is not None:
            return self._serialized
        if not self._finished:
            self.finish()

        response: list[str] = []

        if self._result:
            response.append("### Result")
            response.append("\n".join(self._result))
            response.append("")

        if self._code:
            response.append(f"### Ran Playwright code\n```js\n{self.code()}\n```")
            response.append("")

        if self._include_snapshot or self._include_tabs:
            response.extend(render_tabs_markdown(self._tabs, self._include_tabs))

        pre_snapshot_tokens = estimate_tokens("\n".join(response))
        available_for_snapshot = max(
            MIN_SNAPSHOT_TOKENS, self.max_tokens - pre_snapshot_tokens - SNAPSHOT_RESERVE_TOKENS
        )

        if self._tab_snapshot is not None:
            response.append(render_tab_snapshot(self._tab_snapshot, available_for_snapshot))
            response.append("")

        text = "\n".join(response)
        current_tokens = estimate_tokens(text)
        if current_tokens > self.max_tokens:
            logger.info(
                f"Truncating {self.tool_name} response: ~{current_tokens} tokens "
                f"over budget of {self.max_tokens}"
            )
            text = truncate_to_token_limit(text, self.max_tokens)
            current_tokens = estimate_tokens(text)

        images: list[ImageContent] = []
        if self.image_responses != "omit":
            max_image_tokens = max(0, self.max_tokens - current_tokens - IMAGE_RESERVE_TOKENS)
            image_tokens = 0

            for image in self._images:
                encoded = base64.b64encode(image["data"]).decode("ascii")
                image_estimate = estimate_tokens(encoded)

                if image_tokens + image_estimate > max_image_tokens:
                    dropped = len(self._images) - len(images)
                    logger.info(f"Dropping {dropped} image(s) from {self.tool_name} response")
                    text += IMAGES_TRUNCATED_NOTICE
                    break

                images.append(
                    ImageContent(type="image", data=encoded, mimeType=image["content_type"])
                )
                image_tokens += image_estimate

        content: list[TextContent | ImageContent] = [TextContent(type="text", text=text)]
        content.extend(images)
        self._serialized = CallToolResult(content=content, isError=self._is_error)
        return self._serialized


def format_console_message(message: ConsoleMessage | str) -> str:
    if isinstance(message, str):
        return message

    text = f"[{message.get('type', 'log').upper()}] {message.get('text', '')}"
    if message.get("location"):
        text += f" @ {message['location']}"
    return text


def render_tab_snapshot(tab_snapshot: TabSnapshot, max_tokens: int = 10000) -> str:
    """
    Render console messages, downloads and page state within max_tokens.

    Console messages are kept oldest-first while they fit; the accessibility
    tree is included whole or cut at the remaining budget with one marker.
    """
    lines: list[str] = []

    console_messages = tab_snapshot.get("console_messages") or []
    if console_messages:
        lines.append("### New console messages")

        available = max(0, max_tokens - estimate_tokens("\n".join(lines)) - CONSOLE_RESERVE_TOKENS)
        console_tokens = 0
        shown = 0

        for message in console_messages:
            message_text = f"- {trim(format_console_message(message), MAX_CONSOLE_MESSAGE_CHARS)}"
            message_tokens = estimate_tokens(message_text)
            if console_tokens + message_tokens > available:
                break
            lines.append(message_text)
            console_tokens += message_tokens
            shown += 1

        if shown < len(console_messages):
            lines.append(
                f"- ... and {len(console_messages) - shown} more messages "
                "(truncated to fit token limit)"
            )
        lines.append("")

    downloads = tab_snapshot.get("downloads") or []
    if downloads:
        lines.append("### Downloads")
        for entry in downloads:
            if entry["finished"]:
                lines.append(f"- Downloaded file {entry['filename']} to {entry['output_file']}")
            else:
                lines.append(f"- Downloading file {entry['filename']} ...")
        lines.append("")

    lines.append("### Page state")
    lines.append(f"- Page URL: {tab_snapshot.get('url', '')}")
    lines.append(f"- Page Title: {tab_snapshot.get('title', '')}")
    lines.append("- Page Snapshot:")
    lines.append("```yaml")

    aria_snapshot = tab_snapshot.get("aria_snapshot", "")
    aria_tokens = estimate_tokens(aria_snapshot)
    reserved = estimate_tokens("\n".join(lines)) + ARIA_RESERVE_TOKENS
    available = max_tokens - reserved

    if aria_tokens > available and available > 0:
        lines.append(truncate_to_token_limit(aria_snapshot, available, SNAPSHOT_TRUNCATED_NOTICE))
    else:
        lines.append(aria_snapshot)

    lines.append("```")
    return "\n".join(lines)


def render_tabs_markdown(tabs: list[TabInfo], force: bool = False) -> list[str]:
    if len(tabs) == 1 and not force:
        return []

    if not tabs:
        return [
            "### Open tabs",
            'No open tabs. Use the "browser_navigate" tool to navigate to a page first.',
            "",
        ]

    lines = ["### Open tabs"]
    for index, tab in enumerate(tabs):
        current = " (current)" if tab.get("current") else ""
        lines.append(f"- {index}:{current} [{tab['title']}] ({tab['url']})")
    lines.append("")
    return lines
