"""
Type Definitions

TypedDict classes for the JSON-RPC envelopes exchanged with the tool server
and for the page state that feeds a bounded tool response.
"""

from typing import Any, Literal, NotRequired, TypedDict


class McpRequest(TypedDict):
    """Outbound JSON-RPC request. Every request carries an integer id."""

    jsonrpc: Literal["2.0"]
    id: int
    method: str
    params: dict[str, Any]


class McpNotification(TypedDict):
    """Outbound JSON-RPC notification (no id, never answered)."""

    jsonrpc: Literal["2.0"]
    method: str
    params: dict[str, Any]


class McpResponse(TypedDict):
    """
    Inbound JSON-RPC response.

    Exactly one of result/error is populated in a well-formed response. A
    response carrying neither is treated as an empty success.
    """

    jsonrpc: Literal["2.0"]
    id: int
    result: NotRequired[Any]
    error: NotRequired[Any]


class ConsoleMessage(TypedDict, total=False):
    """Browser console entry captured with a tab snapshot."""

    type: str  # log, warning, error, ...
    text: str
    location: str | None


class DownloadEntry(TypedDict):
    """File download observed in the current tab."""

    filename: str
    output_file: str
    finished: bool


class TabInfo(TypedDict):
    """Descriptor of an open browser tab."""

    title: str
    url: str
    current: bool


class TabSnapshot(TypedDict, total=False):
    """
    Structured capture of a page's state.

    console_messages entries may be plain strings or ConsoleMessage dicts.
    aria_snapshot is the serialized accessibility tree (YAML-like text).
    """

    url: str
    title: str
    aria_snapshot: str
    console_messages: list[ConsoleMessage | str]
    downloads: list[DownloadEntry]


class ImageAttachment(TypedDict):
    """Raw image bytes attached to a tool response."""

    content_type: str
    data: bytes
