"""
MCP Connection Package

Drives an MCP tool server subprocess over newline-delimited JSON-RPC:
process supervision, line framing, message decoding, request correlation
and the connection facade that ties them together.
"""

from .codec import (
    build_initialize_request,
    build_list_tools_request,
    build_notification,
    build_tool_call_request,
    decode_message,
    encode_message,
)
from .config import ConnectionConfig, PlaywrightConfig, load_connection_config
from .connection import ConnectionState, McpConnection
from .correlator import PendingRequest, RequestCorrelator
from .errors import (
    ConnectionLostError,
    HandshakeError,
    McpConnectionError,
    ProtocolDecodeError,
    RequestTimeoutError,
    SpawnError,
)
from .framing import LineFramer
from .process_manager import ToolServerProcessManager

__all__ = [
    "build_initialize_request",
    "build_list_tools_request",
    "build_notification",
    "build_tool_call_request",
    "decode_message",
    "encode_message",
    "ConnectionConfig",
    "PlaywrightConfig",
    "load_connection_config",
    "ConnectionState",
    "McpConnection",
    "PendingRequest",
    "RequestCorrelator",
    "ConnectionLostError",
    "HandshakeError",
    "McpConnectionError",
    "ProtocolDecodeError",
    "RequestTimeoutError",
    "SpawnError",
    "LineFramer",
    "ToolServerProcessManager",
]
