"""
JSON-RPC message codec

Encodes outbound envelopes as single JSON lines and decodes inbound lines
into response envelopes. Decoding is strict about shape but tolerant as a
stream: a bad line raises ProtocolDecodeError for the caller to log and skip.
"""

import json
from typing import Any

from ..types import McpNotification, McpRequest, McpResponse
from .errors import ProtocolDecodeError

JSONRPC_VERSION = "2.0"
INITIALIZE_REQUEST_ID = 1
DEFAULT_PROTOCOL_VERSION = "2024-11-05"


def encode_message(message: McpRequest | McpNotification) -> str:
    """
    Serialize an envelope to one newline-terminated line.

    json.dumps escapes control characters inside strings, so the encoded
    body never contains a raw newline.
    """
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"


def decode_message(line: str) -> McpResponse:
    """
    Parse a line as a JSON-RPC response envelope.

    Args:
        line: One line read from the server's stdout, without terminator

    Returns:
        The decoded response

    Raises:
        ProtocolDecodeError: If the line is not JSON, not an object, or has no integer id
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolDecodeError(line, f"Invalid JSON ({e.msg})") from e

    if not isinstance(payload, dict):
        raise ProtocolDecodeError(line, "Message is not a JSON object")

    if "method" in payload:
        # Server-initiated request or notification; its id is not ours
        raise ProtocolDecodeError(line, "Message is not a response")

    message_id = payload.get("id")
    # bool is an int subclass, but never a valid id
    if not isinstance(message_id, int) or isinstance(message_id, bool):
        raise ProtocolDecodeError(line, "Message has no integer id")

    response: McpResponse = {"jsonrpc": JSONRPC_VERSION, "id": message_id}
    if "result" in payload:
        response["result"] = payload["result"]
    if "error" in payload:
        response["error"] = payload["error"]
    return response


def build_initialize_request(
    client_name: str,
    client_version: str,
    protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    request_id: int = INITIALIZE_REQUEST_ID,
) -> McpRequest:
    """Build the handshake request sent once per spawned server."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": protocol_version,
            "capabilities": {},
            "clientInfo": {"name": client_name, "version": client_version},
        },
    }


def build_tool_call_request(
    request_id: int, name: str, arguments: dict[str, Any] | None = None
) -> McpRequest:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments or {}},
    }


def build_list_tools_request(request_id: int) -> McpRequest:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": "tools/list", "params": {}}


def build_notification(method: str, params: dict[str, Any] | None = None) -> McpNotification:
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params or {}}
