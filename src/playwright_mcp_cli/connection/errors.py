"""
Connection error taxonomy

Infrastructure failures (spawn, timeout, lost process) are raised as
exceptions. Application-level failures reported by the tool server in a
response's "error" field are NOT exceptions: they are returned to the caller
as ordinary responses.
"""


class McpConnectionError(RuntimeError):
    """Base class for failures of the connection to the tool server."""


class SpawnError(McpConnectionError):
    """The tool server subprocess could not be started."""

    def __init__(self, command: list[str], reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to start MCP server ({' '.join(command)}): {reason}")


class RequestTimeoutError(McpConnectionError):
    """No response arrived for a request before its deadline."""

    def __init__(self, request_id: int, timeout: float) -> None:
        self.request_id = request_id
        self.timeout = timeout
        super().__init__(f"Request {request_id} timed out after {timeout:g}s")


class ConnectionLostError(McpConnectionError):
    """The tool server exited or its pipes closed while a request was outstanding."""

    def __init__(
        self,
        reason: str,
        request_id: int | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.reason = reason
        self.request_id = request_id
        self.returncode = returncode
        self.stderr = stderr
        message = reason
        if request_id is not None:
            message = f"{reason} (request {request_id})"
        super().__init__(message)


class HandshakeError(McpConnectionError):
    """The server answered the initialize request with an error (strict policy only)."""

    def __init__(self, error: object) -> None:
        self.error = error
        super().__init__(f"MCP server rejected initialize: {error}")


class ProtocolDecodeError(ValueError):
    """A line read from the server is not a valid JSON-RPC response envelope."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"{reason}: {line[:200]!r}")
