"""
MCP connection manager

Owns one tool server subprocess and multiplexes JSON-RPC requests over its
stdio pipes. Initialization (spawn + initialize handshake) runs as one shared
task: concurrent first callers await that single attempt and all see its
outcome, and only a later call retries after a failure.
"""

import asyncio
import time
from enum import Enum
from typing import Any

from ..types import McpNotification, McpRequest, McpResponse
from ..utils.logging_config import get_logger
from .codec import (
    INITIALIZE_REQUEST_ID,
    build_initialize_request,
    build_list_tools_request,
    build_notification,
    build_tool_call_request,
    encode_message,
)
from .config import ConnectionConfig, load_connection_config
from .correlator import RequestCorrelator
from .errors import HandshakeError
from .process_manager import ToolServerProcessManager

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    TERMINATED = "terminated"


class McpConnection:
    """
    Connection to an MCP tool server over stdio.

    Create one per application run and pass it to whatever needs to talk to
    the server; close() it on the way out.

    Example:
        async with McpConnection() as connection:
            response = await connection.call_tool(
                "browser_navigate", {"url": "http://localhost:3000"}
            )
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        process_manager: ToolServerProcessManager | None = None,
    ) -> None:
        self.config = config or load_connection_config()
        self.process_manager = process_manager or ToolServerProcessManager(self.config)
        self.correlator = RequestCorrelator(default_timeout=self.config["request_timeout"])
        self.state = ConnectionState.UNINITIALIZED

        # Outcome of the most recent handshake, kept apart from readiness
        self.handshake_result: Any = None
        self.handshake_error: Any = None

        self._init_lock = asyncio.Lock()
        self._init_task: asyncio.Task | None = None
        self._request_id = INITIALIZE_REQUEST_ID
        self._spawn_count = 0

    async def __aenter__(self) -> "McpConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY and self.process_manager.is_running()

    @property
    def spawn_count(self) -> int:
        """How many times a server process has been started by this connection."""
        return self._spawn_count

    def next_id(self) -> int:
        """Allocate the next request id. Ids are never reused by a connection."""
        self._request_id += 1
        return self._request_id

    async def send_request(
        self, request: McpRequest, timeout: float | None = None
    ) -> McpResponse:
        """
        Send a request, initializing the connection first if needed.

        Args:
            request: JSON-RPC request with a unique id
            timeout: Seconds to wait for the response (default from config)

        Returns:
            The matching response. A response carrying an "error" member is
            returned as-is; interpreting it is up to the caller.

        Raises:
            SpawnError: The server could not be started
            RequestTimeoutError: No response before the deadline
            ConnectionLostError: The server exited while the request was pending
        """
        await self._ensure_initialized()
        return await self._dispatch(request, timeout)

    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> McpResponse:
        """Call a tool on the server (tools/call)."""
        request = build_tool_call_request(self.next_id(), tool_name, arguments)
        return await self.send_request(request, timeout=timeout)

    async def list_tools(self, timeout: float | None = None) -> McpResponse:
        """List the tools offered by the server (tools/list)."""
        request = build_list_tools_request(self.next_id())
        return await self.send_request(request, timeout=timeout)

    async def close(self) -> None:
        """Stop the server and fail anything still pending. Safe to call repeatedly."""
        async with self._init_lock:
            if self.state is ConnectionState.UNINITIALIZED and self.process_manager.process is None:
                return

            logger.info("Closing MCP connection")
            await self.process_manager.stop()
            self.correlator.fail_all("MCP connection closed")
            self.state = ConnectionState.UNINITIALIZED

    async def _ensure_initialized(self) -> None:
        if self.is_ready:
            return

        if self._init_task is None:
            self._init_task = asyncio.create_task(self._run_initialize())
            self._init_task.add_done_callback(self._clear_init_task)

        # Shielded so one caller giving up does not abort the attempt for the rest
        await asyncio.shield(self._init_task)

    async def _run_initialize(self) -> None:
        async with self._init_lock:
            if self.is_ready:
                return
            await self._initialize()

    def _clear_init_task(self, task: asyncio.Task) -> None:
        if self._init_task is task:
            self._init_task = None
        # Mark the outcome as retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _initialize(self) -> None:
        """Spawn the server and perform the initialize handshake. Caller holds the lock."""
        logger.info("Initializing MCP connection...")
        self.state = ConnectionState.INITIALIZING
        self.handshake_result = None
        self.handshake_error = None
        start_time = time.time()

        try:
            # A previous process may still be around after a failed attempt
            await self.process_manager.stop()
            self.correlator.fail_all("MCP server process was replaced")
            await self.process_manager.start(
                on_message=self._on_message, on_exit=self._on_process_exit
            )
            self._spawn_count += 1

            request = build_initialize_request(
                client_name=self.config["client_name"],
                client_version=self.config["client_version"],
                protocol_version=self.config["protocol_version"],
                request_id=INITIALIZE_REQUEST_ID,
            )
            response = await self._dispatch(request)

            if "error" in response:
                self.handshake_error = response["error"]
                if self.config["strict_handshake"]:
                    raise HandshakeError(response["error"])
                logger.warning(
                    f"UPSTREAM_MCP ✗ initialize returned an error, continuing: {response['error']}"
                )
            else:
                self.handshake_result = response.get("result")
                await self._notify(build_notification("notifications/initialized"))

        except BaseException:
            await self.process_manager.stop()
            self.state = ConnectionState.TERMINATED
            raise

        self.state = ConnectionState.READY
        duration = (time.time() - start_time) * 1000
        server_info = (self.handshake_result or {}).get("serverInfo", {})
        logger.info(
            f"MCP connection initialized ({duration:.2f}ms), server: "
            f"{server_info.get('name', 'unknown')} {server_info.get('version', '')}".rstrip()
        )

    async def _dispatch(self, request: McpRequest, timeout: float | None = None) -> McpResponse:
        request_id = request["id"]
        method = request["method"]
        future = self.correlator.register(request_id, timeout, method=method)
        start_time = time.time()

        try:
            logger.info(f"UPSTREAM_MCP → {method} (id={request_id})")
            await self.process_manager.write(encode_message(request))
            response = await future
        except BaseException as e:
            # Covers write failures and callers that stop waiting
            self.correlator.discard(request_id)
            if not isinstance(e, asyncio.CancelledError):
                duration = (time.time() - start_time) * 1000
                logger.error(
                    f"UPSTREAM_MCP ✗ {method} (id={request_id}) failed ({duration:.2f}ms) - "
                    f"{type(e).__name__}: {e}"
                )
            raise

        duration = (time.time() - start_time) * 1000
        logger.info(f"UPSTREAM_MCP ← {method} (id={request_id}) ({duration:.2f}ms)")
        return response

    async def _notify(self, notification: McpNotification) -> None:
        logger.info(f"UPSTREAM_MCP → {notification['method']} (notification)")
        await self.process_manager.write(encode_message(notification))

    def _on_message(self, response: McpResponse) -> None:
        self.correlator.resolve(response)

    def _on_process_exit(self, returncode: int | None, stderr: str) -> None:
        reason = f"MCP server process exited with code {returncode}"
        if returncode and stderr.strip():
            reason = f"{reason}. Error: {stderr.strip()}"

        self.state = ConnectionState.TERMINATED
        self.correlator.fail_all(reason, returncode=returncode, stderr=stderr)
