"""
Pytest Configuration and Fixtures

This module provides shared fixtures for all tests.
"""

import asyncio
import io
import json
import sys
from pathlib import Path

import pytest
from rich.console import Console

from playwright_mcp_cli.connection import ConnectionConfig, ConnectionLostError, decode_message

FAKE_SERVER = Path(__file__).parent / "fixtures" / "fake_tool_server.py"


def default_responder(request: dict) -> dict | None:
    """Answer requests the way a healthy tool server would."""
    method = request["method"]
    if method == "initialize":
        result = {
            "protocolVersion": request["params"]["protocolVersion"],
            "capabilities": {},
            "serverInfo": {"name": "fake", "version": "0.0.1"},
        }
    elif method == "tools/list":
        result = {"tools": [{"name": "browser_navigate", "description": "Navigate to a URL"}]}
    elif method == "tools/call":
        result = {"content": [{"type": "text", "text": f"called {request['params']['name']}"}]}
    else:
        return None
    return {"jsonrpc": "2.0", "id": request["id"], "result": result}


class FakeProcessManager:
    """
    In-memory stand-in for ToolServerProcessManager.

    Every written request is passed to `responder`; a returned dict is
    delivered back on the next loop iteration, None leaves the request
    unanswered so tests can deliver (or withhold) responses themselves.
    """

    def __init__(self, responder=default_responder) -> None:
        self.responder = responder
        self.process: object | None = None
        self.written: list[dict] = []
        self.start_count = 0
        self.stop_count = 0
        self.start_delay = 0.0
        self.start_error: Exception | None = None
        self._on_message = None
        self._on_exit = None

    def is_running(self) -> bool:
        return self.process is not None

    async def start(self, on_message, on_exit) -> object:
        self.start_count += 1
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error
        self._on_message = on_message
        self._on_exit = on_exit
        self.process = object()
        return self.process

    async def write(self, line: str) -> None:
        if self.process is None:
            raise ConnectionLostError("MCP server process is not running")

        assert line.endswith("\n") and "\n" not in line[:-1]
        message = json.loads(line)
        self.written.append(message)
        if "id" not in message:
            return

        response = self.responder(message)
        if response is not None:
            asyncio.get_running_loop().call_soon(self.deliver, response)

    async def stop(self) -> None:
        self.stop_count += 1
        self.process = None

    def deliver(self, response: dict) -> None:
        """Feed a response through the codec as if read from stdout."""
        self._on_message(decode_message(json.dumps(response)))

    def exit(self, returncode: int = 1, stderr: str = "") -> None:
        self.process = None
        self._on_exit(returncode, stderr)

    def requests(self, method: str) -> list[dict]:
        return [m for m in self.written if m.get("method") == method]


@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Connection config pointing at the fake stdio tool server script."""
    return {
        "server_command": sys.executable,
        "server_args": [str(FAKE_SERVER)],
        "server_cwd": None,
        "request_timeout": 5.0,
        "protocol_version": "2024-11-05",
        "client_name": "playwright-cli",
        "client_version": "1.0.0",
        "strict_handshake": False,
        "max_response_tokens": 20000,
        "image_responses": "allow",
        "playwright": {},
    }


@pytest.fixture
def fake_process_manager() -> FakeProcessManager:
    return FakeProcessManager()


@pytest.fixture
def console() -> Console:
    """Console writing plain text into a buffer (read with console.file.getvalue())."""
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


@pytest.fixture
def sample_tab_snapshot() -> dict:
    return {
        "url": "http://localhost:3000/",
        "title": "Dashboard",
        "aria_snapshot": '- heading "Dashboard" [level=1]\n- button "Save" [ref=e2]',
        "console_messages": [
            {"type": "log", "text": "app booted"},
            {"type": "error", "text": "failed to load avatar", "location": "app.js:10"},
        ],
        "downloads": [
            {"filename": "report.pdf", "output_file": "/tmp/report.pdf", "finished": True},
            {"filename": "data.csv", "output_file": "/tmp/data.csv", "finished": False},
        ],
    }
