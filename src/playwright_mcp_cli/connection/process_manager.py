"""
Process manager for the MCP tool server subprocess

Handles spawning, lifecycle management, and stdio communication with the
tool server (by default the @playwright/mcp Node.js server via npx).
"""

import asyncio
import os
import shutil
from asyncio.subprocess import Process
from collections.abc import Callable

from ..types import McpResponse
from ..utils.logging_config import get_logger, log_dict, truncate_for_log
from .codec import decode_message
from .config import ConnectionConfig
from .errors import ConnectionLostError, ProtocolDecodeError, SpawnError
from .framing import LineFramer

logger = get_logger(__name__)

# Chunk size for reading the server's stdout
READ_CHUNK_SIZE = 64 * 1024

# Time allowed for the stdout pump to drain after the process has exited
EXIT_DRAIN_TIMEOUT = 2.0

MessageHandler = Callable[[McpResponse], None]
ExitHandler = Callable[[int | None, str], None]


class ToolServerProcessManager:
    """Manages the tool server subprocess and its standard streams"""

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self.process: Process | None = None
        self._framer = LineFramer()
        self._stderr_chunks: list[str] = []
        self._on_message: MessageHandler | None = None
        self._on_exit: ExitHandler | None = None
        self._stdout_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._exit_task: asyncio.Task | None = None

    @property
    def stderr_text(self) -> str:
        """Everything the current process wrote to stderr, verbatim."""
        return "".join(self._stderr_chunks)

    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self, on_message: MessageHandler, on_exit: ExitHandler) -> Process:
        """
        Start the tool server subprocess.

        Args:
            on_message: Called with every response decoded from stdout
            on_exit: Called once with (returncode, stderr text) when the process exits

        Returns:
            The subprocess Process object

        Raises:
            SpawnError: If the executable is missing or the process fails to start
        """
        if self.is_running():
            raise RuntimeError("Tool server process is already running")

        command = self._build_command()
        logger.info("Starting MCP tool server subprocess")
        logger.info(f"  Command: {' '.join(command)}")
        logger.info(f"  Working directory: {self.config['server_cwd'] or os.getcwd()}")
        if self.config["playwright"]:
            log_dict(logger, "Playwright flags:", dict(self.config["playwright"]))

        executable = shutil.which(command[0], path=os.environ.get("PATH"))
        if not executable:
            logger.error(f"{command[0]} not found in PATH")
            raise SpawnError(command, f"{command[0]} not found in PATH")

        self._framer = LineFramer()
        self._stderr_chunks = []
        self._on_message = on_message
        self._on_exit = on_exit

        try:
            self.process = await asyncio.create_subprocess_exec(
                executable,
                *command[1:],
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.config["server_cwd"],
                env=os.environ.copy(),
            )
        except OSError as e:
            logger.error(f"Failed to start MCP tool server: {e}")
            raise SpawnError(command, str(e)) from e

        logger.info(f"Process created with PID: {self.process.pid}")

        self._stdout_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())
        self._exit_task = asyncio.create_task(self._watch_exit())
        return self.process

    async def write(self, line: str) -> None:
        """
        Write one encoded message line to the server's stdin.

        Raises:
            ConnectionLostError: If the process is gone or its stdin is closed
        """
        if not self.is_running() or self.process is None or self.process.stdin is None:
            raise ConnectionLostError("MCP server process is not running")

        logger.debug(f"UPSTREAM_MCP → {truncate_for_log(line.rstrip())}")
        try:
            self.process.stdin.write(line.encode("utf-8"))
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ConnectionLostError(
                f"MCP server stdin closed: {e}", stderr=self.stderr_text
            ) from e

    async def stop(self) -> None:
        """Stop the tool server subprocess gracefully. Safe to call repeatedly."""
        if self.process is None:
            return

        logger.info("Stopping MCP tool server subprocess...")

        # The exit watcher must not report a deliberate stop as a crash
        await self._cancel_task(self._exit_task)
        await self._cancel_task(self._stdout_task)
        await self._cancel_task(self._stderr_task)
        self._exit_task = self._stdout_task = self._stderr_task = None

        process = self.process
        self.process = None
        try:
            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()

            if process.returncode is None:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=5.0)
                    logger.info("MCP tool server stopped gracefully")
                except asyncio.TimeoutError:
                    logger.warning("MCP tool server didn't stop gracefully, forcing kill")
                    process.kill()
                    await process.wait()
                    logger.info("MCP tool server killed")
        except ProcessLookupError:
            logger.debug("MCP tool server already exited")

    async def _cancel_task(self, task: asyncio.Task | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _read_stdout(self) -> None:
        """
        Background task feeding stdout through the framer and codec.

        Lines that are not protocol messages (diagnostics printed by the
        server, blank lines) are logged and skipped.
        """
        if not self.process or not self.process.stdout:
            logger.error("No stdout to read from subprocess")
            return

        stdout = self.process.stdout
        try:
            while True:
                chunk = await stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for line in self._framer.feed(chunk):
                    self._handle_line(line)

            remainder = self._framer.flush()
            if remainder is not None and remainder.strip():
                logger.warning("UPSTREAM_MCP stdout closed with an unterminated line")
                self._handle_line(remainder)

        except asyncio.CancelledError:
            logger.debug("Stdout reader task cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in stdout reader: {e}")
            # Without a reader no response can arrive; let the exit watcher fail pending work
            process = self.process
            if process is not None and process.returncode is None:
                logger.warning("Killing MCP tool server after stdout reader failure")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass

    def _handle_line(self, line: str) -> None:
        if not line.strip():
            return

        try:
            message = decode_message(line)
        except ProtocolDecodeError as e:
            logger.warning(f"UPSTREAM_MCP [stdout] Failed to parse MCP response: {e}")
            return

        logger.debug(f"UPSTREAM_MCP ← {truncate_for_log(line)}")
        if self._on_message is not None:
            self._on_message(message)

    async def _read_stderr(self) -> None:
        """
        Background task accumulating stderr for diagnostics.
        Uses UPSTREAM_MCP prefix to distinguish from client logs.
        """
        if not self.process or not self.process.stderr:
            logger.error("No stderr to log from subprocess")
            return

        stderr = self.process.stderr
        try:
            while True:
                chunk = await stderr.read(READ_CHUNK_SIZE)
                if not chunk:
                    break

                text = chunk.decode("utf-8", errors="replace")
                self._stderr_chunks.append(text)
                for stderr_line in text.splitlines():
                    if stderr_line.strip():
                        logger.warning(f"UPSTREAM_MCP [stderr] {stderr_line}")

        except asyncio.CancelledError:
            logger.debug("Stderr reader task cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in stderr logger: {e}")

    async def _watch_exit(self) -> None:
        """Wait for the process to exit, drain its output, then report the exit."""
        process = self.process
        if process is None:
            return

        returncode = await process.wait()
        logger.warning(f"MCP tool server exited with code {returncode}")

        # Responses written just before exit must resolve before pending work is failed
        for task in (self._stdout_task, self._stderr_task):
            if task is not None and not task.done():
                try:
                    await asyncio.wait_for(asyncio.shield(task), timeout=EXIT_DRAIN_TIMEOUT)
                except asyncio.TimeoutError:
                    logger.warning("Timed out draining MCP server output after exit")

        if self.process is process:
            self.process = None
        if self._on_exit is not None:
            self._on_exit(returncode, self.stderr_text)

    def _build_command(self) -> list[str]:
        """
        Build the server command line from config.

        Returns:
            List of command and arguments
        """
        command = [self.config["server_command"], *self.config["server_args"]]
        flags = self.config["playwright"]

        # Browser
        if flags.get("browser"):
            command.extend(["--browser", flags["browser"]])

        if flags.get("headless"):
            command.append("--headless")

        # No sandbox (required for running as root in Docker)
        if flags.get("no_sandbox"):
            command.append("--no-sandbox")

        if flags.get("device"):
            command.extend(["--device", flags["device"]])

        if flags.get("viewport_size"):
            command.extend(["--viewport-size", flags["viewport_size"]])

        # Profile/storage
        if flags.get("isolated"):
            command.append("--isolated")

        if flags.get("user_data_dir"):
            command.extend(["--user-data-dir", flags["user_data_dir"]])

        if flags.get("storage_state"):
            command.extend(["--storage-state", flags["storage_state"]])

        # Network filtering
        if flags.get("allowed_origins"):
            command.extend(["--allowed-origins", flags["allowed_origins"]])

        if flags.get("blocked_origins"):
            command.extend(["--blocked-origins", flags["blocked_origins"]])

        if flags.get("proxy_server"):
            command.extend(["--proxy-server", flags["proxy_server"]])

        if flags.get("caps"):
            command.extend(["--caps", flags["caps"]])

        # Output
        if flags.get("save_trace"):
            command.append("--save-trace")

        if flags.get("output_dir"):
            command.extend(["--output-dir", flags["output_dir"]])

        # Timeouts
        if "timeout_action" in flags:
            command.extend(["--timeout-action", str(flags["timeout_action"])])

        if "timeout_navigation" in flags:
            command.extend(["--timeout-navigation", str(flags["timeout_navigation"])])

        if flags.get("image_responses"):
            command.extend(["--image-responses", flags["image_responses"]])

        # Stealth settings
        if flags.get("user_agent"):
            command.extend(["--user-agent", flags["user_agent"]])

        if flags.get("ignore_https_errors"):
            command.append("--ignore-https-errors")

        return command
