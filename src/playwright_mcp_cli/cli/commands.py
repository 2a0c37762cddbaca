"""
Shell commands

Commands receive the parsed arguments and an explicit CommandContext that
carries the shared MCP connection and the console. MCP-backed commands
report infrastructure failures (spawn, timeout, lost connection) as a
diagnostic and abort; tool-level errors are shown as normal output.
"""

import datetime
import inspect
import json
import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from ..connection import ConnectionConfig, McpConnection, McpConnectionError
from ..response import ToolResponse
from ..types import McpResponse
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CommandContext:
    connection: McpConnection
    console: Console
    config: ConnectionConfig


class Command(ABC):
    """A named shell command. Returns False when it failed, anything else on success."""

    name: str = ""
    description: str = ""
    aliases: tuple[str, ...] = ()

    @abstractmethod
    async def execute(self, args: list[str], context: CommandContext) -> bool | None: ...


class SimpleCommand(Command):
    """Command backed by a plain function (sync or async)."""

    def __init__(
        self,
        name: str,
        description: str,
        handler: Callable[[list[str], CommandContext], Awaitable[Any] | Any],
        aliases: tuple[str, ...] = (),
    ) -> None:
        self.name = name
        self.description = description
        self.handler = handler
        self.aliases = aliases

    async def execute(self, args: list[str], context: CommandContext) -> bool | None:
        result = self.handler(args, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class CommandRegistry:
    """Case-insensitive command table with alias support."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        self._commands[command.name.lower()] = command
        for alias in command.aliases:
            self._commands[alias.lower()] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name.lower())

    def all(self) -> list[Command]:
        """Registered commands without alias duplicates, in registration order."""
        unique: list[Command] = []
        for command in self._commands.values():
            if command not in unique:
                unique.append(command)
        return unique


# =============================================================================
# MCP COMMANDS
# =============================================================================


class McpCommandBase(Command):
    """Runs one request against the MCP server and renders its response."""

    async def execute(self, args: list[str], context: CommandContext) -> bool:
        try:
            response = await self.execute_command(args, context)
        except McpConnectionError as e:
            self.handle_error(e, context)
            return False
        except ValueError as e:
            context.console.print(f"[red]Invalid arguments:[/red] {escape(str(e))}")
            return False

        return self.process_response(response, context)

    @abstractmethod
    async def execute_command(self, args: list[str], context: CommandContext) -> McpResponse: ...

    @abstractmethod
    def process_response(self, response: McpResponse, context: CommandContext) -> bool: ...

    def handle_error(self, error: Exception, context: CommandContext) -> None:
        logger.error(f"Command {self.name} failed: {type(error).__name__}: {error}")
        context.console.print(
            f"[red]Error executing command:[/red] {escape(str(error))}", highlight=False
        )


class ToolCallCommand(McpCommandBase):
    """Calls one tool and prints the budgeted response."""

    def __init__(
        self,
        name: str,
        description: str,
        tool_name: str,
        aliases: tuple[str, ...] = (),
        build_arguments: Callable[[list[str]], dict[str, Any]] | None = None,
    ) -> None:
        self.name = name
        self.description = description
        self.tool_name = tool_name
        self.aliases = aliases
        self.build_arguments = build_arguments or (lambda args: {})
        self._last_arguments: dict[str, Any] = {}

    async def execute_command(self, args: list[str], context: CommandContext) -> McpResponse:
        self._last_arguments = self.build_arguments(args)
        return await context.connection.call_tool(self.tool_name, self._last_arguments)

    def process_response(self, response: McpResponse, context: CommandContext) -> bool:
        render_tool_response(self.tool_name, self._last_arguments, response, context)
        return True


class CallCommand(McpCommandBase):
    """Calls any tool: call <tool> [json-arguments]"""

    name = "call"
    description = "Call an MCP tool: call <tool> [json-arguments]"

    def __init__(self) -> None:
        self._tool_name = ""
        self._arguments: dict[str, Any] = {}

    async def execute_command(self, args: list[str], context: CommandContext) -> McpResponse:
        if not args:
            raise ValueError("usage: call <tool> [json-arguments]")

        self._tool_name = args[0]
        self._arguments = parse_json_arguments(" ".join(args[1:]))
        return await context.connection.call_tool(self._tool_name, self._arguments)

    def process_response(self, response: McpResponse, context: CommandContext) -> bool:
        render_tool_response(self._tool_name, self._arguments, response, context)
        return True


class ListToolsCommand(McpCommandBase):
    name = "list-tools"
    description = "List all available tools from the Playwright MCP server"
    aliases = ("tools", "lt")

    async def execute_command(self, args: list[str], context: CommandContext) -> McpResponse:
        return await context.connection.list_tools()

    def process_response(self, response: McpResponse, context: CommandContext) -> bool:
        console = context.console
        if "error" in response:
            console.print(f"Error listing tools: {response['error']}", markup=False)
            return True

        tools = (response.get("result") or {}).get("tools") or []
        if not tools:
            console.print("No tools found or unable to parse response")
            return True

        console.print(f"\nFound {len(tools)} available tools:\n")
        for tool in sorted(tools, key=lambda t: t.get("name", "")):
            annotations = tool.get("annotations") or {}
            console.print(f"🔧 {tool.get('name')}", markup=False)
            console.print(f"   {tool.get('description', '')}", markup=False)
            if annotations.get("title") and annotations["title"] != tool.get("name"):
                console.print(f"   Title: {annotations['title']}", markup=False)
            if annotations.get("readOnlyHint"):
                console.print("   Type: Read-only")
            elif annotations.get("destructiveHint"):
                console.print("   Type: Destructive")
            console.print("")

        console.print(f"Total: {len(tools)} tools available")
        return True


def parse_json_arguments(text: str) -> dict[str, Any]:
    """Parse tool arguments given on the command line as a JSON object."""
    if not text.strip():
        return {}
    try:
        arguments = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"arguments are not valid JSON: {e.msg}") from e
    if not isinstance(arguments, dict):
        raise ValueError("arguments must be a JSON object")
    return arguments


def render_tool_response(
    tool_name: str,
    arguments: dict[str, Any],
    response: McpResponse,
    context: CommandContext,
) -> None:
    """Print a tools/call reply, bounded by the configured token budget."""
    tool_response = ToolResponse.from_call_result(
        tool_name,
        arguments,
        response,
        image_responses=context.config["image_responses"],
        max_tokens=context.config["max_response_tokens"],
    )
    result = tool_response.serialize()

    style = "red" if result.isError else None
    for item in result.content:
        if item.type == "text":
            context.console.print(item.text, style=style, markup=False, highlight=False)
        elif item.type == "image":
            size = len(item.data) * 3 // 4
            context.console.print(f"[image: {item.mimeType}, ~{size} bytes]", markup=False)


# =============================================================================
# LOCAL COMMANDS
# =============================================================================


def _echo(args: list[str], context: CommandContext) -> None:
    context.console.print(" ".join(args), markup=False, highlight=False)


def _pwd(args: list[str], context: CommandContext) -> None:
    context.console.print(os.getcwd(), markup=False)


def _cd(args: list[str], context: CommandContext) -> bool:
    target = args[0] if args else str(Path.home())
    try:
        os.chdir(target)
    except OSError as e:
        context.console.print(f"Error: {e}", markup=False)
        return False
    context.console.print(f"Changed to: {os.getcwd()}", markup=False)
    return True


def _ls(args: list[str], context: CommandContext) -> bool:
    target = Path(args[0] if args else ".")
    try:
        entries = sorted(target.iterdir(), key=lambda p: p.name)
    except OSError as e:
        context.console.print(f"Error: {e}", markup=False)
        return False
    for entry in entries:
        kind = "[D]" if entry.is_dir() else "[F]"
        context.console.print(f"  {kind} {entry.name}", markup=False)
    return True


def _date(args: list[str], context: CommandContext) -> None:
    context.console.print(datetime.datetime.now().astimezone().strftime("%a %b %d %Y %H:%M:%S %Z"))


def default_commands() -> list[Command]:
    """Commands available in every shell besides the built-ins."""
    return [
        SimpleCommand("echo", "Echo arguments", _echo),
        SimpleCommand("pwd", "Print working directory", _pwd),
        SimpleCommand("cd", "Change directory", _cd),
        SimpleCommand("ls", "List files", _ls),
        SimpleCommand("date", "Show current date and time", _date),
        ListToolsCommand(),
        ToolCallCommand(
            "browser-navigate",
            "Navigate the browser to a URL: browser-navigate [url]",
            "browser_navigate",
            aliases=("bn",),
            build_arguments=lambda args: {"url": args[0] if args else "http://localhost:3000"},
        ),
        ToolCallCommand(
            "browser-snapshot",
            "Capture an accessibility snapshot of the current page",
            "browser_snapshot",
            aliases=("bs",),
        ),
        ToolCallCommand(
            "enable-debug-mode",
            "Enable debug mode on the PDF engine debugging interface",
            "enable_debug_mode",
            aliases=("ed", "edm"),
        ),
        CallCommand(),
    ]
