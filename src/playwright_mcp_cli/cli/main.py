"""
Command line entry point

Without a subcommand, starts the interactive shell. `list-tools` and `call`
run a single request against a fresh connection and exit non-zero when the
connection fails.
"""

import asyncio
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from .. import __version__
from ..connection import ConnectionConfig, McpConnection, load_connection_config
from ..utils.logging_config import DEFAULT_LOG_FILE, get_logger, setup_file_logging
from .commands import CallCommand, Command, CommandContext, ListToolsCommand
from .shell import DEFAULT_HISTORY_FILE, InteractiveShell

logger = get_logger(__name__)

app = typer.Typer(
    name="playwright-mcp-cli",
    help="Interactive shell for the Playwright MCP server",
    add_completion=False,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"playwright-mcp-cli {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_file: Path = typer.Option(Path(DEFAULT_LOG_FILE), "--log-file", help="Log file path"),
    timeout: float | None = typer.Option(
        None, "--timeout", min=0.1, help="Per-request timeout in seconds"
    ),
    history_file: Path = typer.Option(
        DEFAULT_HISTORY_FILE, "--history-file", help="Shell history file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol traffic"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Start the interactive shell (default) or run a one-shot subcommand."""
    setup_file_logging(log_file=log_file, level=logging.DEBUG if verbose else logging.INFO)
    logger.info(f"Python interpreter: {sys.executable}")

    try:
        config = load_connection_config()
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=2) from e

    if timeout is not None:
        config["request_timeout"] = timeout
    ctx.obj = config

    if ctx.invoked_subcommand is None:
        asyncio.run(_run_shell(config, history_file))


@app.command("list-tools")
def list_tools(ctx: typer.Context) -> None:
    """List the tools offered by the server."""
    _run_once(ctx.obj, ListToolsCommand(), [])


@app.command("call")
def call(
    ctx: typer.Context,
    tool: str = typer.Argument(..., help="Tool name, e.g. browser_navigate"),
    arguments: str = typer.Argument("{}", help="Tool arguments as a JSON object"),
) -> None:
    """Call one tool and print its response."""
    _run_once(ctx.obj, CallCommand(), [tool, arguments])


async def _run_shell(config: ConnectionConfig, history_file: Path) -> None:
    connection = McpConnection(config)
    shell = InteractiveShell(connection, config, console=console, history_file=history_file)
    await shell.run()


async def _execute(config: ConnectionConfig, command: Command, args: list[str]) -> bool | None:
    async with McpConnection(config) as connection:
        context = CommandContext(connection=connection, console=console, config=config)
        return await command.execute(args, context)


def _run_once(config: ConnectionConfig, command: Command, args: list[str]) -> None:
    if asyncio.run(_execute(config, command, args)) is False:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
