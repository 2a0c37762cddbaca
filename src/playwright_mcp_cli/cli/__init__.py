"""Interactive shell and command line entry point."""

from .commands import (
    CallCommand,
    Command,
    CommandContext,
    CommandRegistry,
    ListToolsCommand,
    McpCommandBase,
    SimpleCommand,
    ToolCallCommand,
    default_commands,
)
from .shell import InteractiveShell

__all__ = [
    "CallCommand",
    "Command",
    "CommandContext",
    "CommandRegistry",
    "ListToolsCommand",
    "McpCommandBase",
    "SimpleCommand",
    "ToolCallCommand",
    "default_commands",
    "InteractiveShell",
]
