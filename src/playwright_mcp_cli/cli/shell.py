"""
Interactive shell

A small REPL over the command registry. The shell owns the MCP connection
for its whole run and closes it on exit; commands get it through their
CommandContext.
"""

from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console

from ..connection import ConnectionConfig, McpConnection
from ..utils.logging_config import get_logger
from .commands import CommandContext, CommandRegistry, SimpleCommand, default_commands

logger = get_logger(__name__)

DEFAULT_HISTORY_FILE = Path.home() / ".shell_history"

EDITING_HELP = """
Command line editing:
  ↑/↓       - Navigate history
  Ctrl+A    - Move to start of line
  Ctrl+E    - Move to end of line
  Ctrl+K    - Delete to end of line
  Ctrl+U    - Delete to start of line
  Tab       - Auto-complete (if available)
"""


class InteractiveShell:
    """Line-oriented shell with persistent history."""

    def __init__(
        self,
        connection: McpConnection,
        config: ConnectionConfig,
        console: Console | None = None,
        history_file: str | Path = DEFAULT_HISTORY_FILE,
        prompt: str = "> ",
    ) -> None:
        self.console = console or Console()
        self.connection = connection
        self.context = CommandContext(connection=connection, console=self.console, config=config)
        self.history_file = Path(history_file)
        self.prompt = prompt
        self.registry = CommandRegistry()
        self._closing = False

        self._register_builtin_commands()
        for command in default_commands():
            self.registry.register(command)

    @property
    def closing(self) -> bool:
        return self._closing

    async def run(self) -> None:
        """Read and execute commands until exit, EOF or Ctrl+D."""
        self._show_welcome()
        session: PromptSession = PromptSession(history=FileHistory(str(self.history_file)))

        try:
            while not self._closing:
                try:
                    line = await session.prompt_async(self.prompt)
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
                await self.handle_command(line)
        finally:
            self.console.print("Goodbye!")
            await self.connection.close()

    async def handle_command(self, line: str) -> bool | None:
        """
        Execute one input line.

        Returns:
            The command's result, or False for unknown or failed commands
        """
        parts = line.strip().split()
        if not parts:
            return None

        name, args = parts[0].lower(), parts[1:]
        command = self.registry.get(name)
        if command is None:
            self.console.print(
                f"Unknown command: {name}. Type 'help' for available commands.", markup=False
            )
            return False

        try:
            return await command.execute(args, self.context)
        except Exception as e:
            logger.exception(f"Command '{name}' raised")
            self.console.print(f"Error executing command '{name}': {e}", markup=False)
            return False

    def history(self) -> list[str]:
        """Previously entered commands, oldest first."""
        if not self.history_file.exists():
            return []
        history = FileHistory(str(self.history_file))
        return list(reversed(list(history.load_history_strings())))

    def _register_builtin_commands(self) -> None:
        self.registry.register(SimpleCommand("help", "Show available commands", self._show_help))
        self.registry.register(SimpleCommand("clear", "Clear the screen", self._clear))
        self.registry.register(SimpleCommand("history", "Show command history", self._show_history))
        self.registry.register(
            SimpleCommand("exit", "Exit the shell", self._exit, aliases=("quit",))
        )

    def _show_welcome(self) -> None:
        self.console.print("Interactive Shell")
        self.console.print('Type "help" for available commands\n')

    def _show_help(self, args: list[str], context: CommandContext) -> None:
        self.console.print("\nAvailable commands:")
        for command in self.registry.all():
            aliases = f" ({', '.join(command.aliases)})" if command.aliases else ""
            self.console.print(
                f"  {command.name:<10} - {command.description}{aliases}", markup=False
            )
        self.console.print(EDITING_HELP, markup=False)

    def _clear(self, args: list[str], context: CommandContext) -> None:
        self.console.clear()

    def _show_history(self, args: list[str], context: CommandContext) -> None:
        entries = self.history()
        if not entries:
            self.console.print("No command history")
            return

        self.console.print("Command history:")
        for index, entry in enumerate(entries, start=1):
            self.console.print(f"  {index}  {entry}", markup=False)

    def _exit(self, args: list[str], context: CommandContext) -> None:
        self._closing = True
