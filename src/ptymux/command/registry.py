"""Command registry — register and dispatch terminal commands by name."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ptymux.command.base import BaseCommand
from ptymux.errors import CommandError

if TYPE_CHECKING:
    from ptymux.pty.manager import TerminalMultiplexer

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Registry of invokable commands, keyed by command name."""

    def __init__(self) -> None:
        self._commands: dict[str, BaseCommand] = {}

    def register(self, command: BaseCommand) -> None:
        if command.name in self._commands:
            logger.warning("Command %s already registered, overwriting", command.name)
        self._commands[command.name] = command

    def register_many(self, commands: list[BaseCommand]) -> None:
        for command in commands:
            self.register(command)

    def get(self, name: str) -> BaseCommand | None:
        return self._commands.get(name)

    def names(self) -> list[str]:
        return list(self._commands.keys())

    def describe(self) -> list[dict[str, Any]]:
        return [c.describe() for c in self._commands.values()]

    def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Invoke the command ``name`` with ``arguments``.

        Raises:
            CommandError: For an unknown command or invalid arguments.
            MuxError: Any failure reported by the multiplexer.
        """
        command = self._commands.get(name)
        if command is None:
            raise CommandError(
                f"Unknown command: {name}. Available commands: {', '.join(self.names())}"
            )
        logger.debug("Dispatching %s", name)
        return command(arguments or {})

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands


def create_terminal_commands(mux: TerminalMultiplexer) -> CommandRegistry:
    """Build a registry holding every terminal command bound to ``mux``."""
    from ptymux.command.terminal import (
        CloseTerminalSessionCommand,
        CreateTerminalSessionCommand,
        GetTerminalBufferCommand,
        PingTerminalSessionCommand,
        ResizeTerminalCommand,
        WriteToTerminalCommand,
    )

    registry = CommandRegistry()
    registry.register_many(
        [
            CreateTerminalSessionCommand(mux),
            WriteToTerminalCommand(mux),
            ResizeTerminalCommand(mux),
            CloseTerminalSessionCommand(mux),
            GetTerminalBufferCommand(mux),
            PingTerminalSessionCommand(mux),
        ]
    )
    return registry
