"""Command system — named, validated operations over the multiplexer."""

from ptymux.command.base import BaseCommand, CommandParams
from ptymux.command.registry import CommandRegistry, create_terminal_commands

__all__ = [
    "BaseCommand",
    "CommandParams",
    "CommandRegistry",
    "create_terminal_commands",
]
