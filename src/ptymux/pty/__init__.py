"""PTY session multiplexing — concurrent pseudo-terminal shell sessions.

Each session runs a shell behind its own PTY pair, with a dedicated
reader thread, bounded output history and idempotent teardown.
"""

from ptymux.pty.buffer import OutputBuffer
from ptymux.pty.manager import TerminalMultiplexer
from ptymux.pty.registry import SessionRegistry
from ptymux.pty.session import SessionStatus, TerminalSession

__all__ = [
    "OutputBuffer",
    "SessionRegistry",
    "SessionStatus",
    "TerminalMultiplexer",
    "TerminalSession",
]
