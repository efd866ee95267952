"""Exception hierarchy for the terminal multiplexer."""

from __future__ import annotations


class MuxError(Exception):
    """Base class for all ptymux errors."""


class SessionCreateError(MuxError):
    """PTY allocation or shell spawn failed; nothing was left behind."""


class SessionNotFoundError(MuxError):
    """An operation referenced a session id that is not registered."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionIOError(MuxError):
    """A write, flush or resize failed against a session's PTY."""


class LockPoisonedError(MuxError):
    """A guarded lock was released by a holder that raised unexpectedly."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Lock poisoned: {name}")
        self.name = name


class PayloadDecodeError(MuxError):
    """A transport payload was not valid base64."""


class CommandError(MuxError):
    """Unknown command or invalid command arguments."""


class InvalidSizeError(MuxError, ValueError):
    """A terminal dimension outside 1..65535 cells."""
