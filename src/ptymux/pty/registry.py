"""Session registry — id -> live terminal session, under one lock."""

from __future__ import annotations

import logging

from ptymux.pty.guard import GuardedLock
from ptymux.pty.session import TerminalSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Process-wide map of live sessions.

    Every lookup and mutation holds the lock only for the dict operation
    itself; no PTY I/O ever happens under it.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, TerminalSession] = {}
        self._lock = GuardedLock("registry")

    def insert(self, session: TerminalSession) -> TerminalSession | None:
        """Register ``session`` under its id, returning any entry it replaced."""
        with self._lock:
            previous = self._sessions.get(session.id)
            self._sessions[session.id] = session
        if previous is not None:
            logger.warning("Session %s already registered, replacing", session.id)
        return previous

    def get(self, session_id: str) -> TerminalSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> TerminalSession | None:
        """Remove and return the entry for ``session_id``. Absent ids are fine."""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def discard(self, session: TerminalSession) -> bool:
        """Remove ``session`` only if its id still maps to this very object.

        A reader thread finishing after its id was closed and re-created
        must not evict the replacement.
        """
        with self._lock:
            if self._sessions.get(session.id) is session:
                del self._sessions[session.id]
                return True
            return False

    def snapshot(self) -> list[TerminalSession]:
        with self._lock:
            return list(self._sessions.values())

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
