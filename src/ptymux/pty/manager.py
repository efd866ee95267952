"""Terminal multiplexer — create, drive and tear down many PTY sessions."""

from __future__ import annotations

import logging
import threading
from typing import Any

from ptymux.config import MuxConfig, TerminalConfig
from ptymux.errors import MuxError, SessionCreateError, SessionNotFoundError
from ptymux.pty.reader import OutputReader
from ptymux.pty.registry import SessionRegistry
from ptymux.pty.session import TerminalSession
from ptymux.session.wire import EventPublisher

logger = logging.getLogger(__name__)


class TerminalMultiplexer:
    """Owns every terminal session of the host application.

    Built once by the composition root and shared with all command
    handlers. The manager ensures:
    - Sessions are tracked by caller-supplied id and looked up per call
    - Each session gets exactly one reader thread publishing its output
    - Closing is idempotent and races safely with the shell exiting
    - All sessions are killed on cleanup (no orphan shells)
    """

    def __init__(
        self,
        publisher: EventPublisher,
        config: MuxConfig | None = None,
        registry: SessionRegistry | None = None,
    ) -> None:
        self.config = config or MuxConfig()
        self.registry = registry or SessionRegistry()
        self._publisher = publisher
        self._readers: list[OutputReader] = []
        self._readers_lock = threading.Lock()

    def create_session(self, session_id: str, config: TerminalConfig) -> str:
        """Start a shell for ``session_id`` and begin streaming its output.

        Re-using an id replaces the previous entry; a replaced session that
        is still running is terminated.

        Raises:
            SessionCreateError: If the PTY or shell could not be set up.
        """
        session = TerminalSession.create(session_id, config, self.config)
        try:
            reader = OutputReader(
                session,
                self.registry,
                self._publisher,
                chunk_size=self.config.buffer.read_chunk_size,
            )
        except (OSError, MuxError) as e:
            session.terminate()
            session.close()
            raise SessionCreateError(f"Failed to start reader for {session_id}: {e}") from e

        # Register before the reader runs so an instant exit can't leave a stale entry
        previous = self.registry.insert(session)
        reader.start()
        with self._readers_lock:
            self._readers = [r for r in self._readers if r.running]
            self._readers.append(reader)

        if previous is not None:
            self._terminate(previous)
        return session_id

    def get_session(self, session_id: str) -> TerminalSession:
        """Look up a registered session or raise ``SessionNotFoundError``."""
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def write_to_session(self, session_id: str, data: bytes) -> None:
        """Send raw bytes to the session's shell.

        Raises:
            SessionNotFoundError: If no session has this id.
            SessionIOError: If the write fails.
        """
        self.get_session(session_id).write(data)

    def resize_session(self, session_id: str, cols: int, rows: int) -> None:
        """Resize the session's terminal.

        Raises:
            SessionNotFoundError: If no session has this id.
            InvalidSizeError: If a dimension is outside 1..65535.
            SessionIOError: If the resize fails.
        """
        self.get_session(session_id).resize(cols, rows)

    def close_session(self, session_id: str) -> None:
        """Remove the session and kill its shell. Unknown ids are a no-op.

        Does not wait for the reader; it notices the hang-up on its own.
        """
        session = self.registry.remove(session_id)
        if session is None:
            logger.debug("Close of unknown session %s ignored", session_id)
            return
        self._terminate(session)

    def _terminate(self, session: TerminalSession) -> None:
        try:
            session.terminate()
        except MuxError as e:
            logger.warning("Error terminating session %s: %s", session.id, e)

    def get_buffer(self, session_id: str) -> bytes | None:
        """Return the session's output history.

        ``None`` both for an unknown id and for a session that has not
        produced output yet.
        """
        session = self.registry.get(session_id)
        if session is None:
            return None
        data = session.buffer.snapshot()
        return data or None

    def ping(self, session_id: str) -> bool:
        """Whether ``session_id`` is still registered."""
        return session_id in self.registry

    def list_sessions(self) -> list[dict[str, Any]]:
        """Describe all registered sessions."""
        return [s.info() for s in self.registry.snapshot()]

    def cleanup(self, timeout: float | None = 5.0) -> None:
        """Close every session and wait for their readers. Called on shutdown."""
        for session_id in self.registry.ids():
            self.close_session(session_id)
        with self._readers_lock:
            readers, self._readers = self._readers, []
        for reader in readers:
            if not reader.join(timeout):
                logger.warning("Reader for session %s still running", reader.session.id)
        logger.info("All terminal sessions cleaned up")

    def __len__(self) -> int:
        return len(self.registry)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.registry
