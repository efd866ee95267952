"""Output reader — one background thread per session draining the PTY."""

from __future__ import annotations

import errno
import logging
import os
import threading

from ptymux.config import READ_CHUNK_SIZE
from ptymux.errors import MuxError
from ptymux.pty.registry import SessionRegistry
from ptymux.pty.session import TerminalSession
from ptymux.session.wire import EventPublisher

logger = logging.getLogger(__name__)


class OutputReader:
    """Drains a session's PTY master until end-of-stream.

    Each chunk is appended to the session's history buffer and then
    published, in read order. When the stream ends (EOF, EIO once the
    shell is gone, or any other read error) the reader always:

    1. drops the session from the registry if it is still registered,
    2. publishes exactly one closed notification,
    3. reaps the shell and releases the session's fds.

    There is no stop signal: killing the shell ends the stream.
    """

    def __init__(
        self,
        session: TerminalSession,
        registry: SessionRegistry,
        publisher: EventPublisher,
        chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.session = session
        self._registry = registry
        self._publisher = publisher
        self._chunk_size = chunk_size
        self._reader_fd = session.clone_reader()
        self._thread = threading.Thread(
            target=self.run,
            name=f"ptymux-reader-{session.id}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the reader to finish. Returns True if it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def run(self) -> None:
        session_id = self.session.id
        try:
            self._read_loop()
        finally:
            os.close(self._reader_fd)
            self._finish()
            logger.info("Reader for session %s finished", session_id)

    def _read_loop(self) -> None:
        session = self.session
        while True:
            try:
                data = os.read(self._reader_fd, self._chunk_size)
            except OSError as e:
                if e.errno == errno.EIO:
                    # Linux reports a hung-up slave as EIO rather than EOF
                    logger.debug("PTY of session %s hung up", session.id)
                else:
                    logger.warning("Read from session %s failed: %s", session.id, e)
                return

            if not data:
                return

            try:
                session.buffer.append(data)
            except MuxError as e:
                logger.error("Buffer of session %s unusable: %s", session.id, e)
                return
            try:
                self._publisher.publish(session.id, data)
            except Exception:
                logger.exception("Failed to publish output of session %s", session.id)

    def _finish(self) -> None:
        session = self.session
        try:
            self._registry.discard(session)
        except MuxError:
            logger.exception("Failed to unregister session %s", session.id)

        try:
            self._publisher.publish_closed(session.id)
        except Exception:
            logger.exception("Failed to publish close of session %s", session.id)

        try:
            session.reap()
        except MuxError as e:
            logger.warning("Reap of session %s failed: %s", session.id, e)
        session.close()
