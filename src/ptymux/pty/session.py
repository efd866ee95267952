"""Terminal session — one shell process attached to one PTY pair."""

from __future__ import annotations

import enum
import logging
import os
import signal
import subprocess
import threading
from typing import Any, BinaryIO

import psutil

from ptymux.config import MuxConfig, TerminalConfig
from ptymux.errors import InvalidSizeError, SessionCreateError, SessionIOError
from ptymux.pty.backend import open_pty, resolve_shell_command, set_winsize, spawn
from ptymux.pty.buffer import OutputBuffer
from ptymux.pty.guard import GuardedLock

logger = logging.getLogger(__name__)

_U16_MAX = 65535


class SessionStatus(enum.Enum):
    """Lifecycle states for a terminal session."""

    RUNNING = "running"
    KILLED = "killed"  # Killed by terminate() or a stuck reap()
    EXITED = "exited"  # Shell exited on its own


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process group already gone: %d", proc.pid)
    except PermissionError:
        proc.kill()


def _kill_session_members(sid: int) -> int:
    """SIGKILL every process left in session ``sid`` except its leader.

    Job-control shells put background jobs in their own process groups,
    so ``killpg`` on the shell misses them and they keep the PTY slave
    open after the shell is gone.
    """
    killed = 0
    for proc in psutil.process_iter():
        if proc.pid == sid:
            continue
        try:
            if os.getsid(proc.pid) != sid:
                continue
            proc.kill()
            killed += 1
        except (OSError, psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    if killed:
        logger.debug("Killed %d leftover process(es) in session %d", killed, sid)
    return killed


class TerminalSession:
    """A live shell behind a pseudo-terminal.

    Owns:
    - the PTY master fd (resize, reader cloning) under the master lock
    - a buffered writer over a dup of the master fd, under the writer lock
    - the shell process handle, taken exactly once by ``terminate()`` or ``reap()``
    - a bounded ``OutputBuffer`` filled by the session's reader thread

    Use ``TerminalSession.create()`` to build one; the constructor only
    wires up already-allocated resources.
    """

    def __init__(
        self,
        session_id: str,
        config: TerminalConfig,
        master_fd: int,
        writer: BinaryIO,
        child: subprocess.Popen,
        buffer: OutputBuffer,
        kill_timeout: float = 2.0,
    ) -> None:
        self.id = session_id
        self.config = config
        self.buffer = buffer
        self._cols = config.cols
        self._rows = config.rows
        self._kill_timeout = kill_timeout

        self._master_fd = master_fd
        self._master_lock = GuardedLock(f"master:{session_id}")
        self._writer: BinaryIO | None = writer
        self._writer_lock = GuardedLock(f"writer:{session_id}")
        self._child: subprocess.Popen | None = child
        self._child_lock = threading.Lock()
        self._pid = child.pid
        self._status = SessionStatus.RUNNING

    @classmethod
    def create(
        cls,
        session_id: str,
        config: TerminalConfig,
        settings: MuxConfig | None = None,
    ) -> TerminalSession:
        """Allocate a PTY, spawn the shell and return the running session.

        Raises:
            SessionCreateError: If the PTY cannot be allocated or the shell
                cannot be started. Nothing opened before the failure is
                left behind.
        """
        settings = settings or MuxConfig()
        command = resolve_shell_command(settings.shell)

        try:
            master_fd, slave_fd = open_pty(config.rows, config.cols)
        except OSError as e:
            raise SessionCreateError(f"Failed to allocate PTY: {e}") from e

        try:
            try:
                child = spawn(command, slave_fd, config.cwd)
            finally:
                # Parent never keeps the slave end
                os.close(slave_fd)
        except (OSError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise SessionCreateError(
                f"Failed to start shell {command.program!r} in {config.cwd!r}: {e}"
            ) from e

        try:
            writer_fd = os.dup(master_fd)
        except OSError as e:
            _kill_group(child)
            child.wait()
            os.close(master_fd)
            raise SessionCreateError(f"Failed to open PTY writer: {e}") from e

        session = cls(
            session_id=session_id,
            config=config,
            master_fd=master_fd,
            writer=os.fdopen(writer_fd, "wb"),
            child=child,
            buffer=OutputBuffer(settings.buffer.max_bytes),
            kill_timeout=settings.kill_timeout,
        )
        logger.info(
            "Terminal session %s started: pid=%d cmd=%s cwd=%s size=%dx%d",
            session_id,
            child.pid,
            " ".join(command.argv),
            config.cwd,
            config.cols,
            config.rows,
        )
        return session

    def write(self, data: bytes) -> None:
        """Write raw bytes to the shell's terminal input and flush.

        Raises:
            SessionIOError: If the write or flush fails (e.g. shell gone).
        """
        with self._writer_lock:
            if self._writer is None:
                raise SessionIOError(f"Session {self.id} is closed")
            try:
                self._writer.write(data)
                self._writer.flush()
            except OSError as e:
                raise SessionIOError(f"Write to session {self.id} failed: {e}") from e

    def resize(self, cols: int, rows: int) -> None:
        """Set the terminal size in character cells.

        Raises:
            InvalidSizeError: If a dimension is outside 1..65535.
            SessionIOError: If the PTY master is closed or the ioctl fails.
        """
        if not (1 <= cols <= _U16_MAX and 1 <= rows <= _U16_MAX):
            raise InvalidSizeError(f"Invalid terminal size {cols}x{rows}")
        with self._master_lock:
            if self._master_fd < 0:
                raise SessionIOError(f"Session {self.id} is closed")
            try:
                set_winsize(self._master_fd, rows, cols)
            except OSError as e:
                raise SessionIOError(f"Resize of session {self.id} failed: {e}") from e
            self._cols, self._rows = cols, rows
        logger.debug("Session %s resized to %dx%d", self.id, cols, rows)

    def clone_reader(self) -> int:
        """Return a new fd reading from the PTY master. Caller owns it."""
        with self._master_lock:
            if self._master_fd < 0:
                raise SessionIOError(f"Session {self.id} is closed")
            return os.dup(self._master_fd)

    def _take_child(self) -> subprocess.Popen | None:
        with self._child_lock:
            child, self._child = self._child, None
        return child

    def _wait(self, child: subprocess.Popen) -> None:
        try:
            child.wait(timeout=self._kill_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Shell of session %s (pid=%d) not reaped after %.1fs",
                self.id,
                child.pid,
                self._kill_timeout,
            )

    def _kill(self, child: subprocess.Popen) -> None:
        self._status = SessionStatus.KILLED
        try:
            _kill_group(child)
        except OSError as e:
            raise SessionIOError(f"Failed to kill session {self.id}: {e}") from e
        logger.info("Killed terminal session %s (pid=%d)", self.id, child.pid)

    def terminate(self) -> None:
        """Kill the shell, anything left in its session, and reap the shell.

        Background jobs are swept even when the shell has already exited,
        since they may still hold the PTY slave open. Only the first call
        to ``terminate()`` or ``reap()`` does anything.
        """
        child = self._take_child()
        if child is None:
            return

        if child.poll() is None:
            self._kill(child)
        else:
            self._status = SessionStatus.EXITED
            logger.info(
                "Terminal session %s exited (code=%s)", self.id, child.returncode
            )
        _kill_session_members(child.pid)
        self._wait(child)

    def reap(self) -> None:
        """Collect a shell whose terminal stream has ended.

        The shell has usually closed the PTY but may not have exited yet,
        so it gets ``kill_timeout`` seconds before it is killed.
        """
        child = self._take_child()
        if child is None:
            return

        try:
            code = child.wait(timeout=self._kill_timeout)
        except subprocess.TimeoutExpired:
            self._kill(child)
            self._wait(child)
            return
        self._status = SessionStatus.EXITED
        logger.info("Terminal session %s exited (code=%s)", self.id, code)

    def close(self) -> None:
        """Release the writer and master fds. Safe to call more than once."""
        with self._writer_lock:
            writer, self._writer = self._writer, None
        if writer is not None:
            try:
                writer.close()
            except OSError as e:
                logger.debug("Session %s writer close: %s", self.id, e)

        with self._master_lock:
            master_fd, self._master_fd = self._master_fd, -1
        if master_fd >= 0:
            try:
                os.close(master_fd)
            except OSError as e:
                logger.debug("Session %s master close: %s", self.id, e)

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def alive(self) -> bool:
        return self._status == SessionStatus.RUNNING

    def info(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pid": self._pid,
            "cwd": self.config.cwd,
            "cols": self._cols,
            "rows": self._rows,
            "status": self._status.value,
            "buffered_bytes": len(self.buffer),
        }
