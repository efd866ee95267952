"""PTY backend — pseudo-terminal allocation and shell spawning (POSIX)."""

from __future__ import annotations

import fcntl
import logging
import os
import pty
import struct
import subprocess
import sys
import termios
from dataclasses import dataclass, field
from typing import Callable

from ptymux.config import ShellConfig

logger = logging.getLogger(__name__)

# Shells that understand ``-l`` for a login session.
_LOGIN_SHELLS = ("bash", "zsh")

_TERMINAL_ENV = {
    "TERM": "xterm-256color",
    "COLORTERM": "truecolor",
    "LANG": "en_US.UTF-8",
}


@dataclass(frozen=True)
class ShellCommand:
    """A fully resolved shell invocation: executable, arguments, environment."""

    program: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


def _default_shell(fallback: str) -> Callable[[], str]:
    def resolve() -> str:
        return os.environ.get("SHELL") or fallback

    return resolve


# Platform -> resolver for the default interactive shell.
SHELL_STRATEGIES: dict[str, Callable[[], str]] = {
    "darwin": _default_shell("/bin/zsh"),
    "linux": _default_shell("/bin/bash"),
}
_FALLBACK_STRATEGY = _default_shell("/bin/sh")


def resolve_shell_command(
    shell: ShellConfig | None = None, platform: str | None = None
) -> ShellCommand:
    """Resolve the shell for a new session into a plain command descriptor.

    Args:
        shell: Optional override of program, arguments and extra env.
        platform: ``sys.platform`` value to resolve for. Defaults to the
                  running platform.
    """
    shell = shell or ShellConfig()
    platform = platform or sys.platform

    program = shell.program
    if not program:
        program = SHELL_STRATEGIES.get(platform, _FALLBACK_STRATEGY)()

    if shell.args is not None:
        args = list(shell.args)
    elif shell.login and os.path.basename(program) in _LOGIN_SHELLS:
        args = ["-l"]
    else:
        args = []

    env = {**os.environ, **_TERMINAL_ENV, **shell.env}
    return ShellCommand(program=program, args=args, env=env)


def set_winsize(fd: int, rows: int, cols: int) -> None:
    """Apply character-cell dimensions to a PTY. Pixel sizes are left at 0."""
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def get_winsize(fd: int) -> tuple[int, int]:
    """Return ``(rows, cols)`` currently set on a PTY."""
    packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\0" * 8)
    rows, cols, _, _ = struct.unpack("HHHH", packed)
    return rows, cols


def open_pty(rows: int, cols: int) -> tuple[int, int]:
    """Allocate a master/slave PTY pair sized ``rows x cols``.

    Returns:
        ``(master_fd, slave_fd)``. Both are released if sizing fails.
    """
    master_fd, slave_fd = pty.openpty()
    try:
        set_winsize(master_fd, rows, cols)
    except OSError:
        os.close(master_fd)
        os.close(slave_fd)
        raise
    return master_fd, slave_fd


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid(): stdin is already the slave end.
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def spawn(command: ShellCommand, slave_fd: int, cwd: str) -> subprocess.Popen:
    """Spawn ``command`` attached to the PTY slave.

    The child becomes a session leader (so its whole process group can be
    killed at once) with the slave as its controlling terminal, which is
    what makes the kernel deliver SIGWINCH on resize.
    """
    proc = subprocess.Popen(
        command.argv,
        stdin=slave_fd,
        stdout=slave_fd,
        stderr=slave_fd,
        cwd=cwd,
        env=command.env,
        start_new_session=True,
        preexec_fn=_acquire_controlling_tty,
    )
    logger.debug("Spawned %s (pid=%d) in %s", " ".join(command.argv), proc.pid, cwd)
    return proc
