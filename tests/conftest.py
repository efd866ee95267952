"""Shared fixtures: an event-collecting publisher and PTY-backed multiplexers."""

from __future__ import annotations

import os
import shutil
import sys
import threading
from typing import Callable, Iterator

import pytest

from ptymux.config import BufferConfig, MuxConfig, ShellConfig, TerminalConfig
from ptymux.pty.manager import TerminalMultiplexer

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="PTYs need POSIX")
needs_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")

BASH_INTERACTIVE = ["--norc", "--noprofile", "-i"]

WAIT = 10.0


class EventCollector:
    """Publisher that records every event and lets tests wait on them."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self.chunks: list[tuple[str, bytes]] = []
        self.closed: list[str] = []

    def publish(self, session_id: str, chunk: bytes) -> None:
        with self._cond:
            self.chunks.append((session_id, chunk))
            self._cond.notify_all()

    def publish_closed(self, session_id: str) -> None:
        with self._cond:
            self.closed.append(session_id)
            self._cond.notify_all()

    def output_of(self, session_id: str) -> bytes:
        with self._cond:
            return b"".join(c for sid, c in self.chunks if sid == session_id)

    def wait_for(self, predicate: Callable[[], bool], timeout: float = WAIT) -> bool:
        with self._cond:
            return self._cond.wait_for(predicate, timeout)

    def wait_for_output(self, session_id: str, needle: bytes, timeout: float = WAIT) -> bool:
        return self.wait_for(
            lambda: needle in b"".join(c for sid, c in self.chunks if sid == session_id),
            timeout,
        )

    def wait_for_closed(self, session_id: str, timeout: float = WAIT) -> bool:
        return self.wait_for(lambda: session_id in self.closed, timeout)


def shell_config(program: str = "/bin/sh", args: list[str] | None = None, **kwargs) -> MuxConfig:
    return MuxConfig(
        shell=ShellConfig(program=program, args=args if args is not None else []),
        **kwargs,
    )


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()


@pytest.fixture
def terminal(tmp_path) -> TerminalConfig:
    return TerminalConfig(cwd=str(tmp_path), cols=80, rows=24)


@pytest.fixture
def make_mux(collector: EventCollector) -> Iterator[Callable[..., TerminalMultiplexer]]:
    """Factory for multiplexers; every one built is cleaned up after the test."""
    built: list[TerminalMultiplexer] = []

    def factory(
        program: str = "/bin/sh",
        args: list[str] | None = None,
        max_bytes: int | None = None,
    ) -> TerminalMultiplexer:
        kwargs = {}
        if max_bytes is not None:
            kwargs["buffer"] = BufferConfig(max_bytes=max_bytes)
        mux = TerminalMultiplexer(collector, shell_config(program, args, **kwargs))
        built.append(mux)
        return mux

    yield factory
    for mux in built:
        mux.cleanup()


@pytest.fixture
def sh_mux(make_mux) -> TerminalMultiplexer:
    """Multiplexer running plain ``/bin/sh`` sessions."""
    return make_mux()


@pytest.fixture
def cat_mux(make_mux) -> TerminalMultiplexer:
    """Multiplexer whose "shell" is ``cat``: silent until written to."""
    return make_mux(program="cat")


def open_fd_count() -> int | None:
    for path in ("/proc/self/fd", "/dev/fd"):
        if os.path.isdir(path):
            return len(os.listdir(path))
    return None
