"""Tests for ptymux.pty.guard.GuardedLock."""

from __future__ import annotations

import pytest

from ptymux.errors import LockPoisonedError, SessionIOError
from ptymux.pty.guard import GuardedLock


class TestGuardedLock:
    def test_plain_use(self) -> None:
        lock = GuardedLock("test")
        with lock:
            pass
        with lock:
            pass
        assert not lock.poisoned

    def test_os_error_does_not_poison(self) -> None:
        lock = GuardedLock("test")
        with pytest.raises(OSError):
            with lock:
                raise OSError("EIO")
        assert not lock.poisoned
        with lock:
            pass

    def test_mux_error_does_not_poison(self) -> None:
        lock = GuardedLock("test")
        with pytest.raises(SessionIOError):
            with lock:
                raise SessionIOError("closed")
        assert not lock.poisoned

    def test_unexpected_error_poisons(self) -> None:
        lock = GuardedLock("writer:s1")
        with pytest.raises(RuntimeError):
            with lock:
                raise RuntimeError("boom")
        assert lock.poisoned
        with pytest.raises(LockPoisonedError) as exc_info:
            with lock:
                pass
        assert exc_info.value.name == "writer:s1"

    def test_poisoned_lock_is_released(self) -> None:
        lock = GuardedLock("test")
        with pytest.raises(KeyError):
            with lock:
                raise KeyError("x")
        for _ in range(3):
            with pytest.raises(LockPoisonedError):
                with lock:
                    pass
