"""Poisonable lock used around every shared PTY resource."""

from __future__ import annotations

import logging
import threading
from types import TracebackType

from ptymux.errors import LockPoisonedError, MuxError

logger = logging.getLogger(__name__)


class GuardedLock:
    """A ``threading.Lock`` that refuses further use after a failed holder.

    I/O failures (``OSError``) and ptymux's own errors are ordinary results
    and leave the lock usable. Any other exception escaping the ``with``
    block means the guarded state may be half-updated, so the lock is
    marked poisoned and every later acquisition raises
    ``LockPoisonedError``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._poisoned = False

    def __enter__(self) -> GuardedLock:
        self._lock.acquire()
        if self._poisoned:
            self._lock.release()
            raise LockPoisonedError(self.name)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and not issubclass(exc_type, (OSError, MuxError)):
            self._poisoned = True
            logger.error("Lock %s poisoned by %s: %s", self.name, exc_type.__name__, exc)
        self._lock.release()

    @property
    def poisoned(self) -> bool:
        return self._poisoned
