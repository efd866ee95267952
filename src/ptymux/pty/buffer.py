"""Bounded output history for PTY sessions."""

from __future__ import annotations

from ptymux.config import MAX_BUFFER_SIZE
from ptymux.pty.guard import GuardedLock


class OutputBuffer:
    """Thread-safe sliding window over the most recent PTY output bytes.

    Holds at most ``max_bytes`` bytes. Appending evicts the oldest bytes
    first, so the contents are always the tail of everything ever
    appended. A single chunk larger than the cap is trimmed to its own
    last ``max_bytes`` bytes before it touches the history.

    Used to replay history to a client that attaches after output has
    already been streamed.
    """

    def __init__(self, max_bytes: int = MAX_BUFFER_SIZE) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self._max_bytes = max_bytes
        self._data = bytearray()
        self._total_bytes: int = 0  # Total bytes ever appended
        self._lock = GuardedLock("buffer")

    def append(self, data: bytes) -> None:
        """Append a chunk, evicting from the front to stay within the cap."""
        if not data:
            return
        size = len(data)
        if size > self._max_bytes:
            data = data[-self._max_bytes :]
        with self._lock:
            overflow = len(self._data) + len(data) - self._max_bytes
            if overflow > 0:
                del self._data[:overflow]
            self._data += data
            self._total_bytes += size

    def snapshot(self) -> bytes:
        """Return a copy of the current contents."""
        with self._lock:
            return bytes(self._data)

    def read_tail(self, n: int = 1024) -> bytes:
        """Return the last ``n`` bytes."""
        if n <= 0:
            return b""
        with self._lock:
            return bytes(self._data[-n:])

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def total_bytes(self) -> int:
        """Total number of bytes ever appended, including evicted ones."""
        with self._lock:
            return self._total_bytes

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._total_bytes = 0
