"""Wire protocol — decouples terminal sessions from whoever renders them.

Reader threads publish output chunks and closed notifications to an
``EventPublisher``. ``Wire`` is the bundled implementation: it fans
events out to ``asyncio.Queue`` subscribers, so a UI bridge, a CLI pipe
and tests can all consume the same stream.
"""

from __future__ import annotations

import asyncio
import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

from ptymux.codec import encode_payload


class EventType(enum.Enum):
    TERMINAL_OUTPUT = "terminal-output"
    TERMINAL_CLOSED = "terminal-closed"


@dataclass
class WireEvent:
    """An event on the wire, addressed to one session."""

    type: EventType
    session_id: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Event channel name, e.g. ``terminal-output-s1``."""
        return f"{self.type.value}-{self.session_id}"

    @property
    def payload(self) -> str | None:
        """Base64 output chunk (output events only)."""
        return self.data.get("payload")


class EventPublisher(Protocol):
    """Sink for reader-thread events. Called from reader threads."""

    def publish(self, session_id: str, chunk: bytes) -> None: ...

    def publish_closed(self, session_id: str) -> None: ...


class Wire:
    """Thread-safe broadcast bus: reader threads -> UI subscribers.

    Without an attached loop, events are put on subscriber queues directly
    (fine for single-threaded use and tests). Call ``attach_loop()`` from
    the asyncio thread before sessions start so deliveries from reader
    threads are marshalled with ``call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[str | None, asyncio.Queue[WireEvent | None]]] = []
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed: bool = False

    def attach_loop(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Attach the event loop that owns the subscriber queues."""
        self._loop = loop or asyncio.get_running_loop()

    def send(self, event: WireEvent) -> None:
        """Send an event to every matching subscriber.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._deliver, event)
        else:
            self._deliver(event)

    def _deliver(self, event: WireEvent) -> None:
        with self._lock:
            targets = [
                q for sid, q in self._subscribers if sid is None or sid == event.session_id
            ]
        for q in targets:
            q.put_nowait(event)

    def publish(self, session_id: str, chunk: bytes) -> None:
        self.send(
            WireEvent(
                type=EventType.TERMINAL_OUTPUT,
                session_id=session_id,
                data={"payload": encode_payload(chunk)},
            )
        )

    def publish_closed(self, session_id: str) -> None:
        self.send(WireEvent(type=EventType.TERMINAL_CLOSED, session_id=session_id))

    def subscribe(self, session_id: str | None = None) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events, optionally only those of one session."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        with self._lock:
            self._subscribers.append((session_id, q))
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        with self._lock:
            self._subscribers = [(sid, sq) for sid, sq in self._subscribers if sq is not q]

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        self._closed = True
        with self._lock:
            queues = [q for _, q in self._subscribers]
        for q in queues:
            q.put_nowait(None)
