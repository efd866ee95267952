"""Tests for ptymux.session.wire (Wire, WireEvent, EventType)."""

from __future__ import annotations

import asyncio
import base64
import threading

from ptymux.session.wire import EventType, Wire, WireEvent


# ---------------------------------------------------------------------------
# EventType / WireEvent
# ---------------------------------------------------------------------------


class TestEventType:
    def test_all_variants_exist(self) -> None:
        assert {e.name for e in EventType} == {"TERMINAL_OUTPUT", "TERMINAL_CLOSED"}

    def test_values(self) -> None:
        assert EventType.TERMINAL_OUTPUT.value == "terminal-output"
        assert EventType.TERMINAL_CLOSED.value == "terminal-closed"


class TestWireEvent:
    def test_defaults(self) -> None:
        event = WireEvent(type=EventType.TERMINAL_CLOSED, session_id="s1")
        assert event.data == {}
        assert event.payload is None

    def test_name_is_addressed_by_session(self) -> None:
        assert WireEvent(EventType.TERMINAL_OUTPUT, "abc").name == "terminal-output-abc"
        assert WireEvent(EventType.TERMINAL_CLOSED, "s1").name == "terminal-closed-s1"


# ---------------------------------------------------------------------------
# Wire: publish/subscribe
# ---------------------------------------------------------------------------


class TestWire:
    def test_publish_encodes_base64(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.publish("s1", b"\x1b[1mhi\xff")
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.TERMINAL_OUTPUT
        assert event.session_id == "s1"
        assert base64.b64decode(event.payload) == b"\x1b[1mhi\xff"

    def test_publish_closed(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.publish_closed("s1")
        event = q.get_nowait()
        assert event is not None
        assert event.name == "terminal-closed-s1"

    def test_send_to_multiple_subscribers(self) -> None:
        wire = Wire()
        q1 = wire.subscribe()
        q2 = wire.subscribe()
        wire.publish("s1", b"x")
        e1 = q1.get_nowait()
        e2 = q2.get_nowait()
        assert e1 is not None and e2 is not None
        assert e1.type == e2.type == EventType.TERMINAL_OUTPUT

    def test_session_filter(self) -> None:
        wire = Wire()
        qa = wire.subscribe("a")
        qb = wire.subscribe("b")
        wire.publish("a", b"for a")
        event = qa.get_nowait()
        assert event is not None and event.session_id == "a"
        assert qb.empty()

    def test_unsubscribe(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.unsubscribe(q)
        wire.publish("s1", b"x")
        assert q.empty()

    def test_unsubscribe_nonexistent_is_safe(self) -> None:
        wire = Wire()
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        wire.unsubscribe(q)  # Should not raise

    def test_order_preserved(self) -> None:
        wire = Wire()
        q = wire.subscribe("s1")
        for i in range(20):
            wire.publish("s1", str(i).encode())
        got = [base64.b64decode(q.get_nowait().payload) for _ in range(20)]
        assert got == [str(i).encode() for i in range(20)]


# ---------------------------------------------------------------------------
# Wire: closed-state guard
# ---------------------------------------------------------------------------


class TestWireClosedGuard:
    def test_close_sends_none_sentinel(self) -> None:
        wire = Wire()
        q1 = wire.subscribe()
        q2 = wire.subscribe("s1")
        wire.close()
        assert q1.get_nowait() is None
        assert q2.get_nowait() is None

    def test_send_after_close_is_dropped(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        q.get_nowait()  # drain sentinel
        wire.publish("s1", b"too late")
        wire.publish_closed("s1")
        assert q.empty()


# ---------------------------------------------------------------------------
# Wire: delivery from reader threads
# ---------------------------------------------------------------------------


class TestWireThreaded:
    def test_attached_loop_receives_events_from_threads(self) -> None:
        async def scenario() -> list[WireEvent]:
            wire = Wire()
            wire.attach_loop()
            q = wire.subscribe("s1")

            def producer() -> None:
                for i in range(5):
                    wire.publish("s1", f"chunk{i}".encode())
                wire.publish_closed("s1")

            threading.Thread(target=producer).start()
            events = []
            while True:
                event = await asyncio.wait_for(q.get(), timeout=5)
                assert event is not None
                events.append(event)
                if event.type == EventType.TERMINAL_CLOSED:
                    return events

        events = asyncio.run(scenario())
        assert len(events) == 6
        assert [base64.b64decode(e.payload) for e in events[:5]] == [
            f"chunk{i}".encode() for i in range(5)
        ]
