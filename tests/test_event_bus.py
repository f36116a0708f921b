import pytest

from events import EventBus, EventTypes


@pytest.fixture
def bus():
    bus = EventBus(max_history=5)
    yield bus
    bus.shutdown()


def test_listeners_receive_matching_events(bus):
    opened, everything = [], []
    bus.on(EventTypes.CONNECTION_OPEN, opened.append)
    bus.on_all(everything.append)

    bus.emit(EventTypes.CONNECTION_OPEN, {"url": "ws://localhost"}, source="test")
    bus.emit(EventTypes.CONNECTION_CLOSED, {})

    assert bus.wait_until_idle()
    assert [e.data for e in opened] == [{"url": "ws://localhost"}]
    assert opened[0].source == "test"
    assert [e.type for e in everything] == [EventTypes.CONNECTION_OPEN, EventTypes.CONNECTION_CLOSED]


def test_failing_listener_does_not_block_others(bus):
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.on(EventTypes.CONNECTION_ERROR, broken)
    bus.on(EventTypes.CONNECTION_ERROR, seen.append)

    bus.emit(EventTypes.CONNECTION_ERROR, {"type": "timeout"})

    assert bus.wait_until_idle()
    assert len(seen) == 1


def test_off_removes_listener(bus):
    seen = []
    bus.on(EventTypes.CONNECTION_MESSAGE, seen.append)
    bus.off(EventTypes.CONNECTION_MESSAGE, seen.append)

    bus.emit(EventTypes.CONNECTION_MESSAGE, {"payload": "x"})

    assert bus.wait_until_idle()
    assert seen == []


def test_history_is_bounded_and_counted(bus):
    for i in range(8):
        bus.emit(EventTypes.CONNECTION_STATE_CHANGE, {"n": i})
    assert bus.wait_until_idle()

    recent = bus.get_recent_events(count=10)
    stats = bus.get_stats()

    assert [e["data"]["n"] for e in recent] == [3, 4, 5, 6, 7]
    assert stats["total_events"] == 8
    assert stats["history_size"] == 5


def test_emit_after_shutdown_is_ignored(bus):
    bus.shutdown()
    bus.emit(EventTypes.CONNECTION_OPEN, {})

    assert bus.event_queue.qsize() == 0
