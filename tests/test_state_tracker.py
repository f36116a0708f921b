import pytest

from core.state_tracker import ConnectionStateTracker
from transport import ConnectionState


def test_history_is_newest_last():
    tracker = ConnectionStateTracker()
    tracker.record_state(ConnectionState.CONNECTING)
    tracker.record_state(ConnectionState.OPEN, {"flushed": 2})
    tracker.record_state("disconnected")

    history = tracker.get_history(2)

    assert [r["to"] for r in history] == ["open", "disconnected"]
    assert history[0]["from"] == "connecting"
    assert history[0]["metadata"] == {"flushed": 2}


def test_first_record_has_no_previous_state():
    tracker = ConnectionStateTracker()
    record = tracker.record_state(ConnectionState.IDLE)

    assert record.from_state is None
    assert record.to_state == "idle"


def test_oldest_records_are_evicted():
    tracker = ConnectionStateTracker(max_history=3)
    for label in ["a", "b", "c", "d", "e"]:
        tracker.record_state(label)

    assert len(tracker) == 3
    assert [r["to"] for r in tracker.get_history(10)] == ["c", "d", "e"]


def test_statistics_when_empty():
    stats = ConnectionStateTracker().get_statistics()

    assert stats == {
        "total_events": 0,
        "disconnections": 0,
        "errors": 0,
        "error_rate": 0,
        "last_state": "unknown",
    }


def test_statistics_count_disconnects_and_errors():
    tracker = ConnectionStateTracker()
    for label in [ConnectionState.OPEN, "disconnected", "error", ConnectionState.RECONNECTING]:
        tracker.record_state(label)

    stats = tracker.get_statistics()

    assert stats["total_events"] == 4
    assert stats["disconnections"] == 1
    assert stats["errors"] == 1
    assert stats["error_rate"] == pytest.approx(0.25)
    assert stats["last_state"] == "reconnecting"


def test_reset_clears_history():
    tracker = ConnectionStateTracker()
    tracker.record_state("error")

    tracker.reset()

    assert tracker.get_history() == []
    assert tracker.get_statistics()["last_state"] == "unknown"


def test_non_positive_count_returns_nothing():
    tracker = ConnectionStateTracker()
    tracker.record_state("open")

    assert tracker.get_history(0) == []


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ConnectionStateTracker(max_history=0)
