"""
Event bus for broadcasting connection lifecycle events to observers
"""

import time
import threading
from typing import Dict, Any, List, Callable
from queue import Queue, Empty
from collections import defaultdict
from datetime import datetime
import uuid

from core.logging_config import get_logger


logger = get_logger(__name__)


class SystemEvent:
    """Represents a system event"""

    def __init__(self, event_type: str, data: Dict[str, Any], source: str = None):
        self.id = str(uuid.uuid4())
        self.type = event_type
        self.data = data
        self.source = source or "system"
        self.timestamp = time.time()
        self.datetime = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
            "datetime": self.datetime
        }


class EventBus:
    """Delivers events to listeners on a background thread"""

    def __init__(self, max_history: int = 1000):
        self.listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.event_queue = Queue()
        self.event_history: List[SystemEvent] = []
        self.max_history = max_history
        self.event_counts = defaultdict(int)
        self._listeners_lock = threading.Lock()
        self._running = True
        self._processor_thread = threading.Thread(target=self._process_events, daemon=True, name="EventBusThread")
        self._processor_thread.start()

    def emit(self, event_type: str, data: Dict[str, Any], source: str = None):
        """Emit an event to the bus"""
        if not self._running:
            return
        self.event_queue.put(SystemEvent(event_type, data, source))

    def on(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Register a listener for specific event type"""
        with self._listeners_lock:
            self.listeners[event_type].append(callback)

    def on_all(self, callback: Callable[[SystemEvent], None]):
        """Register a listener for all events"""
        self.on("*", callback)

    def off(self, event_type: str, callback: Callable[[SystemEvent], None]):
        """Remove a listener"""
        with self._listeners_lock:
            if callback in self.listeners[event_type]:
                self.listeners[event_type].remove(callback)

    def _process_events(self):
        """Process events from the queue"""
        while self._running:
            try:
                event = self.event_queue.get(timeout=0.1)
            except Empty:
                continue

            try:
                self.event_counts[event.type] += 1

                self.event_history.append(event)
                if len(self.event_history) > self.max_history:
                    self.event_history.pop(0)

                with self._listeners_lock:
                    specific = list(self.listeners.get(event.type, []))
                    wildcard = list(self.listeners.get("*", []))

                for listener in specific + wildcard:
                    try:
                        listener(event)
                    except Exception as e:
                        logger.error(f"Error in event listener for {event.type}: {e}", exc_info=True)
            finally:
                self.event_queue.task_done()

    def wait_until_idle(self, timeout: float = 2.0) -> bool:
        """Block until every queued event has been delivered"""
        deadline = time.time() + timeout
        while self.event_queue.unfinished_tasks:
            if time.time() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get event bus statistics"""
        with self._listeners_lock:
            listener_counts = {
                event_type: len(listeners)
                for event_type, listeners in self.listeners.items()
            }
        return {
            "total_events": sum(self.event_counts.values()),
            "event_counts": dict(self.event_counts),
            "queue_size": self.event_queue.qsize(),
            "history_size": len(self.event_history),
            "listener_counts": listener_counts
        }

    def get_recent_events(self, count: int = 50, event_type: str = None) -> List[Dict[str, Any]]:
        """Get recent events from history"""
        events = self.event_history[-count:]

        if event_type:
            events = [e for e in events if e.type == event_type]

        return [e.to_dict() for e in events]

    def shutdown(self):
        """Shutdown the event bus"""
        self._running = False
        if self._processor_thread.is_alive():
            self._processor_thread.join(timeout=2.0)


class EventTypes:
    # Connection lifecycle events
    CONNECTION_OPEN = "connection.open"
    CONNECTION_DISCONNECT = "connection.disconnect"
    CONNECTION_ERROR = "connection.error"
    CONNECTION_RECONNECTING = "connection.reconnecting"
    CONNECTION_FAILED = "connection.failed"
    CONNECTION_CLOSED = "connection.closed"
    CONNECTION_MESSAGE = "connection.message"
    CONNECTION_STATE_CHANGE = "connection.state_change"
