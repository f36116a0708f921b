"""
Connection state tracker for recording transitions and health statistics
"""

import threading
import time
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List, Union


DISCONNECTED = "disconnected"
ERROR = "error"
UNKNOWN = "unknown"


def _label(state: Union[Enum, str]) -> str:
    return state.value if isinstance(state, Enum) else str(state)


class StateTransitionRecord:
    """Represents a recorded state transition"""
    def __init__(self, from_state: Optional[str], to_state: str, metadata: Optional[Dict[str, Any]] = None):
        self.from_state = from_state
        self.to_state = to_state
        self.metadata = dict(metadata or {})
        self.timestamp = time.time()
        self.datetime = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_state,
            "to": self.to_state,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp,
            "datetime": self.datetime.isoformat()
        }

    def __str__(self):
        return f"{self.from_state or '-'} → {self.to_state}"


class ConnectionStateTracker:
    """Bounded history of connection states plus derived statistics"""

    def __init__(self, max_history: int = 100):
        if max_history <= 0:
            raise ValueError(f"max_history must be positive, got {max_history}")
        self.max_history = max_history
        self._records: deque = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def record_state(self, state: Union[Enum, str], metadata: Optional[Dict[str, Any]] = None) -> StateTransitionRecord:
        """
        Append a record for `state`, evicting the oldest when full

        Args:
            state: ConnectionState or a plain label such as "disconnected"
            metadata: Free-form context stored with the record

        Returns:
            The stored record
        """
        with self._lock:
            previous = self._records[-1].to_state if self._records else None
            record = StateTransitionRecord(previous, _label(state), metadata)
            self._records.append(record)
            return record

    def get_history(self, count: int = 10) -> List[Dict[str, Any]]:
        """Get the most recent `count` records, newest last"""
        if count <= 0:
            return []
        with self._lock:
            recent = list(self._records)[-count:]
        return [r.to_dict() for r in recent]

    def get_statistics(self) -> Dict[str, Any]:
        """Get disconnect and error counts for the recorded history"""
        with self._lock:
            labels = [r.to_state for r in self._records]

        total_events = len(labels)
        disconnections = labels.count(DISCONNECTED)
        errors = labels.count(ERROR)

        return {
            "total_events": total_events,
            "disconnections": disconnections,
            "errors": errors,
            "error_rate": (errors / total_events) if total_events > 0 else 0,
            "last_state": labels[-1] if labels else UNKNOWN
        }

    def reset(self):
        """Clear the recorded history"""
        with self._lock:
            self._records.clear()

    def __len__(self):
        with self._lock:
            return len(self._records)
