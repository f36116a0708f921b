"""
Ordered buffer for outbound payloads awaiting delivery
"""

import itertools
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, List

from core.logging_config import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingMessage:
    """A queued payload and its insertion order"""
    payload: Any
    sequence: int


class PendingMessageQueue:
    """Thread-safe FIFO of outbound payloads.

    Two failure paths put messages back, and they differ on purpose:
    a message that fails during flush() goes back to the front, while a
    direct send that fails is appended at the tail with enqueue().
    """

    def __init__(self):
        self._messages: deque = deque()
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def enqueue(self, payload: Any) -> PendingMessage:
        """Append a payload at the tail"""
        message = PendingMessage(payload, next(self._sequence))
        with self._lock:
            self._messages.append(message)
        return message

    def requeue_front(self, message: PendingMessage):
        """Put a message back at the head"""
        with self._lock:
            self._messages.appendleft(message)

    def flush(self, send_fn: Callable[[Any], None]) -> int:
        """
        Deliver queued payloads in FIFO order

        Stops at the first payload `send_fn` raises for; that payload goes
        back to the front and nothing after it is attempted.

        Returns:
            Number of payloads delivered
        """
        delivered = 0
        while True:
            with self._lock:
                if not self._messages:
                    break
                message = self._messages.popleft()

            try:
                send_fn(message.payload)
            except Exception as e:
                self.requeue_front(message)
                logger.warning(f"Flush stopped at queued message #{message.sequence}: {e}")
                break

            delivered += 1

        if delivered:
            logger.debug(f"Flushed {delivered} queued message(s), {len(self)} remaining")
        return delivered

    def payloads(self) -> List[Any]:
        """Snapshot of queued payloads, head first"""
        with self._lock:
            return [m.payload for m in self._messages]

    def is_empty(self) -> bool:
        with self._lock:
            return not self._messages

    def clear(self):
        """Drop every queued payload"""
        with self._lock:
            self._messages.clear()

    def __len__(self):
        with self._lock:
            return len(self._messages)
