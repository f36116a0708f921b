"""
Resilient WebSocket connection that reconnects with backoff and buffers
outbound payloads while the link is down
"""

import json
import logging
import random
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Tuple

import websocket

from core.config_validator import ConfigValidationError
from core.logging_config import get_logger, log_with_context, log_error_with_context
from core.state_tracker import ConnectionStateTracker, DISCONNECTED, ERROR
from events import EventBus, EventTypes
from .backoff import BackoffScheduler
from .exceptions import (
    TransportError,
    TransportConnectionError,
    ConnectTimeoutError,
    MaxAttemptsExceededError,
    SendFailedError,
    ConnectionClosedError,
    ConnectionStateError,
)
from .message_queue import PendingMessageQueue
from .models import (
    ConnectionCallbacks,
    ConnectionState,
    ConnectionStatus,
    ErrorInfo,
    ReconnectConfig,
    ReconnectInfo,
)
from .urls import is_valid_websocket_url


def create_websocket(url: str, on_open, on_message, on_error, on_close) -> websocket.WebSocketApp:
    """Default socket factory backed by websocket-client"""
    return websocket.WebSocketApp(
        url,
        on_open=on_open,
        on_message=on_message,
        on_error=on_error,
        on_close=on_close
    )


def encode_payload(payload: Any) -> Tuple[Any, int]:
    """Map a payload to (data, opcode): bytes go out binary, everything else as text"""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload), websocket.ABNF.OPCODE_BINARY
    if isinstance(payload, str):
        return payload, websocket.ABNF.OPCODE_TEXT
    return json.dumps(payload), websocket.ABNF.OPCODE_TEXT


class ResilientConnection:
    """Keeps one logical WebSocket connection alive across drops

    Only one socket and at most one reconnect timer exist at a time. Every
    state change happens under one re-entrant lock; user callbacks run after
    the lock is released.
    """

    def __init__(self,
                 url: str,
                 config: Optional[ReconnectConfig] = None,
                 callbacks: Optional[ConnectionCallbacks] = None,
                 event_bus: Optional[EventBus] = None,
                 socket_factory: Optional[Callable[..., Any]] = None,
                 timer_factory: Callable[..., Any] = threading.Timer,
                 rng: Optional[random.Random] = None,
                 tracker_capacity: int = 100):
        """
        Initialize the connection (no socket is opened until connect())

        Args:
            url: ws:// or wss:// target
            config: Reconnect settings, defaults to ReconnectConfig()
            callbacks: Lifecycle listeners, each defaulting to a no-op
            event_bus: Optional bus that also receives lifecycle events
            socket_factory: Builds a socket from (url, on_open, on_message, on_error, on_close)
            timer_factory: threading.Timer compatible factory for backoff and timeouts
            rng: Random source for backoff jitter
            tracker_capacity: Number of state records kept for statistics
        """
        if not is_valid_websocket_url(url):
            raise ConfigValidationError(f"Target URL must be a ws:// or wss:// URL, got {url!r}")

        self.logger = get_logger(__name__)
        self.url = url
        self.config = config or ReconnectConfig()
        self.callbacks = callbacks or ConnectionCallbacks()
        self.event_bus = event_bus

        self._socket_factory = socket_factory or create_websocket
        self._timer_factory = timer_factory

        self.scheduler = BackoffScheduler(self.config, rng)
        self.queue = PendingMessageQueue()
        self.tracker = ConnectionStateTracker(tracker_capacity)

        self._lock = threading.RLock()
        self._state = ConnectionState.IDLE
        self._closed = False
        self._attempt_count = 0

        self._ws = None
        self._ws_thread: Optional[threading.Thread] = None
        self._connect_timer = None
        self._reconnect_timer = None
        # Bumped whenever the reconnect timer is replaced or cancelled
        self._reconnect_generation = 0

        self._waiters: List[Future] = []
        self._pending_events: List[Tuple[Callable, tuple]] = []

        self.messages_sent = 0
        self.messages_received = 0
        self.connected_since: Optional[float] = None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._state is ConnectionState.OPEN

    def connect(self) -> Future:
        """
        Start connecting

        Returns:
            Future resolved when the connection opens, or failed with the
            error or timeout of the attempt in progress

        Raises:
            ConnectionStateError: If the connection is closed or has failed;
                use force_reconnect() instead
        """
        with self._lock:
            if self._state is ConnectionState.OPEN:
                future = Future()
                future.set_result(None)
                return future

            if self._state in (ConnectionState.CLOSING, ConnectionState.CLOSED, ConnectionState.FAILED):
                raise ConnectionStateError(
                    f"Cannot connect from state {self._state.value}; call force_reconnect()",
                    details={"state": self._state.value}
                )

            future = Future()
            self._waiters.append(future)

            if self._state is ConnectionState.IDLE:
                self.logger.info(f"Connecting to {self.url}")
                self._set_state(ConnectionState.CONNECTING, "connect() called")
                self._open_socket()

        self._drain_events()
        return future

    def send(self, payload: Any) -> bool:
        """
        Send a payload, queueing it while the connection is not open

        Args:
            payload: str (text frame), bytes (binary frame) or a JSON-serialisable object

        Returns:
            True if written to the socket now, False if queued

        Raises:
            TypeError: If the payload cannot be encoded
        """
        encode_payload(payload)

        with self._lock:
            if self._state is ConnectionState.OPEN:
                try:
                    self._write(payload)
                    return True
                except SendFailedError as e:
                    message = self.queue.enqueue(payload)
                    log_error_with_context(self.logger, e, "send", level=logging.WARNING,
                                           sequence=message.sequence, queue_length=len(self.queue))
                    return False

            message = self.queue.enqueue(payload)
            self.logger.debug(f"Queued message #{message.sequence} while {self._state.value} "
                              f"({len(self.queue)} pending)")
            return False

    def close(self):
        """Close the connection and stop all automatic reconnection"""
        with self._lock:
            if self._closed and self._state is ConnectionState.CLOSED:
                return

            self._closed = True
            self._cancel_reconnect_timer()
            self._cancel_connect_timer()

            self._set_state(ConnectionState.CLOSING, "close() called")
            self._close_socket(self._detach_socket())
            self.connected_since = None
            self._set_state(ConnectionState.CLOSED, "closed by caller")

            self._emit(EventTypes.CONNECTION_CLOSED, {"url": self.url, "queue_length": len(self.queue)})
            self._reject_waiters(ConnectionClosedError("Connection closed by caller"))
            thread = self._ws_thread
            self._ws_thread = None

        self._drain_events()

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                self.logger.warning("WebSocket thread did not terminate")

        self.logger.info(f"Connection to {self.url} closed")

    def force_reconnect(self) -> Future:
        """
        Drop any live socket and connect again from scratch

        Works from every state, including FAILED and CLOSED. The attempt
        counter is reset and the closed flag cleared.

        Returns:
            Future resolved when the new connection opens
        """
        with self._lock:
            self._cancel_reconnect_timer()
            self._cancel_connect_timer()
            self._close_socket(self._detach_socket())

            self._closed = False
            self._attempt_count = 0
            self.connected_since = None

            future = Future()
            self._waiters.append(future)

            self.logger.info(f"Forcing reconnect to {self.url}")
            self._set_state(ConnectionState.CONNECTING, "force_reconnect() called")
            self._open_socket()

        self._drain_events()
        return future

    def get_status(self) -> ConnectionStatus:
        """Snapshot of the connection; never changes state"""
        with self._lock:
            return ConnectionStatus(
                state=self._state,
                attempt_count=self._attempt_count,
                max_attempts=self.config.max_attempts,
                queue_length=len(self.queue),
                is_closed=self._closed
            )

    def get_history(self, count: int = 10) -> List[Dict[str, Any]]:
        """Recent state records, newest last"""
        return self.tracker.get_history(count)

    def get_statistics(self) -> Dict[str, Any]:
        """Disconnect and error statistics for this connection"""
        return self.tracker.get_statistics()

    def get_stats(self) -> Dict[str, Any]:
        """Status, traffic counters and health statistics in one dictionary"""
        with self._lock:
            stats = self.get_status().to_dict()
            stats.update({
                "url": self.url,
                "messages_sent": self.messages_sent,
                "messages_received": self.messages_received,
            })
            if self.connected_since and self._state is ConnectionState.OPEN:
                stats["connected_seconds"] = time.time() - self.connected_since
        stats["health"] = self.get_statistics()
        return stats

    # ------------------------------------------------------------------
    # Socket lifecycle (lock must be held)
    # ------------------------------------------------------------------

    def _open_socket(self):
        """Create a socket for a new attempt and arm the connect timeout"""
        try:
            ws = self._socket_factory(
                self.url,
                on_open=self._on_socket_open,
                on_message=self._on_socket_message,
                on_error=self._on_socket_error,
                on_close=self._on_socket_close
            )
        except Exception as e:
            self.logger.error(f"Failed to create WebSocket: {e}")
            self._fail_attempt(TransportConnectionError(f"Failed to create WebSocket: {e}"))
            return

        self._ws = ws
        self._arm_connect_timer(ws)

        self._ws_thread = threading.Thread(
            target=self._run_socket, args=(ws,), daemon=True, name="ResilientConnectionWS"
        )
        self._ws_thread.start()

    def _run_socket(self, ws):
        """Run the socket loop, reporting a crash as a socket error"""
        try:
            ws.run_forever()
        except Exception as e:
            self.logger.error(f"WebSocket run_forever failed: {e}", exc_info=True)
            self._on_socket_error(ws, e)

    def _detach_socket(self):
        ws = self._ws
        self._ws = None
        return ws

    def _close_socket(self, ws):
        if ws is None:
            return
        try:
            ws.close()
        except Exception as e:
            self.logger.debug(f"Error closing WebSocket: {e}")

    def _write(self, payload: Any):
        """Write one payload to the live socket"""
        ws = self._ws
        if ws is None:
            raise SendFailedError("No live socket")

        data, opcode = encode_payload(payload)
        try:
            ws.send(data, opcode=opcode)
        except Exception as e:
            raise SendFailedError(f"Failed to write payload: {e}", details={"error": repr(e)}) from e
        self.messages_sent += 1

    # ------------------------------------------------------------------
    # Timers (lock must be held)
    # ------------------------------------------------------------------

    def _arm_connect_timer(self, ws):
        self._cancel_connect_timer()
        timer = self._timer_factory(self.config.connect_timeout, self._on_connect_timeout, args=(ws,))
        timer.daemon = True
        self._connect_timer = timer
        timer.start()

    def _cancel_connect_timer(self):
        if self._connect_timer:
            self._connect_timer.cancel()
            self._connect_timer = None

    def _cancel_reconnect_timer(self):
        self._reconnect_generation += 1
        if self._reconnect_timer:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _schedule_reconnect(self):
        """Arm the backoff timer, or give up once max_attempts is reached"""
        if self._closed:
            self.logger.debug("Connection closed, skipping reconnect")
            return

        self._cancel_reconnect_timer()

        if self._attempt_count >= self.config.max_attempts:
            error = MaxAttemptsExceededError(self.config.max_attempts)
            self.logger.error(str(error))
            self._set_state(ConnectionState.FAILED, "max attempts reached")
            info = ErrorInfo(error.error_type, str(error), self._attempt_count)
            self._queue_event(self.callbacks.on_error, info)
            self._emit(EventTypes.CONNECTION_FAILED, info.to_dict())
            self._reject_waiters(error)
            return

        self._attempt_count += 1
        delay = self.scheduler.next_delay(self._attempt_count)
        info = ReconnectInfo(
            attempt_number=self._attempt_count,
            next_delay_ms=round(delay * 1000),
            max_attempts=self.config.max_attempts
        )

        log_with_context(self.logger, logging.INFO,
                         f"Reconnect {self._attempt_count}/{self.config.max_attempts} in {delay:.2f}s",
                         url=self.url, **info.to_dict())
        self._set_state(ConnectionState.RECONNECTING, "reconnect scheduled", delay=delay)
        self._queue_event(self.callbacks.on_reconnecting, info)
        self._emit(EventTypes.CONNECTION_RECONNECTING, info.to_dict())

        generation = self._reconnect_generation
        timer = self._timer_factory(delay, self._on_reconnect_timer, args=(generation,))
        timer.daemon = True
        self._reconnect_timer = timer
        timer.start()

    # ------------------------------------------------------------------
    # Callbacks from sockets and timers
    # ------------------------------------------------------------------

    def _on_socket_open(self, ws):
        with self._lock:
            if ws is not self._ws or self._closed or self._state is not ConnectionState.CONNECTING:
                self.logger.debug("Ignoring open from a stale socket")
                if ws is not self._ws:
                    self._close_socket(ws)
                return

            self._cancel_connect_timer()
            self._attempt_count = 0
            self.connected_since = time.time()
            self._set_state(ConnectionState.OPEN, "socket opened")

            queued = len(self.queue)
            flushed = self.queue.flush(self._write)
            self.logger.info(f"Connected to {self.url} (flushed {flushed}/{queued} queued)")

            self._resolve_waiters()
            self._queue_event(self.callbacks.on_connect)
            self._emit(EventTypes.CONNECTION_OPEN, {
                "url": self.url,
                "flushed": flushed,
                "queue_length": len(self.queue)
            })

        self._drain_events()

    def _on_socket_message(self, ws, message):
        with self._lock:
            if ws is not self._ws:
                return
            self.messages_received += 1
            self._queue_event(self.callbacks.on_message, message)
            self._emit(EventTypes.CONNECTION_MESSAGE, {
                "size": len(message) if hasattr(message, "__len__") else None
            })

        self._drain_events()

    def _on_socket_error(self, ws, error):
        with self._lock:
            if ws is not self._ws or self._closed:
                return
            if self._state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
                return
            reason = str(error) or type(error).__name__
            self._fail_attempt(TransportConnectionError(reason, details={"error": repr(error)}))

        self._drain_events()

    def _on_socket_close(self, ws, close_status_code=None, close_msg=None):
        with self._lock:
            if ws is not self._ws or self._closed:
                return

            if self._state is ConnectionState.OPEN:
                self.logger.warning(f"WebSocket closed unexpectedly (Code: {close_status_code}, Message: {close_msg})")
                self._fail_attempt(None, close_code=close_status_code)
            elif self._state is ConnectionState.CONNECTING:
                self._fail_attempt(TransportConnectionError(
                    f"Connection closed before open (Code: {close_status_code})",
                    details={"close_code": close_status_code, "close_msg": close_msg}
                ))

        self._drain_events()

    def _on_connect_timeout(self, ws):
        with self._lock:
            if ws is not self._ws or self._closed or self._state is not ConnectionState.CONNECTING:
                return
            self._connect_timer = None
            self.logger.warning(f"No open from {self.url} within {self.config.connect_timeout}s")
            self._fail_attempt(ConnectTimeoutError(self.config.connect_timeout))

        self._drain_events()

    def _on_reconnect_timer(self, generation: int):
        with self._lock:
            if self._closed or generation != self._reconnect_generation:
                return
            if self._state is not ConnectionState.RECONNECTING:
                return
            self._reconnect_timer = None
            self._set_state(ConnectionState.CONNECTING, "backoff timer fired")
            self._open_socket()

        self._drain_events()

    def _fail_attempt(self, error: Optional[TransportError], close_code: Optional[int] = None):
        """Tear down the current socket, report why and schedule the next attempt"""
        was_open = self._state is ConnectionState.OPEN
        self._cancel_connect_timer()
        self._close_socket(self._detach_socket())
        self.connected_since = None

        if was_open:
            self.tracker.record_state(DISCONNECTED, {"close_code": close_code})
            self._queue_event(self.callbacks.on_disconnect)
            self._emit(EventTypes.CONNECTION_DISCONNECT, {"url": self.url, "close_code": close_code})

        if error is not None:
            info = ErrorInfo(error.error_type, str(error), self._attempt_count)
            self.tracker.record_state(ERROR, info.to_dict())
            log_error_with_context(self.logger, error, "connection", level=logging.WARNING,
                                   url=self.url, attempt_number=self._attempt_count)
            self._queue_event(self.callbacks.on_error, info)
            self._emit(EventTypes.CONNECTION_ERROR, info.to_dict())
            self._reject_waiters(error)

        self._schedule_reconnect()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, new_state: ConnectionState, reason: str = "", **metadata):
        old_state = self._state
        self._state = new_state
        self.tracker.record_state(new_state, {
            "from_state": old_state.value,
            "reason": reason,
            "attempt_count": self._attempt_count,
            **metadata
        })
        self.logger.debug(f"State transition: {old_state.value} → {new_state.value} ({reason})")
        self._emit(EventTypes.CONNECTION_STATE_CHANGE, {
            "from_state": old_state.value,
            "to_state": new_state.value,
            "reason": reason
        })

    def _emit(self, event_type: str, data: Dict[str, Any]):
        if self.event_bus is not None:
            self.event_bus.emit(event_type, data, source="ResilientConnection")

    def _queue_event(self, callback: Callable, *args):
        self._pending_events.append((callback, args))

    def _resolve_waiters(self):
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            self._queue_event(_settle, future, None)

    def _reject_waiters(self, error: Exception):
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            self._queue_event(_settle, future, error)

    def _drain_events(self):
        """Run queued callbacks outside the lock"""
        with self._lock:
            events, self._pending_events = self._pending_events, []

        for callback, args in events:
            try:
                callback(*args)
            except Exception as e:
                name = getattr(callback, "__name__", repr(callback))
                self.logger.error(f"Error in connection callback {name}: {e}", exc_info=True)


def _settle(future: Future, error: Optional[Exception]):
    if future.done():
        return
    if error is None:
        future.set_result(None)
    else:
        future.set_exception(error)


def create_connection(url: str, options: Optional[Dict[str, Any]] = None, **kwargs) -> ResilientConnection:
    """
    Build a ResilientConnection from an options dictionary

    Recognised options are maxAttempts, initialDelay, maxDelay,
    backoffMultiplier, connectTimeout, jitterMax (seconds) and the callbacks
    onConnect, onDisconnect, onError, onReconnecting, onMessage. snake_case
    spellings work too. Extra keyword arguments go to ResilientConnection.
    """
    config = ReconnectConfig.from_dict(options)
    callbacks = ConnectionCallbacks.from_dict(options)
    return ResilientConnection(url, config=config, callbacks=callbacks, **kwargs)
