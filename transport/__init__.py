"""
Resilient WebSocket transport with reconnection and outbound buffering
"""

from .backoff import BackoffScheduler
from .connection import ResilientConnection, create_connection
from .exceptions import (
    TransportError,
    TransportConnectionError,
    ConnectTimeoutError,
    MaxAttemptsExceededError,
    SendFailedError,
    ConnectionClosedError,
    ConnectionStateError,
)
from .message_queue import PendingMessage, PendingMessageQueue
from .models import (
    ConnectionCallbacks,
    ConnectionState,
    ConnectionStatus,
    ErrorInfo,
    ReconnectConfig,
    ReconnectInfo,
)
from .urls import is_valid_websocket_url, websocket_url_from_http

__all__ = [
    "BackoffScheduler",
    "ResilientConnection",
    "create_connection",
    "TransportError",
    "TransportConnectionError",
    "ConnectTimeoutError",
    "MaxAttemptsExceededError",
    "SendFailedError",
    "ConnectionClosedError",
    "ConnectionStateError",
    "PendingMessage",
    "PendingMessageQueue",
    "ConnectionCallbacks",
    "ConnectionState",
    "ConnectionStatus",
    "ErrorInfo",
    "ReconnectConfig",
    "ReconnectInfo",
    "is_valid_websocket_url",
    "websocket_url_from_http",
]
