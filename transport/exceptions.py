"""
Custom exceptions for the transport layer
"""

from typing import Optional, Dict, Any


class TransportError(Exception):
    """Base exception for all transport-related errors"""
    error_type = "transport_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class TransportConnectionError(TransportError, ConnectionError):
    """Raised when the socket fails while connecting or open"""
    error_type = "connection_error"


class ConnectTimeoutError(TransportConnectionError, TimeoutError):
    """Raised when no open is reported within the connect timeout"""
    error_type = "timeout"

    def __init__(self, timeout: float, details: Optional[Dict[str, Any]] = None):
        self.timeout = timeout
        super().__init__(f"Connection timed out after {timeout}s", details)


class MaxAttemptsExceededError(TransportError):
    """Raised when automatic reconnection gives up"""
    error_type = "max_attempts_exceeded"

    def __init__(self, max_attempts: int, details: Optional[Dict[str, Any]] = None):
        self.max_attempts = max_attempts
        super().__init__(f"Max reconnection attempts ({max_attempts}) reached", details)


class SendFailedError(TransportError):
    """Raised when writing a payload to the socket fails"""
    error_type = "send_failure"


class ConnectionClosedError(TransportError):
    """Raised for pending connects when the connection is closed explicitly"""
    error_type = "closed"


class ConnectionStateError(TransportError):
    """Raised when an operation is not allowed in the current state"""
    error_type = "invalid_state"
