"""
Data models and types for the transport layer
"""

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Callable, Dict, Optional

from core.config_validator import ConfigValidator, ConfigValidationError


# Option names accepted by from_dict(), keyed by their camelCase spelling
CAMEL_CASE_OPTIONS = {
    "maxAttempts": "max_attempts",
    "initialDelay": "initial_delay",
    "maxDelay": "max_delay",
    "backoffMultiplier": "backoff_multiplier",
    "connectTimeout": "connect_timeout",
    "jitterMax": "jitter_max",
}

CALLBACK_OPTIONS = {
    "onConnect": "on_connect",
    "onDisconnect": "on_disconnect",
    "onError": "on_error",
    "onReconnecting": "on_reconnecting",
    "onMessage": "on_message",
}


def _noop(*args, **kwargs) -> None:
    return None


@dataclass(frozen=True)
class ReconnectConfig:
    """Immutable reconnect settings. Durations are in seconds."""
    max_attempts: int = 10
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    connect_timeout: float = 5.0
    jitter_max: float = 1.0

    def __post_init__(self):
        is_valid, errors, _ = ConfigValidator().validate_reconnect_config(asdict(self))
        if not is_valid:
            raise ConfigValidationError("; ".join(errors))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ReconnectConfig':
        """Create ReconnectConfig from a dictionary (snake_case or camelCase keys)"""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = CAMEL_CASE_OPTIONS.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ErrorInfo:
    """Payload for on_error callbacks"""
    type: str
    reason: str
    attempt_number: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReconnectInfo:
    """Payload for on_reconnecting callbacks"""
    attempt_number: int
    next_delay_ms: int
    max_attempts: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConnectionCallbacks:
    """Listener functions invoked on connection lifecycle events"""
    on_connect: Callable[[], None] = _noop
    on_disconnect: Callable[[], None] = _noop
    on_error: Callable[[ErrorInfo], None] = _noop
    on_reconnecting: Callable[[ReconnectInfo], None] = _noop
    on_message: Callable[[Any], None] = _noop

    def __post_init__(self):
        # None is accepted wherever a callback is optional
        for f in fields(self):
            if getattr(self, f.name) is None:
                setattr(self, f.name, _noop)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ConnectionCallbacks':
        """Pick callback options (onConnect/on_connect, ...) out of a dictionary"""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = CALLBACK_OPTIONS.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)


class ConnectionState(Enum):
    """Lifecycle states of a ResilientConnection"""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionStatus:
    """Point-in-time snapshot returned by get_status()"""
    state: ConnectionState
    attempt_count: int
    max_attempts: int
    queue_length: int
    is_closed: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data
