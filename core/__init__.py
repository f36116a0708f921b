"""
Core components for configuration, logging and connection state tracking
"""

from .config_validator import ConfigValidator, ConfigValidationError, validate_startup_config
from .state_tracker import ConnectionStateTracker, StateTransitionRecord

__all__ = [
    "ConfigValidator",
    "ConfigValidationError",
    "validate_startup_config",
    "ConnectionStateTracker",
    "StateTransitionRecord",
]
