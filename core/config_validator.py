"""
Configuration validation module for the reconnection layer.

This module validates reconnect settings and target URLs before a
connection is built, so misconfigurations surface as clear error messages
instead of odd retry behaviour at runtime.
"""

import os
from typing import Dict, List, Any, Optional, Tuple
from urllib.parse import urlparse
import logging


logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


class ConfigValidator:
    """Validates reconnection and logging configuration"""

    VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self,
                     reconnect_config: Optional[Dict[str, Any]] = None,
                     logging_config: Optional[Dict[str, Any]] = None,
                     url: Optional[str] = None) -> Tuple[bool, List[str], List[str]]:
        """
        Validate all configuration settings.

        Args:
            reconnect_config: Reconnect settings (defaults to config.RECONNECT_CONFIG)
            logging_config: Logging settings (defaults to config.LOGGING_CONFIG)
            url: Optional target URL to check

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors.clear()
        self.warnings.clear()

        if reconnect_config is None or logging_config is None:
            from config import RECONNECT_CONFIG, LOGGING_CONFIG
            reconnect_config = RECONNECT_CONFIG if reconnect_config is None else reconnect_config
            logging_config = LOGGING_CONFIG if logging_config is None else logging_config

        self._check_reconnect_config(reconnect_config)
        self._check_logging_config(logging_config)
        if url is not None:
            self._check_url(url)

        is_valid = len(self.errors) == 0
        return is_valid, self.errors.copy(), self.warnings.copy()

    def validate_reconnect_config(self, values: Dict[str, Any]) -> Tuple[bool, List[str], List[str]]:
        """Validate reconnect settings only"""
        self.errors.clear()
        self.warnings.clear()
        self._check_reconnect_config(values)
        return len(self.errors) == 0, self.errors.copy(), self.warnings.copy()

    def validate_url(self, url: str) -> Tuple[bool, List[str], List[str]]:
        """Validate a WebSocket target URL only"""
        self.errors.clear()
        self.warnings.clear()
        self._check_url(url)
        return len(self.errors) == 0, self.errors.copy(), self.warnings.copy()

    def _check_reconnect_config(self, values: Dict[str, Any]):
        """Validate reconnect attempt, delay and timeout settings"""
        max_attempts = values.get("max_attempts")
        if isinstance(max_attempts, bool) or not isinstance(max_attempts, int):
            self.errors.append(f"max_attempts must be an integer, got {max_attempts!r}")
        elif max_attempts <= 0:
            self.errors.append(f"max_attempts must be positive, got {max_attempts}")
        elif max_attempts > 100:
            self.warnings.append(f"max_attempts {max_attempts} is unusually high. Recommended: 3-20")

        initial_delay = self._number(values, "initial_delay", minimum=0.0)
        max_delay = self._number(values, "max_delay", minimum=0.0)
        if initial_delay is not None and max_delay is not None and initial_delay > max_delay:
            self.errors.append(f"initial_delay ({initial_delay}s) must not exceed max_delay ({max_delay}s)")

        multiplier = self._number(values, "backoff_multiplier")
        if multiplier is not None and multiplier <= 1:
            self.errors.append(f"backoff_multiplier must be greater than 1, got {multiplier}")

        timeout = self._number(values, "connect_timeout")
        if timeout is not None:
            if timeout <= 0:
                self.errors.append(f"connect_timeout must be positive, got {timeout}")
            elif timeout < 1.0 or timeout > 60.0:
                self.warnings.append(f"Connection timeout {timeout}s may be too {'low' if timeout < 1.0 else 'high'}. Recommended: 1-30s")

        if "jitter_max" in values:
            self._number(values, "jitter_max", minimum=0.0)

    def _number(self, values: Dict[str, Any], key: str, minimum: Optional[float] = None) -> Optional[float]:
        """Read a numeric setting, recording an error when it is missing or out of range"""
        value = values.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self.errors.append(f"{key} must be a number, got {value!r}")
            return None
        if minimum is not None and value < minimum:
            self.errors.append(f"{key} must be >= {minimum}, got {value}")
            return None
        return float(value)

    def _check_url(self, url: str):
        """Validate that the target is a ws:// or wss:// URL"""
        if not isinstance(url, str) or not url:
            self.errors.append("Target URL is empty")
            return
        parsed = urlparse(url)
        if parsed.scheme not in ("ws", "wss"):
            self.errors.append(f"Target URL must use ws:// or wss://, got {url!r}")
        elif not parsed.netloc:
            self.errors.append(f"Target URL has no host: {url!r}")
        elif parsed.scheme == "ws" and os.getenv("ENVIRONMENT", "development").lower() == "production":
            self.warnings.append(f"Unencrypted WebSocket URL used in production: {url}")

    def _check_logging_config(self, values: Dict[str, Any]):
        """Validate logging configuration"""
        log_level = str(values.get("log_level", "INFO"))
        if log_level.upper() not in self.VALID_LOG_LEVELS:
            self.errors.append(f"Invalid log level '{log_level}'. Must be one of: {', '.join(self.VALID_LOG_LEVELS)}")

        max_size = values.get("max_log_size_mb", 10)
        if max_size < 1 or max_size > 1000:
            self.warnings.append(f"Log file size {max_size}MB may be {'too small' if max_size < 5 else 'too large'}. Recommended: 5-100MB")

        backup_count = values.get("backup_count", 5)
        if backup_count < 1 or backup_count > 50:
            self.warnings.append(f"Log backup count {backup_count} may be {'too low' if backup_count < 3 else 'too high'}. Recommended: 3-20")


def validate_startup_config(url: Optional[str] = None,
                            reconnect_config: Optional[Dict[str, Any]] = None) -> None:
    """
    Validate configuration on startup.

    Raises:
        ConfigValidationError: If critical configuration errors are found
    """
    validator = ConfigValidator()
    is_valid, errors, warnings = validator.validate_all(reconnect_config=reconnect_config, url=url)

    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")

        error_msg = f"Found {len(errors)} configuration error(s) that must be fixed before connecting."
        if warnings:
            error_msg += f" Also found {len(warnings)} warning(s) that should be addressed."
        raise ConfigValidationError(error_msg)

    if warnings:
        logger.info(f"Configuration validated successfully with {len(warnings)} warning(s)")
    else:
        logger.info("Configuration validated successfully")
