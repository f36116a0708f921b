"""
Centralized configuration for the transport client
"""

import os

# Reconnection settings (durations in seconds)
RECONNECT_CONFIG = {
    "max_attempts": int(os.getenv("RECONNECT_MAX_ATTEMPTS", "10")),
    "initial_delay": float(os.getenv("RECONNECT_INITIAL_DELAY", "1.0")),
    "max_delay": float(os.getenv("RECONNECT_MAX_DELAY", "30.0")),
    "backoff_multiplier": float(os.getenv("RECONNECT_BACKOFF_MULTIPLIER", "2.0")),
    "connect_timeout": float(os.getenv("RECONNECT_CONNECT_TIMEOUT", "5.0")),
    "jitter_max": float(os.getenv("RECONNECT_JITTER_MAX", "1.0")),
}

# Number of state records kept per connection
STATE_HISTORY_SIZE = int(os.getenv("STATE_HISTORY_SIZE", "100"))

# Display settings
DISPLAY_CONFIG = {
    "colors": {
        "received": "\033[92m",  # Green
        "error": "\033[91m",     # Red
        "info": "\033[94m",      # Blue
        "reset": "\033[0m"       # Reset
    }
}

# Logging configuration
LOGGING_CONFIG = {
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("LOG_DIR", "./logs"),
    "enable_file_logging": os.getenv("ENABLE_FILE_LOGGING", "false").lower() == "true",
    "enable_console_logging": os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true",
    "structured_logging": os.getenv("ENVIRONMENT", "development").lower() == "production",
    "max_log_size_mb": int(os.getenv("MAX_LOG_SIZE_MB", "10")),
    "backup_count": int(os.getenv("LOG_BACKUP_COUNT", "5")),
}
