#!/usr/bin/env python3
"""
Main application - interactive client that keeps a WebSocket link alive
and forwards stdin lines over it
"""

import argparse
import signal
import sys
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError

from dotenv import load_dotenv

# Load .env before config reads the environment
load_dotenv()

from config import DISPLAY_CONFIG, LOGGING_CONFIG, RECONNECT_CONFIG, STATE_HISTORY_SIZE
from core.logging_config import setup_logging, get_logger
from core.config_validator import validate_startup_config, ConfigValidationError
from events import EventBus, EventTypes
from transport import (
    ConnectionCallbacks,
    ReconnectConfig,
    ResilientConnection,
    TransportError,
)


class TransportClient:
    """Wires a ResilientConnection to the terminal"""

    def __init__(self, url: str, reconnect_config: ReconnectConfig):
        self.logger = get_logger(__name__)
        self.colors = DISPLAY_CONFIG["colors"]
        self.stopped = threading.Event()

        self.event_bus = EventBus()
        self.event_bus.on(EventTypes.CONNECTION_FAILED, self._on_failed_event)
        self.event_bus.on(EventTypes.CONNECTION_STATE_CHANGE, self._on_state_event)

        self.connection = ResilientConnection(
            url,
            config=reconnect_config,
            callbacks=ConnectionCallbacks(
                on_connect=self._on_connect,
                on_disconnect=self._on_disconnect,
                on_error=self._on_error,
                on_reconnecting=self._on_reconnecting,
                on_message=self._on_message,
            ),
            event_bus=self.event_bus,
            tracker_capacity=STATE_HISTORY_SIZE,
        )

    def start(self):
        """Connect and pump stdin into the connection until EOF or stop()"""
        future = self.connection.connect()
        try:
            future.result(timeout=self.connection.config.connect_timeout + 1.0)
        except TransportError as e:
            # Reconnection is already scheduled; lines typed meanwhile are queued
            self.logger.warning(f"Initial connection failed: {e}")
        except FutureTimeoutError:
            self.logger.warning("Initial connection still pending, continuing")

        for line in sys.stdin:
            if self.stopped.is_set():
                break
            line = line.rstrip("\n")
            if line:
                self.connection.send(line)

    def stop(self):
        """Close the connection and report final statistics"""
        if self.stopped.is_set():
            return
        self.stopped.set()

        try:
            self.connection.close()
        except Exception as e:
            self.logger.error(f"Error closing connection: {e}", exc_info=True)

        stats = self.connection.get_stats()
        self.logger.info("Final connection stats", extra={"extra_data": stats})
        print(f"{self.colors['info']}Status: {stats['state']}, sent: {stats['messages_sent']}, "
              f"received: {stats['messages_received']}, queued: {stats['queue_length']}, "
              f"error rate: {stats['health']['error_rate']:.2%}{self.colors['reset']}")

        self.event_bus.wait_until_idle()
        self.event_bus.shutdown()

    def _on_connect(self):
        print(f"{self.colors['info']}Connected to {self.connection.url}{self.colors['reset']}")

    def _on_disconnect(self):
        print(f"{self.colors['error']}Disconnected{self.colors['reset']}")

    def _on_error(self, info):
        print(f"{self.colors['error']}[{info.type}] {info.reason} (attempt {info.attempt_number}){self.colors['reset']}")

    def _on_reconnecting(self, info):
        print(f"{self.colors['info']}Reconnecting {info.attempt_number}/{info.max_attempts} "
              f"in {info.next_delay_ms}ms{self.colors['reset']}")

    def _on_message(self, payload):
        if isinstance(payload, bytes):
            payload = f"<{len(payload)} bytes>"
        print(f"{self.colors['received']}< {payload}{self.colors['reset']}")

    def _on_state_event(self, event):
        self.logger.debug(f"State event: {event.data['from_state']} → {event.data['to_state']}")

    def _on_failed_event(self, event):
        self.logger.error("Giving up on automatic reconnection; restart or reconnect manually",
                          extra={"extra_data": event.data})


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Resilient WebSocket client")
    parser.add_argument("url", help="ws:// or wss:// URL to connect to")
    parser.add_argument("--max-attempts", type=int, default=RECONNECT_CONFIG["max_attempts"])
    parser.add_argument("--initial-delay", type=float, default=RECONNECT_CONFIG["initial_delay"])
    parser.add_argument("--max-delay", type=float, default=RECONNECT_CONFIG["max_delay"])
    parser.add_argument("--backoff-multiplier", type=float, default=RECONNECT_CONFIG["backoff_multiplier"])
    parser.add_argument("--connect-timeout", type=float, default=RECONNECT_CONFIG["connect_timeout"])
    return parser.parse_args(argv)


client = None


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully"""
    try:
        print("\n\nShutting down gracefully...")
        if client:
            client.stop()
    except Exception as e:
        print(f"Error during shutdown: {e}")
    finally:
        sys.exit(0)


def main(argv=None) -> int:
    global client

    setup_logging(LOGGING_CONFIG)
    logger = get_logger(__name__)

    args = parse_args(argv)
    reconnect_settings = {
        **RECONNECT_CONFIG,
        "max_attempts": args.max_attempts,
        "initial_delay": args.initial_delay,
        "max_delay": args.max_delay,
        "backoff_multiplier": args.backoff_multiplier,
        "connect_timeout": args.connect_timeout,
    }

    try:
        validate_startup_config(url=args.url, reconnect_config=reconnect_settings)
        reconnect_config = ReconnectConfig.from_dict(reconnect_settings)
    except ConfigValidationError as e:
        logger.error(f"Configuration validation failed: {e}")
        return 1

    signal.signal(signal.SIGINT, signal_handler)

    client = TransportClient(args.url, reconnect_config)
    try:
        client.start()
    except Exception as e:
        logger.error("Transport client crashed", exc_info=True, extra={
            "extra_data": {"error_type": type(e).__name__, "error_message": str(e)}
        })
        return 1
    finally:
        client.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
