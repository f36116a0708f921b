import main
from config import RECONNECT_CONFIG


def test_parse_args_defaults_come_from_config():
    args = main.parse_args(["ws://localhost:8765"])

    assert args.url == "ws://localhost:8765"
    assert args.max_attempts == RECONNECT_CONFIG["max_attempts"]
    assert args.connect_timeout == RECONNECT_CONFIG["connect_timeout"]


def test_parse_args_overrides():
    args = main.parse_args([
        "wss://example.com/ws",
        "--max-attempts", "3",
        "--initial-delay", "0.5",
        "--max-delay", "4",
        "--backoff-multiplier", "3",
        "--connect-timeout", "2.5",
    ])

    assert args.max_attempts == 3
    assert args.initial_delay == 0.5
    assert args.max_delay == 4.0
    assert args.backoff_multiplier == 3.0
    assert args.connect_timeout == 2.5


def test_main_rejects_invalid_url(monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda config: None)

    assert main.main(["http://example.com"]) == 1


def test_main_rejects_invalid_backoff(monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda config: None)

    assert main.main(["ws://localhost:8765", "--backoff-multiplier", "1"]) == 1
