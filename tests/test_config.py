import dataclasses

import pytest

from core.config_validator import ConfigValidator, ConfigValidationError, validate_startup_config
from transport import ConnectionCallbacks, ReconnectConfig


VALID_LOGGING = {"log_level": "INFO", "max_log_size_mb": 10, "backup_count": 5}


def test_defaults_are_valid():
    config = ReconnectConfig()

    assert config.max_attempts == 10
    assert config.initial_delay == 1.0
    assert config.max_delay == 30.0
    assert config.backoff_multiplier == 2.0
    assert config.connect_timeout == 5.0


@pytest.mark.parametrize("overrides", [
    {"max_attempts": 0},
    {"max_attempts": 2.5},
    {"initial_delay": 5.0, "max_delay": 1.0},
    {"backoff_multiplier": 1.0},
    {"connect_timeout": 0},
    {"initial_delay": -1.0},
    {"jitter_max": -0.5},
])
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ConfigValidationError):
        ReconnectConfig(**overrides)


def test_config_is_immutable():
    config = ReconnectConfig()

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.max_attempts = 99


def test_from_dict_accepts_camel_case_and_ignores_unknown_keys():
    config = ReconnectConfig.from_dict({
        "maxAttempts": 4,
        "initialDelay": 0.25,
        "max_delay": 2.0,
        "onConnect": print,
        "somethingElse": True,
    })

    assert config == ReconnectConfig(max_attempts=4, initial_delay=0.25, max_delay=2.0)


def test_validator_warns_on_unusual_values():
    validator = ConfigValidator()
    is_valid, errors, warnings = validator.validate_reconnect_config(
        {**ReconnectConfig().to_dict(), "max_attempts": 500, "connect_timeout": 120.0}
    )

    assert is_valid
    assert errors == []
    assert len(warnings) == 2


@pytest.mark.parametrize("url,valid", [
    ("ws://localhost:8080/ws", True),
    ("wss://example.com", True),
    ("http://example.com", False),
    ("ws://", False),
    ("", False),
])
def test_validate_url(url, valid):
    is_valid, _, _ = ConfigValidator().validate_url(url)
    assert is_valid is valid


def test_validate_all_reports_logging_errors():
    is_valid, errors, _ = ConfigValidator().validate_all(
        reconnect_config=ReconnectConfig().to_dict(),
        logging_config={**VALID_LOGGING, "log_level": "LOUD"},
    )

    assert not is_valid
    assert "LOUD" in errors[0]


def test_validate_startup_config_raises_on_bad_url():
    with pytest.raises(ConfigValidationError):
        validate_startup_config(url="ftp://example.com", reconnect_config=ReconnectConfig().to_dict())


def test_validate_startup_config_accepts_defaults():
    validate_startup_config(url="ws://localhost:8765", reconnect_config=ReconnectConfig().to_dict())


def test_callbacks_default_to_no_ops():
    callbacks = ConnectionCallbacks(on_error=None)

    assert callbacks.on_connect() is None
    assert callbacks.on_error(object()) is None


def test_callbacks_from_dict():
    seen = []
    callbacks = ConnectionCallbacks.from_dict({"onMessage": seen.append, "maxAttempts": 3})

    callbacks.on_message("payload")

    assert seen == ["payload"]
