import random

import pytest

from transport import BackoffScheduler, ReconnectConfig


@pytest.fixture
def config():
    return ReconnectConfig(max_attempts=3, initial_delay=0.1, max_delay=1.0, backoff_multiplier=2.0)


def test_base_delay_grows_geometrically(config):
    scheduler = BackoffScheduler(config)

    assert scheduler.base_delay(1) == pytest.approx(0.1)
    assert scheduler.base_delay(2) == pytest.approx(0.2)
    assert scheduler.base_delay(3) == pytest.approx(0.4)
    assert scheduler.base_delay(4) == pytest.approx(0.8)


def test_base_delay_is_capped(config):
    scheduler = BackoffScheduler(config)

    assert scheduler.base_delay(5) == pytest.approx(1.0)
    assert scheduler.base_delay(10_000) == pytest.approx(1.0)


def test_base_delay_is_non_decreasing(config):
    scheduler = BackoffScheduler(config)
    delays = [scheduler.base_delay(n) for n in range(1, 40)]

    assert delays == sorted(delays)


def test_jitter_is_added_after_the_cap(config):
    scheduler = BackoffScheduler(config, rng=random.Random(99))

    for n in range(1, 50):
        delay = scheduler.next_delay(n)
        base = scheduler.base_delay(n)
        assert base <= delay < base + config.jitter_max
        assert delay <= config.max_delay + 1.0


def test_zero_jitter_gives_exact_delays():
    scheduler = BackoffScheduler(ReconnectConfig(initial_delay=0.5, max_delay=4.0, jitter_max=0.0))

    assert [scheduler.next_delay(n) for n in range(1, 6)] == [0.5, 1.0, 2.0, 4.0, 4.0]


def test_injected_rng_is_deterministic(config):
    first = BackoffScheduler(config, rng=random.Random(42))
    second = BackoffScheduler(config, rng=random.Random(42))

    assert [first.next_delay(n) for n in range(1, 5)] == [second.next_delay(n) for n in range(1, 5)]


@pytest.mark.parametrize("attempt", [0, -1])
def test_attempt_number_must_be_positive(config, attempt):
    scheduler = BackoffScheduler(config)

    with pytest.raises(ValueError):
        scheduler.next_delay(attempt)
