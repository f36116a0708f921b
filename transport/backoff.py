"""
Exponential backoff with additive jitter for reconnect scheduling
"""

import random
from typing import Optional

from .models import ReconnectConfig


class BackoffScheduler:
    """Computes the delay before a reconnect attempt.

    The scheduler holds no attempt counter; the caller owns it and passes the
    1-based attempt number in. Jitter is added after the cap, so a returned
    delay may exceed max_delay by up to jitter_max.
    """

    def __init__(self, config: ReconnectConfig, rng: Optional[random.Random] = None):
        self.config = config
        self._rng = rng or random.Random()

    def base_delay(self, attempt_number: int) -> float:
        """Capped exponential delay in seconds, without jitter"""
        if attempt_number <= 0:
            raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")

        # Stop growing once the cap is reached; large exponents would overflow
        delay = self.config.initial_delay
        for _ in range(attempt_number - 1):
            if delay >= self.config.max_delay:
                break
            delay *= self.config.backoff_multiplier
        return min(self.config.max_delay, delay)

    def jitter(self) -> float:
        """Uniform jitter in [0, jitter_max)"""
        if self.config.jitter_max <= 0:
            return 0.0
        return self._rng.random() * self.config.jitter_max

    def next_delay(self, attempt_number: int) -> float:
        """Delay in seconds before reconnect attempt `attempt_number` (starting at 1)"""
        return self.base_delay(attempt_number) + self.jitter()
