# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Retry policy implementation with exponential backoff and optional jitter."""

import random
import time
from dataclasses import dataclass


@dataclass
class RetryConfig:
    """Configuration for batch delivery retries.

    Attributes:
        max_attempts: Total number of delivery attempts per batch (default: 3)
        base_delay_ms: Delay after the first failed attempt (default: 1000)
        backoff_factor: Exponential backoff multiplier (default: 2.0)
        max_delay_ms: Maximum delay cap in milliseconds (default: 60000 = 60s)
        use_jitter: Whether to apply full jitter to delays (default: False)
    """
    max_attempts: int = 3
    base_delay_ms: int = 1000
    backoff_factor: float = 2.0
    max_delay_ms: int = 60000
    use_jitter: bool = False


class RetryPolicy:
    """Retry policy with exponential backoff.

    The delay after failed attempt ``i`` (0-indexed) is
    ``base_delay_ms * backoff_factor ** i``, capped at ``max_delay_ms``.
    No delay follows the final attempt.
    """

    def __init__(self, config: RetryConfig | None = None):
        """Initialize retry policy.

        Args:
            config: Retry configuration (uses defaults if None)
        """
        self.config = config or RetryConfig()

    def calculate_delay_ms(self, attempt_index: int) -> int:
        """Calculate the delay to wait after a failed attempt.

        Args:
            attempt_index: Index of the attempt that just failed (0-indexed)

        Returns:
            Delay in milliseconds (with jitter if enabled)
        """
        delay_ms = int(self.config.base_delay_ms * (self.config.backoff_factor ** attempt_index))
        delay_ms = min(delay_ms, self.config.max_delay_ms)

        if self.config.use_jitter:
            delay_ms = random.randint(0, delay_ms)

        return delay_ms

    def should_retry(self, attempt_index: int) -> bool:
        """Return True if another attempt may follow attempt *attempt_index*."""
        return attempt_index < self.config.max_attempts - 1

    def sleep(self, delay_ms: int) -> None:
        """Sleep for the specified delay.

        Args:
            delay_ms: Delay in milliseconds
        """
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
