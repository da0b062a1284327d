# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Client-side per-fingerprint rate limiting."""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Counter for one fingerprint within its current window."""

    count: int
    reset_at_ms: float


class RateLimiter:
    """Fixed-window counter keyed by fingerprint.

    The first event for a fingerprint opens a window of ``window_ms``. Up to
    ``limit`` events are allowed within that window; the rest are rejected
    until the window has passed.
    """

    def __init__(
        self,
        limit: int = 5,
        window_ms: int = 60_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            limit: Maximum events allowed per fingerprint per window
            window_ms: Window length in milliseconds
            clock: Monotonic clock returning seconds
        """
        self.limit = limit
        self.window_ms = window_ms
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def is_rate_limited(self, fingerprint: str) -> bool:
        """Record an event for *fingerprint* and report whether to drop it."""
        now = self._now_ms()
        entry = self._entries.get(fingerprint)

        if entry is None or now >= entry.reset_at_ms:
            self._entries[fingerprint] = RateLimitEntry(count=1, reset_at_ms=now + self.window_ms)
            return False

        entry.count += 1
        return entry.count > self.limit

    def sweep_expired(self) -> int:
        """Drop entries whose window has passed. Returns how many were removed.

        An expired entry is treated exactly like a missing one, so sweeping
        only bounds memory and never changes a decision.
        """
        now = self._now_ms()
        expired = [fp for fp, entry in self._entries.items() if now >= entry.reset_at_ms]
        for fp in expired:
            del self._entries[fp]
        return len(expired)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
