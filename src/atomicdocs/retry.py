"""
Backoff schedule shared by the readiness probe and the registration client.
"""

from __future__ import annotations

import itertools
import random
from dataclasses import dataclass
from typing import Iterator, Optional

from atomicdocs.config import AtomicDocsSettings


@dataclass(frozen=True)
class RetryPolicy:
    initial_delay: float = 0.1  # seconds
    max_delay: float = 5.0  # seconds
    multiplier: float = 2.0
    max_attempts: Optional[int] = None  # None: until cancelled
    jitter: float = 0.0  # fraction, e.g. 0.1 for ±10%

    @classmethod
    def for_registration(cls, settings: AtomicDocsSettings) -> "RetryPolicy":
        return cls(
            initial_delay=settings.retry_initial_delay,
            max_delay=settings.retry_max_delay,
            multiplier=settings.retry_multiplier,
            max_attempts=settings.retry_max_attempts,
            jitter=0.1,
        )

    @classmethod
    def for_probe(cls, settings: AtomicDocsSettings) -> "RetryPolicy":
        return cls(
            initial_delay=settings.probe_initial_delay,
            max_delay=settings.probe_max_delay,
            multiplier=2.0,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number `attempt` (1-based)."""
        if attempt < 1:
            return 0.0
        delay = self.initial_delay * (self.multiplier ** (attempt - 1))
        delay = min(delay, self.max_delay)
        if self.jitter:
            spread = delay * self.jitter
            delay += random.uniform(-spread, spread)
        return max(0.0, delay)

    def attempts(self) -> Iterator[int]:
        counter = itertools.count(1)
        if self.max_attempts is None:
            return counter
        return itertools.islice(counter, self.max_attempts)
