# client/retry.py

"""
Bounded retry policy for commands the service rejected outright (conflict,
not leader). Delay before attempt ``n + 1`` is
``base_delay * factor ** (n - 1)``, scaled by a random factor in
``[1 - jitter, 1 + jitter]``. After ``max_attempts`` attempts the command
is given up.
"""

from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.1
    factor: float = 2.0
    jitter: float = 0.5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.factor < 1:
            raise ValueError("base_delay must be >= 0 and factor >= 1")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be within [0, 1]")

    def backoff(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        rng = rng or random
        delay = self.base_delay * self.factor ** (attempt - 1)
        return delay * rng.uniform(1 - self.jitter, 1 + self.jitter)


class RetriesExhausted(Exception):
    """Every attempt was rejected before the command was proposed."""

    def __init__(self, attempts: int, status: int):
        super().__init__(f"rejected {attempts} time(s), last HTTP {status}")
        self.attempts = attempts
        self.status = status
