"""Reconnection policy for the block stream."""

from dataclasses import dataclass
from typing import Optional

from config.settings import settings


@dataclass(frozen=True)
class RetryPolicy:
    """
    Delay and attempt limit between stream reconnections.

    The default policy is a fixed delay with no attempt limit: a dropped
    stream is retried forever. ``max_attempts`` and ``backoff_multiplier``
    are opt-in.
    """
    delay: float = 5.0
    max_attempts: Optional[int] = None
    backoff_multiplier: float = 1.0
    max_delay: float = 60.0

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError("retry delay must not be negative")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            delay=settings.retry_delay_seconds,
            max_attempts=settings.retry_max_attempts,
            backoff_multiplier=settings.retry_backoff_multiplier,
            max_delay=settings.retry_max_delay_seconds,
        )

    def delay_for(self, failures: int) -> float:
        """Delay after the given number of consecutive failures (1-based)."""
        if self.backoff_multiplier == 1.0:
            return self.delay
        delay = self.delay * (self.backoff_multiplier ** max(0, failures - 1))
        return min(delay, max(self.max_delay, self.delay))

    def exhausted(self, failures: int) -> bool:
        """True once consecutive failures reach the configured limit."""
        return self.max_attempts is not None and failures >= self.max_attempts
