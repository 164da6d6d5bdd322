"""Retry policy for rate-limit key rotation.

The default policy reproduces the baseline contract: one attempt per key in
the pool and no delay between rotated attempts. Backoff and jitter are
opt-in through UpstreamSettings.
"""

import random
from dataclasses import dataclass

from tradr.config import UpstreamSettings


@dataclass(frozen=True)
class RetryPolicy:
    """How many rotated attempts to make and how long to wait between them.

    Args:
        max_attempts: Upper bound on attempts. None means "one per key".
            The pool size always caps it, so a key is never tried twice
            within one fetch.
        backoff_base: Delay in seconds before the second attempt. 0 disables waiting.
        backoff_factor: Multiplier applied per further attempt.
        jitter: Maximum random seconds added to each delay.
    """

    max_attempts: int | None = None
    backoff_base: float = 0.0
    backoff_factor: float = 2.0
    jitter: float = 0.0

    @classmethod
    def from_settings(cls, settings: UpstreamSettings) -> "RetryPolicy":
        return cls(
            backoff_base=settings.retry_backoff_base,
            backoff_factor=settings.retry_backoff_factor,
            jitter=settings.retry_jitter,
        )

    def attempts_for(self, pool_size: int) -> int:
        """Number of attempts allowed against a pool of ``pool_size`` keys."""
        if self.max_attempts is None:
            return pool_size
        return max(1, min(self.max_attempts, pool_size))

    def delay_before(self, attempt: int) -> float:
        """Seconds to sleep before ``attempt`` (0-based). First attempt never waits."""
        if attempt == 0 or self.backoff_base <= 0:
            return 0.0
        delay = self.backoff_base * (self.backoff_factor ** (attempt - 1))
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return delay
