import random
from datetime import timedelta
from typing import Protocol
from uuid import UUID

from assetworker.config.settings import Settings


class BackoffPolicy(Protocol):
    def __call__(self, job_id: UUID, attempts: int) -> timedelta: ...


class ExponentialBackoff:
    """Capped exponential backoff with jitter seeded by (job id, attempt).

    The same job and attempt number always yield the same delay, while
    different jobs failing at the same attempt are spread apart.
    """

    def __init__(
        self,
        base_seconds: float,
        max_seconds: float,
        jitter_ratio: float = 0.2,
    ) -> None:
        if base_seconds < 0 or max_seconds < 0:
            raise ValueError("backoff bounds must be non-negative")
        self._base = float(base_seconds)
        self._max = float(max_seconds)
        self._jitter_ratio = max(0.0, min(1.0, jitter_ratio))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExponentialBackoff":
        return cls(
            base_seconds=settings.backoff_base_seconds,
            max_seconds=settings.backoff_max_seconds,
            jitter_ratio=settings.backoff_jitter_ratio,
        )

    def __call__(self, job_id: UUID, attempts: int) -> timedelta:
        return timedelta(seconds=self.delay_seconds(job_id, attempts))

    def delay_seconds(self, job_id: UUID, attempts: int) -> float:
        exponent = max(attempts - 1, 0)
        delay = min(self._max, self._base * (2**exponent))
        rng = random.Random(f"{job_id}:{attempts}")
        jitter = rng.uniform(0.0, self._jitter_ratio * delay)
        return min(self._max, delay + jitter)
