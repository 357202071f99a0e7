from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from assetworker.queue.backoff import ExponentialBackoff


class TestExponentialBackoff:
    def test_first_attempt_uses_base_delay(self) -> None:
        backoff = ExponentialBackoff(base_seconds=30, max_seconds=3600, jitter_ratio=0)
        assert backoff.delay_seconds(uuid4(), 1) == 30

    def test_delay_doubles_per_attempt(self) -> None:
        backoff = ExponentialBackoff(base_seconds=30, max_seconds=3600, jitter_ratio=0)
        job_id = uuid4()
        assert [backoff.delay_seconds(job_id, n) for n in (1, 2, 3, 4)] == [30, 60, 120, 240]

    def test_delay_is_capped(self) -> None:
        backoff = ExponentialBackoff(base_seconds=30, max_seconds=100, jitter_ratio=0.5)
        assert backoff.delay_seconds(uuid4(), 10) == 100

    def test_jitter_stays_within_ratio(self) -> None:
        backoff = ExponentialBackoff(base_seconds=100, max_seconds=10_000, jitter_ratio=0.2)
        for _ in range(20):
            delay = backoff.delay_seconds(uuid4(), 1)
            assert 100 <= delay <= 120

    def test_same_job_and_attempt_is_deterministic(self) -> None:
        backoff = ExponentialBackoff(base_seconds=30, max_seconds=3600, jitter_ratio=0.2)
        job_id = uuid4()
        assert backoff.delay_seconds(job_id, 3) == backoff.delay_seconds(job_id, 3)

    def test_call_returns_timedelta(self) -> None:
        backoff = ExponentialBackoff(base_seconds=5, max_seconds=60, jitter_ratio=0)
        assert backoff(uuid4(), 2) == timedelta(seconds=10)

    def test_negative_bounds_raise(self) -> None:
        with pytest.raises(ValueError):
            ExponentialBackoff(base_seconds=-1, max_seconds=10)

    def test_from_settings(self) -> None:
        settings = MagicMock(
            backoff_base_seconds=2, backoff_max_seconds=8, backoff_jitter_ratio=0.0
        )
        backoff = ExponentialBackoff.from_settings(settings)
        assert backoff.delay_seconds(uuid4(), 5) == 8
