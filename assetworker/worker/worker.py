import os
import socket
import time

import psycopg

from assetworker.config.settings import Settings
from assetworker.database.connection import get_connection
from assetworker.database.models import JobRecord
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.logging.logger import Log
from assetworker.queue.backoff import ExponentialBackoff
from assetworker.queue.exceptions import StoreUnavailableError
from assetworker.worker.job_runner import JobRunner


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class Worker:
    """Poll loop: reap -> claim -> dispatch, sleeping when idle."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._worker_id = settings.worker_id or default_worker_id()
        self._backoff = ExponentialBackoff.from_settings(settings)
        self._last_reap: float | None = None

    @property
    def worker_id(self) -> str:
        return self._worker_id

    def run(self, max_jobs: int | None = None) -> int:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after processing that many jobs (for testing).
        Returns the number of jobs processed.
        """
        Log.info(
            "Worker started",
            worker_id=self._worker_id,
            job_types=",".join(self._job_runner.job_types),
        )
        jobs_done = 0
        try:
            while max_jobs is None or jobs_done < max_jobs:
                self._maybe_reap()
                job = self._try_claim_job()
                if job:
                    self._run_job(job)
                    jobs_done += 1
                else:
                    Log.debug("No jobs available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        return jobs_done

    def _run_job(self, job: JobRecord) -> None:
        """Run one job; a store outage while recording its outcome is left to the reaper."""
        try:
            self._job_runner.run(job)
        except (StoreUnavailableError, psycopg.OperationalError) as exc:
            Log.warning(
                f"Job store unavailable while finishing job, reaper will recover it: {exc}",
                job_id=job.id,
            )

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next eligible job. Store outages are retried on the next poll."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(
                    conn, self._worker_id, self._job_runner.job_types
                )
        except (StoreUnavailableError, psycopg.OperationalError) as exc:
            Log.warning(f"Job store unavailable, will retry: {exc}")
            return None

    def _maybe_reap(self) -> None:
        now = time.monotonic()
        if (
            self._last_reap is not None
            and now - self._last_reap < self._settings.reaper_interval_seconds
        ):
            return
        self._last_reap = now
        try:
            recovered = self._job_repo.requeue_stale(
                self._settings.job_stale_timeout_seconds, self._backoff
            )
        except (StoreUnavailableError, psycopg.OperationalError) as exc:
            Log.warning(f"Reaper skipped, job store unavailable: {exc}")
            return
        if recovered:
            Log.warning(f"Reaper recovered {recovered} stale job(s)")
