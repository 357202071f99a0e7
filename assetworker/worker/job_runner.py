from assetworker.config.settings import Settings
from assetworker.database.models import JOB_STATUS_FAILED, JobRecord
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.logging.logger import Log
from assetworker.pipeline.handlers import JobHandler
from assetworker.queue.backoff import BackoffPolicy, ExponentialBackoff
from assetworker.queue.exceptions import PayloadError, UnknownJobTypeError
from assetworker.queue.payloads import decode_payload


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        handlers: dict[str, JobHandler],
        job_repo: JobRepository,
        settings: Settings,
        backoff: BackoffPolicy | None = None,
    ) -> None:
        self._handlers = handlers
        self._job_repo = job_repo
        self._settings = settings
        self._backoff = backoff or ExponentialBackoff.from_settings(settings)

    @property
    def job_types(self) -> list[str]:
        return sorted(self._handlers)

    def run(self, job: JobRecord) -> bool:
        """Execute a single claimed job. Returns True when it succeeded."""
        Log.info("Running job", job_id=job.id, job_type=job.job_type, attempt=job.attempts + 1)
        try:
            handler = self._handlers.get(job.job_type)
            if handler is None:
                raise UnknownJobTypeError(f"No handler registered for job type '{job.job_type}'")
            payload = decode_payload(job.job_type, job.payload)
            handler.handle(job, payload)
        except Exception as exc:
            self._handle_failure(job, exc)
            return False

        if self._job_repo.complete(job.id):
            Log.info("Job completed", job_id=job.id)
        else:
            Log.warning("Job finished but was no longer processing; result kept", job_id=job.id)
        return True

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        error = f"{type(exc).__name__}: {exc}"
        Log.error(f"Job failed: {error}", job_id=job.id, job_type=job.job_type)

        if isinstance(exc, PayloadError) and self._settings.fail_fast_payload_errors:
            self._job_repo.fail_permanently(job.id, error)
            Log.error("Job permanently failed: payload rejected", job_id=job.id)
            return

        updated = self._job_repo.fail(job.id, error, self._backoff)
        if updated is None:
            Log.warning("Job was no longer processing, failure not recorded", job_id=job.id)
        elif updated.status == JOB_STATUS_FAILED:
            Log.error("Job permanently failed", job_id=job.id, attempts=updated.attempts)
        else:
            Log.warning(
                "Job will be retried",
                job_id=job.id,
                run_after=updated.run_after,
                attempt=f"{updated.attempts}/{self._job_repo.max_attempts}",
            )
