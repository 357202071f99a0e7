from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

from assetworker.database.models import JobRecord
from assetworker.queue.exceptions import PayloadError
from assetworker.queue.payloads import AnalyzeDocumentPayload
from assetworker.worker.job_runner import JobRunner


def _make_runner(
    fail_fast: bool = False,
) -> tuple[JobRunner, MagicMock, MagicMock, MagicMock]:
    """Create a JobRunner with mocked dependencies."""
    handler = MagicMock(job_type="analyze-document")
    mock_repo = MagicMock(max_attempts=5)
    backoff = MagicMock()
    settings = MagicMock(fail_fast_payload_errors=fail_fast)
    runner = JobRunner({"analyze-document": handler}, mock_repo, settings, backoff=backoff)
    return runner, handler, mock_repo, backoff


def _make_job(job_type: str = "analyze-document", payload: dict | None = None) -> JobRecord:
    if payload is None:
        payload = {"document_id": str(uuid4()), "version_id": str(uuid4())}
    return JobRecord(id=uuid4(), job_type=job_type, payload=payload, status="processing", attempts=0)


def _updated(job: JobRecord, status: str, attempts: int) -> JobRecord:
    return JobRecord(
        id=job.id,
        job_type=job.job_type,
        payload=job.payload,
        status=status,
        attempts=attempts,
        run_after=datetime.now(timezone.utc),
    )


class TestSuccessfulProcessing:
    def test_dispatches_decoded_payload(self) -> None:
        runner, handler, _repo, _backoff = _make_runner()
        job = _make_job()

        assert runner.run(job) is True

        called_job, payload = handler.handle.call_args.args
        assert called_job is job
        assert isinstance(payload, AnalyzeDocumentPayload)
        assert str(payload.version_id) == job.payload["version_id"]

    def test_marks_job_complete(self) -> None:
        runner, _handler, mock_repo, _backoff = _make_runner()
        job = _make_job()

        runner.run(job)

        mock_repo.complete.assert_called_once_with(job.id)
        mock_repo.fail.assert_not_called()

    def test_job_types_lists_registered_handlers(self) -> None:
        runner, _handler, _repo, _backoff = _make_runner()
        assert runner.job_types == ["analyze-document"]


class TestFailure:
    def test_handler_error_is_recorded_with_backoff(self) -> None:
        runner, handler, mock_repo, backoff = _make_runner()
        handler.handle.side_effect = RuntimeError("boom")
        job = _make_job()
        mock_repo.fail.return_value = _updated(job, "queued", 1)

        assert runner.run(job) is False

        mock_repo.fail.assert_called_once_with(job.id, "RuntimeError: boom", backoff)
        mock_repo.complete.assert_not_called()

    def test_terminal_failure_is_logged_not_raised(self) -> None:
        runner, handler, mock_repo, _backoff = _make_runner()
        handler.handle.side_effect = RuntimeError("boom")
        job = _make_job()
        mock_repo.fail.return_value = _updated(job, "failed", 5)

        assert runner.run(job) is False

    def test_unknown_job_type_fails_the_attempt(self) -> None:
        runner, handler, mock_repo, _backoff = _make_runner()
        job = _make_job(job_type="index-search")

        runner.run(job)

        handler.handle.assert_not_called()
        error = mock_repo.fail.call_args.args[1]
        assert error.startswith("UnknownJobTypeError")

    def test_invalid_payload_is_retried_by_default(self) -> None:
        runner, handler, mock_repo, _backoff = _make_runner()
        job = _make_job(payload={"document_id": "not-a-uuid"})

        runner.run(job)

        handler.handle.assert_not_called()
        mock_repo.fail.assert_called_once()
        mock_repo.fail_permanently.assert_not_called()

    def test_invalid_payload_fails_fast_when_enabled(self) -> None:
        runner, _handler, mock_repo, _backoff = _make_runner(fail_fast=True)
        job = _make_job(payload={})

        runner.run(job)

        mock_repo.fail_permanently.assert_called_once()
        assert mock_repo.fail_permanently.call_args.args[0] == job.id
        mock_repo.fail.assert_not_called()

    def test_handler_payload_error_fails_fast_when_enabled(self) -> None:
        runner, handler, mock_repo, _backoff = _make_runner(fail_fast=True)
        handler.handle.side_effect = PayloadError("mismatch")

        runner.run(_make_job())

        mock_repo.fail_permanently.assert_called_once()

    def test_other_errors_still_retry_when_fail_fast_enabled(self) -> None:
        runner, handler, mock_repo, _backoff = _make_runner(fail_fast=True)
        handler.handle.side_effect = OSError("disk")

        runner.run(_make_job())

        mock_repo.fail.assert_called_once()
        mock_repo.fail_permanently.assert_not_called()
