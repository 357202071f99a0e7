from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from assetworker.database.connection import get_connection
from assetworker.database.models import (
    JOB_STATUS_FAILED,
    JOB_STATUS_PROCESSING,
    JOB_STATUS_QUEUED,
    JobRecord,
)
from assetworker.queue.backoff import BackoffPolicy
from assetworker.queue.exceptions import StoreUnavailableError

_JOB_COLUMNS = """
    id, job_type, payload, status, attempts, run_after, last_error,
    locked_by, locked_at, created_at, updated_at
"""


def _row_to_job(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        job_type=row["job_type"],
        payload=row["payload"] or {},
        status=row["status"],
        attempts=row["attempts"],
        run_after=row.get("run_after"),
        last_error=row.get("last_error"),
        locked_by=row.get("locked_by"),
        locked_at=row.get("locked_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class JobRepository:
    """Durable job queue backed by the jobs table.

    Status lifecycle: queued -> processing -> succeeded | queued (retry) | failed.
    """

    def __init__(self, max_attempts: int) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def enqueue(
        self,
        job_type: str,
        payload: dict[str, Any],
        run_after: datetime | None = None,
        conn: psycopg.Connection[Any] | None = None,
    ) -> UUID:
        """Insert a queued job and return its id.

        When conn is given the insert joins the caller's transaction and is not
        committed here.

        Raises:
            StoreUnavailableError: if the database cannot be reached.
        """
        job_id = uuid4()
        params = (job_id, job_type, Jsonb(payload), JOB_STATUS_QUEUED, run_after)
        sql = """
            INSERT INTO jobs (id, job_type, payload, status, run_after)
            VALUES (%s, %s, %s, %s, COALESCE(%s::timestamptz, NOW()))
        """
        try:
            if conn is not None:
                conn.execute(sql, params)
            else:
                with get_connection() as own_conn:
                    own_conn.execute(sql, params)
                    own_conn.commit()
        except psycopg.OperationalError as exc:
            raise StoreUnavailableError(f"Cannot enqueue '{job_type}' job: {exc}") from exc
        return job_id

    def claim_next_job(
        self,
        conn: psycopg.Connection[Any],
        worker_id: str,
        job_types: Sequence[str],
    ) -> JobRecord | None:
        """Atomically claim the oldest eligible queued job.

        A single UPDATE over a SKIP LOCKED sub-select, so two concurrent callers
        never receive the same row.

        Raises:
            StoreUnavailableError: if the database cannot be reached.
        """
        if not job_types:
            return None
        try:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE jobs
                    SET status = %s, locked_by = %s, locked_at = NOW(), updated_at = NOW()
                    WHERE id = (
                        SELECT id
                        FROM jobs
                        WHERE status = %s
                          AND run_after <= NOW()
                          AND job_type = ANY(%s)
                        ORDER BY run_after, created_at
                        LIMIT 1
                        FOR UPDATE SKIP LOCKED
                    )
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (JOB_STATUS_PROCESSING, worker_id, JOB_STATUS_QUEUED, list(job_types)),
                )
                row = cur.fetchone()
            conn.commit()
        except psycopg.OperationalError as exc:
            raise StoreUnavailableError(f"Cannot claim job: {exc}") from exc

        if row is None:
            return None
        return _row_to_job(row)

    def complete(self, job_id: UUID) -> bool:
        """Mark a processing job as succeeded. Returns False if it was not processing."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE jobs
                    SET status = 'succeeded', last_error = NULL,
                        locked_by = NULL, locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND status = 'processing'
                    """,
                    (job_id,),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def fail(self, job_id: UUID, error: str, backoff: BackoffPolicy) -> JobRecord | None:
        """Record a failed attempt for a processing job.

        attempts += 1; below max the job goes back to queued with
        run_after = now + backoff(job_id, attempts), otherwise it becomes
        terminally failed. Jobs that are not processing are left untouched and
        None is returned.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT status, attempts FROM jobs WHERE id = %s FOR UPDATE",
                    (job_id,),
                )
                row = cur.fetchone()
                if row is None or row["status"] != JOB_STATUS_PROCESSING:
                    conn.rollback()
                    return None

                attempts = row["attempts"] + 1
                if attempts < self._max_attempts:
                    cur.execute(
                        f"""
                        UPDATE jobs
                        SET status = %s, attempts = %s, run_after = NOW() + %s,
                            last_error = %s, locked_by = NULL, locked_at = NULL,
                            updated_at = NOW()
                        WHERE id = %s
                        RETURNING {_JOB_COLUMNS}
                        """,
                        (JOB_STATUS_QUEUED, attempts, backoff(job_id, attempts), error, job_id),
                    )
                else:
                    cur.execute(
                        f"""
                        UPDATE jobs
                        SET status = %s, attempts = %s, last_error = %s,
                            locked_by = NULL, locked_at = NULL, updated_at = NOW()
                        WHERE id = %s
                        RETURNING {_JOB_COLUMNS}
                        """,
                        (JOB_STATUS_FAILED, attempts, error, job_id),
                    )
                updated = cur.fetchone()
            conn.commit()

        return _row_to_job(updated) if updated is not None else None

    def fail_permanently(self, job_id: UUID, error: str) -> JobRecord | None:
        """Move a processing job straight to failed, counting the attempt."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE jobs
                    SET status = 'failed', attempts = attempts + 1, last_error = %s,
                        locked_by = NULL, locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND status = 'processing'
                    RETURNING {_JOB_COLUMNS}
                    """,
                    (error, job_id),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_job(row) if row is not None else None

    def requeue_stale(self, timeout_seconds: int, backoff: BackoffPolicy) -> int:
        """Recover jobs left in processing by crashed workers.

        Each stale job counts as a failed attempt, so a job that keeps crashing
        its worker still ends in failed once attempts are exhausted.
        """
        touched = 0
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, attempts
                    FROM jobs
                    WHERE status = 'processing'
                      AND locked_at < NOW() - %s
                    ORDER BY locked_at
                    FOR UPDATE SKIP LOCKED
                    """,
                    (timedelta(seconds=timeout_seconds),),
                )
                stale = cur.fetchall()
                for row in stale:
                    attempts = row["attempts"] + 1
                    error = f"stale: processing exceeded {timeout_seconds}s"
                    if attempts < self._max_attempts:
                        cur.execute(
                            """
                            UPDATE jobs
                            SET status = 'queued', attempts = %s, run_after = NOW() + %s,
                                last_error = %s, locked_by = NULL, locked_at = NULL,
                                updated_at = NOW()
                            WHERE id = %s
                            """,
                            (attempts, backoff(row["id"], attempts), error, row["id"]),
                        )
                    else:
                        cur.execute(
                            """
                            UPDATE jobs
                            SET status = 'failed', attempts = %s, last_error = %s,
                                locked_by = NULL, locked_at = NULL, updated_at = NOW()
                            WHERE id = %s
                            """,
                            (attempts, error, row["id"]),
                        )
                    touched += 1
            conn.commit()
        return touched

    def find_by_id(self, job_id: UUID) -> JobRecord | None:
        """Find a job by ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _row_to_job(row)

    def count_by_status(self) -> dict[str, int]:
        """Return job counts per status, for operator visibility."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT status, COUNT(*) FROM jobs GROUP BY status")
                rows = cur.fetchall()
        return {status: count for status, count in rows}
