from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from certdocs.database.connection import get_connection
from certdocs.database.models import JobRecord


class JobRepository:
    """Database operations for the certification_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the next pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, kind, payload, status, attempts
                FROM certification_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.rollback()
            return None

        conn.execute(
            """
            UPDATE certification_jobs
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return JobRecord(
            id=row["id"],
            kind=row["kind"],
            payload=row["payload"] or {},
            status="processing",
            attempts=row["attempts"],
        )

    def enqueue(self, kind: str, payload: dict[str, Any]) -> int:
        """Queue a job and return its id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO certification_jobs (kind, payload)
                    VALUES (%s, %s)
                    RETURNING id
                    """,
                    (kind, Jsonb(payload)),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Enqueueing {kind} job returned no id")
        return int(row[0])

    def mark_done(self, job_id: int, result: dict[str, Any]) -> None:
        """Mark a job as done and store its structured result."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE certification_jobs
                SET status = 'done', result = %s, error_code = NULL,
                    error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (Jsonb(result), job_id),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error_code: str, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE certification_jobs
                SET status = 'failed', attempts = attempts + 1, error_code = %s,
                    error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error_code, error, job_id),
            )
            conn.commit()

    def increment_attempts(self, job_id: int, error_code: str, error: str) -> None:
        """Increment attempt count and return job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE certification_jobs
                SET attempts = attempts + 1, status = 'pending', error_code = %s,
                    error_message = %s, locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error_code, error, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, kind, payload, status, attempts, result, error_code,
                           error_message, locked_at, created_at, updated_at
                    FROM certification_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return JobRecord(
            id=row["id"],
            kind=row["kind"],
            payload=row["payload"] or {},
            status=row["status"],
            attempts=row["attempts"],
            result=row["result"],
            error_code=row["error_code"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
