from collections.abc import Callable, Mapping
from typing import Any

from certdocs.config.settings import Settings
from certdocs.database.models import JobRecord
from certdocs.database.repositories.job_repository import JobRepository
from certdocs.logging.logger import Log
from certdocs.processor.exceptions import CertificationError, RequestValidationError
from certdocs.processor.handlers import DocumentHandlers

Performer = Callable[[Mapping[str, Any]], dict[str, Any]]


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic.

    Non-retryable errors (validation, missing documents) fail the job at
    once; everything else is retried until ``max_job_attempts``.
    """

    def __init__(
        self,
        handlers: DocumentHandlers,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._settings = settings
        self._performers: dict[str, Performer] = {
            "generate": handlers.perform_generate,
            "certify": handlers.perform_certify,
        }

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running {job.kind} job {job.id} (attempt {job.attempts + 1})")
        try:
            performer = self._performers.get(job.kind)
            if performer is None:
                raise RequestValidationError(f"Unsupported job kind '{job.kind}'")
            result = performer(job.payload)
            self._job_repo.mark_done(job.id, result)
            Log.info(f"Job {job.id} completed successfully")
        except CertificationError as exc:
            self._handle_failure(job, exc.code, exc.message, retryable=exc.retryable)
        except Exception as exc:
            self._handle_failure(job, "INTERNAL_ERROR", str(exc), retryable=True)

    def _handle_failure(self, job: JobRecord, code: str, message: str, *, retryable: bool) -> None:
        """Mark failed if not retryable or at max attempts, otherwise back to pending."""
        Log.error(f"Job {job.id} failed with {code}: {message}")
        if not retryable:
            self._job_repo.mark_failed(job.id, code, message)
            Log.error(f"Job {job.id} failed permanently: {code} is not retryable")
        elif job.attempts + 1 >= self._settings.max_job_attempts:
            self._job_repo.mark_failed(job.id, code, message)
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            self._job_repo.increment_attempts(job.id, code, message)
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
