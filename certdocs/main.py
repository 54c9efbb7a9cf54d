from certdocs.config.settings import Settings
from certdocs.database.connection import apply_schema, close_pool, init_pool
from certdocs.database.repositories.job_repository import JobRepository
from certdocs.logging.logger import Log
from certdocs.processor.handlers import build_handlers
from certdocs.worker.job_runner import JobRunner
from certdocs.worker.worker import Worker


def main() -> None:
    """Entry point: pool -> optional schema bootstrap -> handlers -> worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(
        f"Starting certdocs ({settings.app_env}): storage={settings.storage_backend}, "
        f"buckets={settings.sandbox_bucket}/{settings.production_bucket}"
    )
    init_pool(settings)

    try:
        if settings.db_apply_schema:
            apply_schema()
            Log.info("Database schema applied")
        handlers = build_handlers(settings)
        job_repo = JobRepository(settings.max_job_attempts)
        worker = Worker(job_repo, JobRunner(handlers, job_repo, settings), settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
