from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "certdocs"
    db_username: str = "certdocs"
    db_password: str = "secret"
    db_pool_max_size: int = 10
    db_apply_schema: bool = False

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5

    pdf_engine: str = "pdfplumber"

    storage_backend: str = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    storage_timeout_seconds: int = 30
    sandbox_bucket: str = "billing_sandbox"
    production_bucket: str = "billing_truth"
    fallback_listing_limit: int = 200

    # Signed links are always short-lived: 10 to 15 minutes.
    signed_url_ttl_seconds: int = Field(default=600, ge=600, le=900)

    verify_base_url: str = "https://sign.oasisintlholdings.com/verify-billing.html"

    qr_pixel_size: int = 256
    qr_margin_modules: int = 2
    qr_error_correction: str = "M"
    description_max_length: int = 120
    stabilization_max_iterations: int = Field(default=4, ge=1)

    document_categories: list[str] = ["billing", "resolutions", "certificates"]
    registry_advisory_locks: bool = True
