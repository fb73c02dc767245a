import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "labintake"
    db_username: str = "labintake"
    db_password: str = "secret"

    storage_disk: str = "local"
    storage_root: str = "/app/files"
    storage_public_base_url: str = "http://localhost:8000/files"
    storage_s3_bucket: str = ""
    storage_s3_region: str = ""
    storage_s3_endpoint_url: str = ""

    temp_root: str = tempfile.gettempdir()

    chunk_session_ttl_seconds: int = 30 * 60
    chunk_sweep_interval_seconds: int = 5 * 60

    archive_sync_max_entries: int = 50
    archive_job_workers: int = 1
    archive_job_ttl_seconds: int = 2 * 60 * 60
    archive_job_sweep_interval_seconds: int = 10 * 60

    worker_concurrency: int = 3
    worker_queue_size: int = 500
    worker_sweep_interval_seconds: int = 30
    worker_sweep_batch_size: int = 3
    stale_processing_minutes: int = 10
    max_processing_attempts: int = 3
    stale_hash_claim_minutes: int = 10

    temp_cleanup_max_age_seconds: int = 24 * 60 * 60
    temp_cleanup_interval_seconds: int = 6 * 60 * 60

    prefilter_enabled: bool = True

    pdf_engine: str = "pdfplumber"

    extraction_primary_provider: str = "gemini"
    extraction_secondary_provider: str = "openai"

    extraction_gemini_api_key: str = ""
    extraction_gemini_model_name: str = "gemini-2.0-flash"
    extraction_gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    extraction_gemini_timeout_seconds: int = 60
    extraction_gemini_temperature: float = 0.1

    extraction_openai_api_key: str = ""
    extraction_openai_model_name: str = "gpt-4o-mini"
    extraction_openai_timeout_seconds: int = 60
    extraction_openai_temperature: float = 0.0

    extraction_openai_compatible_api_key: str = ""
    extraction_openai_compatible_model_name: str = ""
    extraction_openai_compatible_base_url: str = ""
    extraction_openai_compatible_timeout_seconds: int = 60
