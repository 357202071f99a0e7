from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docvault"
    db_username: str = "docvault"
    db_password: str = "secret"
    db_pool_max_size: int = Field(10, ge=1)

    worker_id: str = ""
    max_job_attempts: int = Field(5, ge=1)
    job_poll_interval_seconds: int = 2
    backoff_base_seconds: int = Field(30, ge=0)
    backoff_max_seconds: int = Field(3600, ge=0)
    backoff_jitter_ratio: float = Field(0.2, ge=0.0, le=1.0)
    job_stale_timeout_seconds: int = Field(900, ge=1)
    reaper_interval_seconds: int = Field(60, ge=1)
    fail_fast_payload_errors: bool = False

    storage_backend: str = "local"
    storage_local_root: str = "/app/files"
    storage_public_base_url: str = "http://localhost:8080/files"
    storage_signing_secret: str = "change-me"
    azure_storage_connection_string: str = ""
    azure_storage_container: str = "documents"

    asset_presign_ttl_seconds: int = Field(300, ge=1)
    asset_max_page_size: int = Field(100, ge=1)

    pdf_engine: str = "pdfplumber"
    ocr_enabled: bool = True
    ocrmypdf_binary: str = "ocrmypdf"
    ocr_min_text_length: int = 50
    thumbnail_max_size: int = 512
    preview_max_size: int = 2048
