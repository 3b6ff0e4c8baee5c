from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    storage_backend: str = "file"
    storage_dir: Path = Path(".aegis")
    storage_quota_bytes: int = 5_000_000

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "aegis"
    db_username: str = "aegis"
    db_password: str = "secret"

    task_history_limit: int = 50
    content_persist_limit_bytes: int = 500_000
    audit_log_cap: int = 2000
    analysis_size_limit_bytes: int = 4_000_000

    upload_delay_seconds: float = 0.8
    analysis_skip_delay_seconds: float = 1.0
    sanitize_total_seconds: float = 3.0

    pdf_engine: str = "pymupdf"
    # TrueType file ReportLab uses for characters outside cp1252.
    pdf_unicode_font_path: Path | None = None

    analysis_provider: str = "example"
    analysis_api_key: str = ""
    analysis_model_name: str = "gpt-4o-mini"
    analysis_base_url: str = ""
    analysis_timeout_seconds: int = 30
