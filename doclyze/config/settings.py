from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "doclyze"
    db_username: str = "doclyze"
    db_password: str = "secret"

    worker_poll_interval_seconds: int = 5
    preparation_batch_size: int = 20
    preparation_concurrency: int = 4
    report_concurrency: int = 4

    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    activation_poll_interval_seconds: float = 5.0
    activation_max_polls: int = 24
    stale_processing_seconds: int = 900

    ai_provider: str = "openai"
    openai_api_key: str = ""
    openai_base_url: str | None = None
    openai_model_name: str = "gpt-4o-mini"
    openai_embedding_model_name: str = "text-embedding-3-small"
    openai_timeout_seconds: int = 60

    storage_backend: str = "local"
    storage_bucket: str = "doclyze"
    storage_files_root: Path = Path("/app/files")
    s3_region: str = "us-east-1"
    signed_url_ttl_seconds: int = 900
    local_cache_dir: Path = Path("/tmp/doclyze")

    search_backend: str = "pgvector"
    chat_top_k: int = 5
    chat_history_turns: int = 10

    renderer: str = "pymupdf"
    gotenberg_url: str = "http://localhost:3000"
    gotenberg_timeout_seconds: int = 60

    api_host: str = "0.0.0.0"
    api_port: int = 8000
