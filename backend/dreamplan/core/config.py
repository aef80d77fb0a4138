"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "DreamPlan Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://dreamplan@localhost:5432/dreamplan"
    cors_allow_origins: list[str] = ["*"]
    llm_api_key: str | None = None
    llm_base_url: str = "https://ai.gateway.lovable.dev/v1"
    llm_model: str = "google/gemini-2.5-flash"
    youtube_api_key: str | None = None
    youtube_search_url: str = "https://www.googleapis.com/youtube/v3/search"
    http_timeout_seconds: float = 30.0
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "dreamplan"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    reminder_job_minute: int = 0
    jobs_run_on_startup: bool = False
    chat_session_idle_minutes: int = 60
    notifications_enabled: bool = False
    notifications_provider: str = "noop"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
