"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "MentorMe Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://mentorme@localhost:5432/mentorme"
    active_limit: int = 2
    goal_limit_enforcement: Literal["hard", "soft"] = "hard"
    habit_limit_enforcement: Literal["hard", "soft"] = "hard"
    voice_listen_timeout_seconds: float = 15.0
    voice_error_reset_seconds: float = 1.0
    voice_shake_enabled: bool = False
    voice_shake_cooldown_seconds: float = 5.0
    openai_api_key: str | None = None
    transcript_model: str = "gpt-4o-mini"
    milestone_model: str = "gpt-4o-mini"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "mentorme"
    notifications_provider: str = "noop"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
