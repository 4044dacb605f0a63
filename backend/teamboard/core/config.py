"""Environment-driven application settings."""

from __future__ import annotations

from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

GROQ_CHAT_COMPLETIONS_URL = "https://api.groq.com/openai/v1/chat/completions"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./teamboard.db"
    db_auto_create: bool = True

    # Comma separated list of allowed browser origins.
    cors_origins: str = "http://localhost:5173"

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12

    rate_limit_enabled: bool = True
    rate_limit_max: int = 100
    rate_limit_window_seconds: int = 15 * 60
    auth_rate_limit_max: int = 5
    ai_rate_limit_max: int = 10
    ai_rate_limit_window_seconds: int = 60

    llm_api_key: str = ""
    llm_base_url: str = GROQ_CHAT_COMPLETIONS_URL
    llm_model: str = "llama-3.1-8b-instant"
    llm_timeout_seconds: float = 20.0

    typing_ttl_seconds: float = 10.0
    typing_sweep_interval_seconds: float = 2.0

    max_page_size: int = 100
    max_pagination_offset: int = 10_000
    max_date_range_days: int = 730

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def jwt_expires_in(self) -> timedelta:
        return timedelta(minutes=self.jwt_expires_minutes)

    @property
    def llm_enabled(self) -> bool:
        return bool(self.llm_api_key.strip())


settings = Settings()
