"""Application configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_max_tokens: int = Field(default=2000, alias="OPENAI_MAX_TOKENS")
    openai_temperature: float = Field(default=0.7, alias="OPENAI_TEMPERATURE")
    openai_timeout: float = Field(default=30.0, alias="OPENAI_TIMEOUT")
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_access_token: str | None = Field(default=None, alias="TMDB_ACCESS_TOKEN")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_language: str = Field(default="en-US")
    tmdb_timeout: float = Field(default=5.0, alias="TMDB_TIMEOUT")
    tmdb_lookup_timeout: float = Field(default=10.0, alias="TMDB_LOOKUP_TIMEOUT")
    daily_request_limit: int = Field(default=200, alias="DAILY_REQUEST_LIMIT")
    share_ttl_days: int = Field(default=30, alias="SHARE_TTL_DAYS")
    langchain_tracing_v2: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")
    langchain_api_key: str | None = Field(default=None, alias="LANGCHAIN_API_KEY")
    langchain_project: str | None = Field(default="movienight", alias="LANGCHAIN_PROJECT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
