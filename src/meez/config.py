"""
meez - Configuration and settings.

All settings come from environment variables (or a local .env file).
Provider keys are optional so offline pieces (extraction, ingredient
parsing) work without credentials.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the parsing pipeline.

    Provider keys, datastore credentials, model names and the tuning
    knobs of the pipeline (timeouts, prompt ceiling, fuzzy threshold).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model providers
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    # Supabase (recipe cache)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    cache_table: str = "processed_recipes_cache"

    # Application
    meez_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Models
    gemini_model: str = "gemini-2.5-flash"
    openai_model: str = "gpt-4-turbo"
    embedding_model: str = "text-embedding-3-small"

    # Pipeline tuning
    llm_timeout_seconds: float = 60.0
    max_prompt_chars: int = 250_000
    fetch_timeout_seconds: float = 15.0
    fuzzy_match_threshold: float = 0.55
    enable_embeddings: bool = True

    # Prompt logging
    # MEEZ_LOG_PROMPTS=1 - log to local files (dev only)
    meez_log_prompts: bool = False

    @property
    def has_cache_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
