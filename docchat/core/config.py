from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from docchat.core.settings_store import ApiSettings


PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generation backend
    llm_provider: Literal["local", "openai"] = "local"
    temperature: float = 0.7

    # OpenAI-compatible API
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    request_timeout: float = 60.0

    # Local model
    local_model: str = "meta-llama/Meta-Llama-3-8B-Instruct"
    local_max_new_tokens: int = 1024

    # Storage
    database_url: str | None = None
    settings_path: str = str(PROJECT_ROOT / "api_settings.json")

    # Application
    log_level: str = "INFO"
    environment: str = "development"

    # RAG defaults
    chunk_size: int = 1000
    max_relevant_chunks: int = 3
    history_window: int = 6
    max_history_entries: int = 10
    stopword_language: str = "en"

    def with_api_settings(self, api: ApiSettings) -> Settings:
        """Overlay the user's persisted provider choice on top of these settings."""
        update: dict[str, object] = {
            "llm_provider": api.provider,
            "temperature": api.temperature,
        }
        if api.provider == "openai":
            update["openai_api_key"] = api.api_key
            if api.model:
                update["openai_model"] = api.model
        elif api.model:
            update["local_model"] = api.model
        return self.model_copy(update=update)


@lru_cache
def get_settings() -> Settings:
    return Settings()
