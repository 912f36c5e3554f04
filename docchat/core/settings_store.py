"""Persistence for the user's generation backend choice.

The API settings (provider, credential, model id, temperature) live in a small
JSON file next to the application. Missing or unreadable files fall back to
the defaults so a broken settings file never prevents the app from starting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

import httpx
import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from docchat.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)


class ApiSettings(BaseModel):
    provider: Literal["local", "openai"] = "local"
    api_key: str = ""
    model: str = "meta-llama/Meta-Llama-3-8B-Instruct"
    temperature: float = Field(0.7, ge=0.0, le=2.0)


DEFAULT_API_SETTINGS = ApiSettings()


def _settings_path(path: str | Path | None) -> Path:
    return Path(path) if path is not None else Path(get_settings().settings_path)


def load_api_settings(path: str | Path | None = None) -> ApiSettings:
    """Read persisted settings, merging them over the defaults."""
    settings_file = _settings_path(path)
    if not settings_file.exists():
        return DEFAULT_API_SETTINGS.model_copy()

    try:
        stored = json.loads(settings_file.read_text(encoding="utf-8"))
        merged = {**DEFAULT_API_SETTINGS.model_dump(), **stored}
        return ApiSettings.model_validate(merged)
    except (OSError, ValueError, TypeError, ValidationError) as exc:
        logger.error("api_settings_load_failed", path=str(settings_file), error=str(exc))
        return DEFAULT_API_SETTINGS.model_copy()


def save_api_settings(settings: ApiSettings, path: str | Path | None = None) -> None:
    settings_file = _settings_path(path)
    try:
        settings_file.parent.mkdir(parents=True, exist_ok=True)
        settings_file.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
        logger.info("api_settings_saved", path=str(settings_file), provider=settings.provider)
    except OSError as exc:
        logger.error("api_settings_save_failed", path=str(settings_file), error=str(exc))


async def check_api_settings(
    settings: ApiSettings,
    app_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> bool:
    """Check that the configured provider is usable."""
    if settings.provider == "local":
        return True

    app_settings = app_settings or get_settings()
    client = AsyncOpenAI(
        api_key=settings.api_key or "missing",
        base_url=app_settings.openai_base_url,
        timeout=app_settings.request_timeout,
        max_retries=0,
        http_client=http_client,
    )
    try:
        await client.models.list()
        return True
    except Exception as exc:
        logger.warning("api_settings_test_failed", provider=settings.provider, error=str(exc))
        return False
    finally:
        if http_client is None:
            await client.close()
