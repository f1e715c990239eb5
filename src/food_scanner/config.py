"""Application configuration."""

import os
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_REQUIRED_LLM_SETTINGS = {
    "openrouter_api_key": "OPENROUTER_API_KEY",
    "openrouter_api_url": "OPENROUTER_API_URL",
    "openrouter_model": "OPENROUTER_MODEL",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openrouter_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "openrouter_api_key", "OPENROUTER_API_KEY", "VITE_OPENROUTER_API_KEY"
        ),
    )
    openrouter_api_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        validation_alias=AliasChoices(
            "openrouter_api_url", "OPENROUTER_API_URL", "VITE_OPENROUTER_API_URL"
        ),
    )
    openrouter_model: str = Field(
        default="",
        validation_alias=AliasChoices(
            "openrouter_model", "OPENROUTER_MODEL", "VITE_OPENROUTER_MODEL"
        ),
    )
    app_referer: str = "http://localhost"
    app_title: str = "AI Food Detection Camera"
    chat_backend: Literal["httpx", "openai"] = "httpx"
    request_timeout_seconds: float = 60.0
    include_health_checks: bool = True
    log_level: str = "INFO"
    camera_width: int = 1280
    camera_height: int = 720
    camera_rear_index: int = 0
    camera_front_index: int = 1
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
        populate_by_name=True,
    )


def missing_llm_settings(settings: Settings) -> list[str]:
    """Return env names of LLM settings that are unset or blank."""
    return [
        env_name
        for field_name, env_name in _REQUIRED_LLM_SETTINGS.items()
        if not str(getattr(settings, field_name) or "").strip()
    ]
