"""Application settings loaded from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


IGNORE_DOTENV_ENV_VAR = "VOICE_NOTES_BOT_IGNORE_DOTENV"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_TELEGRAM_API_BASE_URL = "https://api.telegram.org"
DEFAULT_GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class AppSettings(BaseSettings):
    """Centralized configuration values for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN"),
    )
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default=DEFAULT_GEMINI_MODEL, alias="GEMINI_MODEL")
    telegram_api_base_url: str = Field(
        default=DEFAULT_TELEGRAM_API_BASE_URL, alias="TELEGRAM_API_BASE_URL"
    )
    gemini_api_base_url: str = Field(
        default=DEFAULT_GEMINI_API_BASE_URL, alias="GEMINI_API_BASE_URL"
    )
    # None disables the timeout entirely.
    http_timeout_seconds: Optional[float] = Field(default=None, alias="HTTP_TIMEOUT_SECONDS")
    transcription_prompt: Optional[str] = Field(default=None, alias="TRANSCRIPTION_PROMPT")
    note_prompt: Optional[str] = Field(default=None, alias="NOTE_PROMPT")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )


@lru_cache
def get_settings(*, ignore_dotenv: Optional[bool] = None) -> AppSettings:
    """Return a cached instance of application settings.

    Parameters
    ----------
    ignore_dotenv:
        Explicitly control whether the `.env` file should be ignored. When ``None``
        (the default), the environment variable ``VOICE_NOTES_BOT_IGNORE_DOTENV``
        controls the behavior (case-insensitive truthy values disable the file).
    """

    if ignore_dotenv is None:
        env_override = os.getenv(IGNORE_DOTENV_ENV_VAR, "")
        ignore_dotenv = env_override.lower() in {"1", "true", "yes", "on"}

    if ignore_dotenv:
        return AppSettings(_env_file=None)  # type: ignore[call-arg]

    return AppSettings()
