"""Client integrations for external services."""

from .gemini import (
    GeminiAPIError,
    GeminiClient,
    GeminiClientConfigError,
    build_gemini_client,
    extract_candidate_text,
)
from .telegram import (
    TelegramAPIError,
    TelegramClient,
    TelegramClientConfigError,
    build_telegram_client,
)

__all__ = [
    "GeminiAPIError",
    "GeminiClient",
    "GeminiClientConfigError",
    "build_gemini_client",
    "extract_candidate_text",
    "TelegramAPIError",
    "TelegramClient",
    "TelegramClientConfigError",
    "build_telegram_client",
]
