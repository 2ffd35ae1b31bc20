"""Shared Pydantic models used across the application."""

from .telegram import (
    TelegramCallbackQuery,
    TelegramChat,
    TelegramMessage,
    TelegramUpdate,
    TelegramVoice,
)

__all__ = [
    "TelegramCallbackQuery",
    "TelegramChat",
    "TelegramMessage",
    "TelegramUpdate",
    "TelegramVoice",
]
