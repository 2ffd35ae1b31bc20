"""Pydantic models representing Telegram webhook payloads.

Malformed optional parts (a broken ``voice`` object, an unparsable
``callback_query`` and so on) are dropped to ``None`` instead of failing the
whole update, so the remaining parts of the update are still handled.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import (
    BaseModel,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from voice_notes_bot.logger import get_logger

logger = get_logger(__name__)


def _validate_or_drop(
    value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
) -> Any:
    try:
        return handler(value)
    except ValidationError as exc:
        logger.warning(
            "Dropping malformed %s from Telegram update: %s",
            info.field_name,
            exc.errors(include_url=False),
        )
        return None


class TelegramChat(BaseModel):
    """Basic information about a Telegram chat."""

    id: int
    title: Optional[str] = None
    username: Optional[str] = None
    type: Optional[str] = None


class TelegramVoice(BaseModel):
    """Reference to a voice recording held in Telegram file storage."""

    file_id: str
    file_unique_id: Optional[str] = None
    duration: Optional[int] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


class TelegramMessage(BaseModel):
    """Subset of Telegram message fields needed for the project."""

    message_id: Optional[int] = None
    date: Optional[int] = None
    text: Optional[str] = None
    chat: Optional[TelegramChat] = None
    voice: Optional[TelegramVoice] = None
    reply_to_message: Optional[TelegramMessage] = None

    @field_validator("chat", "voice", "reply_to_message", mode="wrap")
    @classmethod
    def drop_malformed_parts(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        return _validate_or_drop(value, handler, info)


class TelegramCallbackQuery(BaseModel):
    """Callback query produced by an inline keyboard button press."""

    id: str
    data: Optional[str] = None
    message: Optional[TelegramMessage] = None

    @field_validator("data", "message", mode="wrap")
    @classmethod
    def drop_malformed_parts(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        return _validate_or_drop(value, handler, info)


class TelegramUpdate(BaseModel):
    """Top-level Telegram update payload."""

    update_id: Optional[int] = None
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None

    @field_validator("update_id", "message", "callback_query", mode="wrap")
    @classmethod
    def drop_malformed_parts(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        return _validate_or_drop(value, handler, info)
