"""Voice message processing and callback acknowledgement flows."""

from __future__ import annotations

import base64
import html
from enum import Enum
from typing import Any, Mapping, Optional, cast

import httpx

from voice_notes_bot.clients import GeminiClient, TelegramAPIError, TelegramClient
from voice_notes_bot.logger import get_logger
from voice_notes_bot.services.prompts import NOTE_PROMPT, TRANSCRIPTION_PROMPT
from voice_notes_bot.services.updates import CallbackRequest, VoiceRequest

logger = get_logger(__name__)

PROCESSING_TEXT = "⏳ Processing the voice message..."
NOT_RECOGNIZED_TEXT = "❌ Could not recognize speech"
ERROR_TEXT_PREFIX = "❌ Processing error: "
TRANSCRIPTION_HEADER = "📝 <b>Transcription:</b>"
NOTE_HEADER = "📋 <b>Note:</b>"
DIVIDER = "━━━━━━━━━━━━━━━"
RESULT_PARSE_MODE = "HTML"
VOICE_MIME_TYPE = "audio/ogg"
# Bot API limit for sendMessage text.
TELEGRAM_MESSAGE_LIMIT = 4096


class VoiceNoteOutcome(str, Enum):
    """How a voice processing flow ended."""

    COMPLETED = "completed"
    NOT_RECOGNIZED = "not_recognized"
    FAILED = "failed"


def encode_audio(audio: bytes) -> str:
    return base64.b64encode(audio).decode("ascii")


def build_result_message(transcription: str, note: str) -> str:
    """Compose the final HTML reply holding both the transcription and the note."""

    return (
        f"{TRANSCRIPTION_HEADER}\n{html.escape(transcription, quote=False)}\n\n"
        f"{DIVIDER}\n\n"
        f"{NOTE_HEADER}\n{html.escape(note, quote=False)}"
    )


def build_error_text(error: BaseException) -> str:
    detail = str(error) or type(error).__name__
    return f"{ERROR_TEXT_PREFIX}{detail}"


def get_sent_message_id(response: Mapping[str, Any]) -> int:
    """Return the ``message_id`` of a sendMessage response."""

    result = response.get("result")
    if isinstance(result, Mapping):
        message_id = cast(Mapping[str, Any], result).get("message_id")
        if isinstance(message_id, int):
            return message_id
    raise TelegramAPIError("Telegram sendMessage response did not include a message_id")


async def process_voice_message(
    request: VoiceRequest,
    *,
    telegram_client: TelegramClient,
    gemini_client: GeminiClient,
    transcription_prompt: str = TRANSCRIPTION_PROMPT,
    note_prompt: str = NOTE_PROMPT,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> VoiceNoteOutcome:
    """Transcribe a voice message, turn it into a note and reply with both.

    An interim message is posted first. Failures to post it propagate to the
    caller. Any later failure is reported by editing the interim message, or by
    a fresh message once the interim one is deleted, and the flow returns
    :attr:`VoiceNoteOutcome.FAILED` instead of raising.
    """

    chat_id = request.chat_id
    logger.info(
        "Processing voice message: chat_id=%s, file_id=%s, source=%s",
        chat_id,
        request.file_id,
        request.source,
    )

    interim = await telegram_client.send_message(
        chat_id, PROCESSING_TEXT, http_client=http_client, timeout=timeout
    )
    interim_message_id = get_sent_message_id(interim)
    interim_deleted = False

    try:
        file_path = await telegram_client.get_file_path(
            request.file_id, http_client=http_client, timeout=timeout
        )
        audio = await telegram_client.download_file(
            file_path, http_client=http_client, timeout=timeout
        )
        logger.debug("Downloaded voice file %s (%d bytes)", file_path, len(audio))

        transcription = await gemini_client.transcribe_audio(
            encode_audio(audio),
            prompt=transcription_prompt,
            mime_type=VOICE_MIME_TYPE,
            http_client=http_client,
            timeout=timeout,
        )
        if not transcription:
            logger.warning("Gemini returned no transcription for file_id=%s", request.file_id)
            await telegram_client.edit_message_text(
                chat_id,
                interim_message_id,
                NOT_RECOGNIZED_TEXT,
                http_client=http_client,
                timeout=timeout,
            )
            return VoiceNoteOutcome.NOT_RECOGNIZED

        note = await gemini_client.format_note(
            transcription,
            prompt=note_prompt,
            http_client=http_client,
            timeout=timeout,
        )
        if not note:
            logger.info("Gemini returned no note; falling back to the raw transcription")
            note = transcription

        result = build_result_message(transcription, note)
        if len(result) > TELEGRAM_MESSAGE_LIMIT:
            raise ValueError(
                f"Result is too long for a Telegram message ({len(result)} characters)"
            )

        await telegram_client.delete_message(
            chat_id, interim_message_id, http_client=http_client, timeout=timeout
        )
        interim_deleted = True
        await telegram_client.send_message(
            chat_id,
            result,
            parse_mode=RESULT_PARSE_MODE,
            http_client=http_client,
            timeout=timeout,
        )
    except Exception as exc:
        logger.exception("Voice processing failed for file_id=%s", request.file_id)
        if interim_deleted:
            await telegram_client.send_message(
                chat_id, build_error_text(exc), http_client=http_client, timeout=timeout
            )
        else:
            await telegram_client.edit_message_text(
                chat_id,
                interim_message_id,
                build_error_text(exc),
                http_client=http_client,
                timeout=timeout,
            )
        return VoiceNoteOutcome.FAILED

    logger.info("Voice note delivered: chat_id=%s", chat_id)
    return VoiceNoteOutcome.COMPLETED


async def acknowledge_callback(
    request: CallbackRequest,
    *,
    telegram_client: TelegramClient,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> None:
    """Acknowledge a callback query. Buttons carry no behaviour yet."""

    await telegram_client.answer_callback_query(
        request.callback_query_id, http_client=http_client, timeout=timeout
    )
    logger.info("Acknowledged callback query %s", request.callback_query_id)
