"""Classification of inbound Telegram updates into actionable events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from voice_notes_bot.schemas import TelegramMessage, TelegramUpdate


@dataclass(slots=True, frozen=True)
class VoiceRequest:
    """A voice recording to transcribe and the chat the result goes to."""

    chat_id: int
    file_id: str
    source: Literal["direct", "reply"] = "direct"
    kind: Literal["voice"] = "voice"


@dataclass(slots=True, frozen=True)
class CallbackRequest:
    """A callback query that only needs to be acknowledged."""

    callback_query_id: str
    kind: Literal["callback"] = "callback"


InboundEvent = Union[VoiceRequest, CallbackRequest]


def extract_voice_request(message: Optional[TelegramMessage]) -> Optional[VoiceRequest]:
    """Locate a voice attachment on the message or on the message it replies to.

    Forwarded voice messages carry the same ``voice`` field as direct ones. When
    the voice comes from ``reply_to_message`` the reply still goes to the chat of
    the inbound message, not the original sender's.
    """

    if message is None or message.chat is None:
        return None

    if message.voice is not None:
        return VoiceRequest(chat_id=message.chat.id, file_id=message.voice.file_id)

    replied = message.reply_to_message
    if replied is not None and replied.voice is not None:
        return VoiceRequest(
            chat_id=message.chat.id,
            file_id=replied.voice.file_id,
            source="reply",
        )

    return None


def extract_callback_request(update: TelegramUpdate) -> Optional[CallbackRequest]:
    if update.callback_query is None:
        return None
    return CallbackRequest(callback_query_id=update.callback_query.id)


def classify_update(update: TelegramUpdate) -> list[InboundEvent]:
    """Return the events to handle for an update, voice first, at most one of each."""

    events: list[InboundEvent] = []

    voice = extract_voice_request(update.message)
    if voice is not None:
        events.append(voice)

    callback = extract_callback_request(update)
    if callback is not None:
        events.append(callback)

    return events
