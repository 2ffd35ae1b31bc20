"""Service layer modules for the Voice Notes bot."""

from .prompts import NOTE_PROMPT, TRANSCRIPTION_PROMPT, resolve_prompts
from .updates import (
    CallbackRequest,
    InboundEvent,
    VoiceRequest,
    classify_update,
    extract_callback_request,
    extract_voice_request,
)
from .voice_notes import (
    VoiceNoteOutcome,
    acknowledge_callback,
    build_result_message,
    process_voice_message,
)

__all__ = [
    "NOTE_PROMPT",
    "TRANSCRIPTION_PROMPT",
    "resolve_prompts",
    "CallbackRequest",
    "InboundEvent",
    "VoiceRequest",
    "classify_update",
    "extract_callback_request",
    "extract_voice_request",
    "VoiceNoteOutcome",
    "acknowledge_callback",
    "build_result_message",
    "process_voice_message",
]
