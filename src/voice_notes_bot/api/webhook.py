"""Telegram webhook endpoints."""

from typing import Any

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from voice_notes_bot.clients import GeminiClient, TelegramClient
from voice_notes_bot.config.settings import AppSettings
from voice_notes_bot.logger import get_logger
from voice_notes_bot.schemas import TelegramUpdate
from voice_notes_bot.services import (
    InboundEvent,
    VoiceRequest,
    acknowledge_callback,
    classify_update,
    process_voice_message,
    resolve_prompts,
)

router = APIRouter(prefix="/webhook", tags=["webhook"])
logger = get_logger(__name__)

ACKNOWLEDGED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def acknowledge() -> JSONResponse:
    """Return the fixed acknowledgement sent for every webhook request."""

    return JSONResponse(content={"ok": True})


@router.api_route("/telegram", methods=ACKNOWLEDGED_METHODS, summary="Telegram webhook")
async def handle_telegram_webhook(request: Request) -> JSONResponse:
    """Receive a Telegram update and always answer ``{"ok": true}``."""

    if request.method != "POST":
        logger.debug("Ignoring %s request to the Telegram webhook", request.method)
        return acknowledge()

    update = await parse_update(request)
    if update is None:
        return acknowledge()

    events = classify_update(update)
    logger.info(
        "Received Telegram webhook payload: update_id=%s, events=%s",
        update.update_id,
        [event.kind for event in events] or "<none>",
    )

    if events:
        await dispatch_events(request, events)
    return acknowledge()


async def parse_update(request: Request) -> TelegramUpdate | None:
    """Decode and validate the request body, returning ``None`` for unusable payloads."""

    try:
        body: Any = await request.json()
    except ValueError:
        logger.warning("Telegram webhook body is not valid JSON; ignoring update")
        return None

    try:
        return TelegramUpdate.model_validate(body)
    except ValidationError as exc:
        logger.warning(
            "Telegram webhook payload failed validation; ignoring update: %s",
            exc.errors(include_url=False),
        )
        return None


async def dispatch_events(request: Request, events: list[InboundEvent]) -> None:
    """Run the flow for each event. Errors are logged and never reach the response."""

    telegram_client = get_telegram_client_from_request(request)
    if telegram_client is None:
        logger.warning("Telegram client unavailable; skipping %d event(s)", len(events))
        return

    gemini_client = get_gemini_client_from_request(request)
    http_client = get_http_client_from_request(request)
    settings = get_settings_from_request(request)
    timeout = settings.http_timeout_seconds if settings else None

    for event in events:
        try:
            if isinstance(event, VoiceRequest):
                if gemini_client is None:
                    logger.warning("Gemini client unavailable; skipping voice message")
                    continue

                transcription_prompt, note_prompt = resolve_prompts(settings)
                outcome = await process_voice_message(
                    event,
                    telegram_client=telegram_client,
                    gemini_client=gemini_client,
                    transcription_prompt=transcription_prompt,
                    note_prompt=note_prompt,
                    http_client=http_client,
                    timeout=timeout,
                )
                logger.info("Voice message flow finished: outcome=%s", outcome.value)
            else:
                await acknowledge_callback(
                    event,
                    telegram_client=telegram_client,
                    http_client=http_client,
                    timeout=timeout,
                )
        except Exception:
            logger.exception("Failed to handle %s event", event.kind)


def get_telegram_client_from_request(request: Request) -> TelegramClient | None:
    """Return the configured Telegram client from the FastAPI application state."""

    telegram_client = getattr(request.app.state, "telegram_client", None)
    if telegram_client is None:
        return None
    if not isinstance(telegram_client, TelegramClient):
        type_name = type(telegram_client).__name__
        logger.warning("Unexpected telegram_client type on app state: %s", type_name)
        return None
    return telegram_client


def get_gemini_client_from_request(request: Request) -> GeminiClient | None:
    """Return the configured Gemini client from the FastAPI application state."""

    gemini_client = getattr(request.app.state, "gemini_client", None)
    if gemini_client is None:
        return None
    if not isinstance(gemini_client, GeminiClient):
        type_name = type(gemini_client).__name__
        logger.warning("Unexpected gemini_client type on app state: %s", type_name)
        return None
    return gemini_client


def get_http_client_from_request(request: Request) -> httpx.AsyncClient | None:
    http_client = getattr(request.app.state, "http_client", None)
    if isinstance(http_client, httpx.AsyncClient):
        return http_client
    return None


def get_settings_from_request(request: Request) -> AppSettings | None:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, AppSettings):
        return settings
    return None
