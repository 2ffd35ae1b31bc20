from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from voice_notes_bot import __version__
from voice_notes_bot.api import webhook_router
from voice_notes_bot.clients import build_gemini_client, build_telegram_client
from voice_notes_bot.config.settings import AppSettings, get_settings
from voice_notes_bot.logger import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""

    logger.info("Voice Notes bot is starting up")
    settings = get_settings()
    configure_logging(settings.log_level)
    validate_critical_settings(settings)

    app.state.settings = settings
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    if settings.telegram_bot_token:
        app.state.telegram_client = build_telegram_client(settings)
        logger.info("Telegram client initialized successfully")
    else:
        app.state.telegram_client = None
        logger.info("Telegram client not initialized due to missing bot token")

    if settings.gemini_api_key:
        app.state.gemini_client = build_gemini_client(settings)
        logger.info("Gemini client initialized successfully (model=%s)", settings.gemini_model)
    else:
        app.state.gemini_client = None
        logger.info("Gemini client not initialized due to missing API key")

    try:
        yield
    finally:
        await app.state.http_client.aclose()
        app.state.http_client = None
        app.state.telegram_client = None
        app.state.gemini_client = None
        logger.info("Voice Notes bot is shutting down")


app = FastAPI(title="Voice Notes Bot", version=__version__, lifespan=lifespan)
app.include_router(webhook_router)


@app.get("/health", summary="Health check")
async def health_check() -> JSONResponse:
    """Simple endpoint to verify the service is running."""

    return JSONResponse(content={"status": "ok"})


def validate_critical_settings(settings: AppSettings) -> None:
    """Ensure critical settings are present and non-empty."""

    missing: list[str] = []
    if not settings.telegram_bot_token:
        missing.append("TELEGRAM_BOT_TOKEN")
    if not settings.gemini_api_key:
        missing.append("GEMINI_API_KEY")

    if missing:
        logger.warning(
            "Missing recommended environment variables: %s", ", ".join(missing)
        )
    else:
        logger.info("All critical environment variables are present")
