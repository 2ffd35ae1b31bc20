import pytest
from fakes import FakeBackend

from voice_notes_bot.clients import GeminiClient, TelegramClient


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def telegram_client() -> TelegramClient:
    return TelegramClient(bot_token="TOKEN")


@pytest.fixture
def gemini_client() -> GeminiClient:
    return GeminiClient(api_key="KEY")
