import logging
from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import Request
from httpx import ASGITransport, AsyncClient

from fakes import FakeBackend
from voice_notes_bot.api.webhook import (
    get_gemini_client_from_request,
    get_telegram_client_from_request,
)
from voice_notes_bot.clients import GeminiClient, TelegramClient
from voice_notes_bot.main import app

_STATE_KEYS = ("telegram_client", "gemini_client", "http_client", "settings")


@pytest_asyncio.fixture
async def wired_app(backend: FakeBackend) -> AsyncIterator[FakeBackend]:
    """Point the application state at clients backed by the fake backend."""

    original = {key: getattr(app.state, key, None) for key in _STATE_KEYS}
    async with backend.http_client() as http_client:
        app.state.telegram_client = TelegramClient(bot_token="TOKEN")
        app.state.gemini_client = GeminiClient(api_key="KEY")
        app.state.http_client = http_client
        app.state.settings = None
        try:
            yield backend
        finally:
            for key, value in original.items():
                setattr(app.state, key, value)


async def _post(payload: Any = None, *, content: bytes | None = None) -> Any:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        if content is not None:
            return await client.post("/webhook/telegram", content=content)
        return await client.post("/webhook/telegram", json=payload)


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def test_non_post_requests_are_acknowledged(wired_app: FakeBackend, method: str) -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.request(method, "/webhook/telegram")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls == []


@pytest.mark.asyncio
async def test_head_request_is_acknowledged(wired_app: FakeBackend) -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.head("/webhook/telegram")

    assert response.status_code == 200
    assert wired_app.calls == []


@pytest.mark.asyncio
async def test_update_without_voice_or_callback_makes_no_calls(wired_app: FakeBackend) -> None:
    response = await _post(
        {"update_id": 1, "message": {"message_id": 5, "text": "hi", "chat": {"id": 42}}}
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls == []


@pytest.mark.asyncio
async def test_invalid_json_is_acknowledged(wired_app: FakeBackend) -> None:
    response = await _post(content=b"{not json")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls == []


@pytest.mark.asyncio
async def test_malformed_message_is_ignored(
    wired_app: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING):
        response = await _post({"update_id": 2, "message": "not-a-message"})

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls == []
    assert "Dropping malformed message" in caplog.text


@pytest.mark.asyncio
async def test_non_object_update_is_ignored(
    wired_app: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING):
        response = await _post([1, 2])

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls == []
    assert "failed validation" in caplog.text


@pytest.mark.asyncio
async def test_malformed_voice_does_not_block_callback(
    wired_app: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    payload = {
        "update_id": 9,
        "message": {"message_id": 15, "chat": {"id": 42}, "voice": {}},
        "callback_query": {"id": "cb-12"},
    }

    with caplog.at_level(logging.WARNING):
        response = await _post(payload)

    assert response.json() == {"ok": True}
    assert wired_app.calls == [
        ("answerCallbackQuery", {"callback_query_id": "cb-12", "text": ""})
    ]
    assert "Dropping malformed voice" in caplog.text


@pytest.mark.asyncio
async def test_voice_message_is_processed(wired_app: FakeBackend) -> None:
    payload = {
        "update_id": 3,
        "message": {
            "message_id": 10,
            "chat": {"id": 42, "type": "private"},
            "voice": {"file_id": "abc", "duration": 3, "mime_type": "audio/ogg"},
        },
    }

    response = await _post(payload)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert wired_app.calls_named("getFile") == [{"file_id": "abc"}]
    final = wired_app.calls_named("sendMessage")[-1]
    assert final["chat_id"] == 42
    assert "Hello world." in final["text"]
    assert "Hello\n\n• world" in final["text"]
    assert wired_app.names()[-2:] == ["deleteMessage", "sendMessage"]


@pytest.mark.asyncio
async def test_reply_to_voice_is_answered_in_replying_chat(wired_app: FakeBackend) -> None:
    payload = {
        "update_id": 4,
        "message": {
            "message_id": 11,
            "chat": {"id": 555, "type": "group"},
            "text": "transcribe this please",
            "reply_to_message": {
                "message_id": 9,
                "chat": {"id": 999, "type": "private"},
                "voice": {"file_id": "replied-voice"},
            },
        },
    }

    response = await _post(payload)

    assert response.json() == {"ok": True}
    assert wired_app.calls_named("getFile") == [{"file_id": "replied-voice"}]
    assert {call["chat_id"] for call in wired_app.calls_named("sendMessage")} == {555}


@pytest.mark.asyncio
async def test_callback_query_is_acknowledged(wired_app: FakeBackend) -> None:
    response = await _post({"update_id": 5, "callback_query": {"id": "cb-9", "data": "x"}})

    assert response.json() == {"ok": True}
    assert wired_app.calls == [
        ("answerCallbackQuery", {"callback_query_id": "cb-9", "text": ""})
    ]


@pytest.mark.asyncio
async def test_flow_errors_never_reach_the_response(
    wired_app: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    wired_app.send_ok = False
    payload = {
        "update_id": 6,
        "message": {"message_id": 12, "chat": {"id": 42}, "voice": {"file_id": "abc"}},
        "callback_query": {"id": "cb-10"},
    }

    with caplog.at_level(logging.ERROR):
        response = await _post(payload)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "Failed to handle voice event" in caplog.text
    assert wired_app.names() == ["sendMessage", "answerCallbackQuery"]


@pytest.mark.asyncio
async def test_missing_clients_skip_processing(
    wired_app: FakeBackend, caplog: pytest.LogCaptureFixture
) -> None:
    app.state.telegram_client = None
    payload = {
        "update_id": 7,
        "message": {"message_id": 13, "chat": {"id": 42}, "voice": {"file_id": "abc"}},
    }

    with caplog.at_level(logging.WARNING):
        response = await _post(payload)

    assert response.json() == {"ok": True}
    assert wired_app.calls == []
    assert "Telegram client unavailable" in caplog.text


@pytest.mark.asyncio
async def test_missing_gemini_client_still_answers_callbacks(wired_app: FakeBackend) -> None:
    app.state.gemini_client = None
    payload = {
        "update_id": 8,
        "message": {"message_id": 14, "chat": {"id": 42}, "voice": {"file_id": "abc"}},
        "callback_query": {"id": "cb-11"},
    }

    response = await _post(payload)

    assert response.json() == {"ok": True}
    assert wired_app.names() == ["answerCallbackQuery"]


def _build_request_for_app() -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "app": app,
        "method": "GET",
        "path": "/",
        "headers": [],
        "query_string": b"",
        "server": ("testserver", 80),
        "client": ("client", 50000),
        "scheme": "http",
    }
    return Request(scope)


def test_get_telegram_client_from_request_warns_on_wrong_type(
    caplog: pytest.LogCaptureFixture,
) -> None:
    original = getattr(app.state, "telegram_client", None)
    app.state.telegram_client = "not-a-client"
    try:
        request = _build_request_for_app()
        with caplog.at_level(logging.WARNING):
            result = get_telegram_client_from_request(request)
    finally:
        app.state.telegram_client = original

    assert result is None
    assert "Unexpected telegram_client type" in caplog.text


def test_get_gemini_client_from_request_returns_instance() -> None:
    original = getattr(app.state, "gemini_client", None)
    try:
        gemini_client = GeminiClient(api_key="KEY")
        app.state.gemini_client = gemini_client

        assert get_gemini_client_from_request(_build_request_for_app()) is gemini_client
    finally:
        app.state.gemini_client = original
