"""Async client for interacting with the Telegram Bot API."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping, Optional, cast

import httpx

from voice_notes_bot.config.settings import AppSettings


class TelegramClientConfigError(ValueError):
    """Raised when the Telegram bot token is missing."""


class TelegramAPIError(RuntimeError):
    """Raised when a Telegram Bot API request fails."""


@dataclass(slots=True)
class TelegramClient:
    """Minimal Telegram client covering the calls the voice note flow needs."""

    bot_token: str
    base_url: str = "https://api.telegram.org"

    def method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.bot_token}/{method}"

    def file_url(self, file_path: str) -> str:
        return f"{self.base_url}/file/bot{self.bot_token}/{file_path.lstrip('/')}"

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        *,
        parse_mode: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> dict[str, Any]:
        """Send a message to a chat and return the Telegram response.

        Parameters
        ----------
        chat_id:
            Target chat identifier.
        text:
            Message body. Must not be blank.
        parse_mode:
            Optional Telegram formatting mode such as ``"HTML"``.
        http_client:
            Optional existing :class:`httpx.AsyncClient` to reuse. When ``None``, a temporary
            client is created.
        timeout:
            Timeout, in seconds, for the temporary client's HTTP request.
        """

        if not text.strip():
            raise ValueError("Telegram messages must contain non-empty text")

        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        return await self._call_method(
            "sendMessage", payload, http_client=http_client, timeout=timeout
        )

    async def edit_message_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> dict[str, Any]:
        """Replace the text of an existing message and return the Telegram response."""

        if not text.strip():
            raise ValueError("Telegram messages must contain non-empty text")

        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
        }
        return await self._call_method(
            "editMessageText", payload, http_client=http_client, timeout=timeout
        )

    async def delete_message(
        self,
        chat_id: int | str,
        message_id: int,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> dict[str, Any]:
        """Delete a message from a chat."""

        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id}
        return await self._call_method(
            "deleteMessage", payload, http_client=http_client, timeout=timeout
        )

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: str = "",
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> dict[str, Any]:
        """Acknowledge a callback query so the client stops showing a spinner."""

        payload: dict[str, Any] = {"callback_query_id": callback_query_id, "text": text}
        return await self._call_method(
            "answerCallbackQuery", payload, http_client=http_client, timeout=timeout
        )

    async def get_file_path(
        self,
        file_id: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> str:
        """Resolve a file identifier to its download path on Telegram file storage."""

        url = self.method_url("getFile")

        async def _get(client: httpx.AsyncClient) -> dict[str, Any]:
            response = await client.get(url, params={"file_id": file_id})
            return _decode_response("getFile", response)

        if http_client is not None:
            payload = await _get(http_client)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                payload = await _get(client)

        result = payload.get("result")
        if not isinstance(result, Mapping):
            raise TelegramAPIError("Telegram getFile response did not include a result")

        file_path = cast(Mapping[str, Any], result).get("file_path")
        if not isinstance(file_path, str) or not file_path:
            raise TelegramAPIError("Telegram getFile response did not include a file_path")

        return file_path

    async def download_file(
        self,
        file_path: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 10.0,
    ) -> bytes:
        """Download raw file content previously resolved with :meth:`get_file_path`."""

        url = self.file_url(file_path)

        async def _download(client: httpx.AsyncClient) -> bytes:
            response = await client.get(url)

            if response.status_code != HTTPStatus.OK:
                raise TelegramAPIError(
                    "Telegram file download failed: "
                    f"status={response.status_code}, path={file_path}"
                )

            return response.content

        if http_client is not None:
            return await _download(http_client)

        async with httpx.AsyncClient(timeout=timeout) as client:
            return await _download(client)

    async def _call_method(
        self,
        method: str,
        payload: dict[str, Any],
        *,
        http_client: Optional[httpx.AsyncClient],
        timeout: Optional[float],
    ) -> dict[str, Any]:
        url = self.method_url(method)

        async def _post(client: httpx.AsyncClient) -> dict[str, Any]:
            response = await client.post(url, json=payload)
            return _decode_response(method, response)

        if http_client is not None:
            return await _post(http_client)

        async with httpx.AsyncClient(timeout=timeout) as client:
            return await _post(client)


def _decode_response(method: str, response: httpx.Response) -> dict[str, Any]:
    """Validate a Bot API response and return its decoded JSON object."""

    if response.status_code != HTTPStatus.OK:
        raise TelegramAPIError(
            f"Telegram {method} request failed: "
            f"status={response.status_code}, body={response.text}"
        )

    try:
        payload_raw = response.json()
    except ValueError as exc:
        raise TelegramAPIError(f"Telegram {method} response was not valid JSON") from exc

    if not isinstance(payload_raw, dict):
        raise TelegramAPIError(f"Telegram {method} response had unexpected structure")

    payload_obj = cast(dict[str, Any], payload_raw)

    if not bool(payload_obj.get("ok", False)):
        description = str(payload_obj.get("description", "Unknown error"))
        raise TelegramAPIError(f"Telegram {method} failed: {description}")

    return payload_obj


def build_telegram_client(settings: AppSettings) -> TelegramClient:
    """Create a TelegramClient instance from application settings."""

    if not settings.telegram_bot_token:
        raise TelegramClientConfigError(
            "TELEGRAM_BOT_TOKEN is required to instantiate TelegramClient"
        )

    return TelegramClient(
        bot_token=settings.telegram_bot_token,
        base_url=settings.telegram_api_base_url,
    )
