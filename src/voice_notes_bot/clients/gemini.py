"""Thin wrapper around the Gemini ``generateContent`` endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, cast

import httpx

from voice_notes_bot.config.settings import (
    DEFAULT_GEMINI_API_BASE_URL,
    DEFAULT_GEMINI_MODEL,
    AppSettings,
)


class GeminiClientConfigError(ValueError):
    """Raised when the Gemini API key is missing."""


class GeminiAPIError(RuntimeError):
    """Raised when a Gemini request fails or the service reports an error."""


_EMPTY_MAPPING: Mapping[str, Any] = MappingProxyType({})


def extract_candidate_text(payload: Mapping[str, Any]) -> Optional[str]:
    """Return the first text part of the first candidate, if there is one."""

    candidates_raw = payload.get("candidates")
    if isinstance(candidates_raw, str) or not isinstance(candidates_raw, Sequence):
        return None
    candidates = cast(Sequence[Any], candidates_raw)
    if not candidates or not isinstance(candidates[0], Mapping):
        return None

    content = cast(Mapping[str, Any], candidates[0]).get("content")
    if not isinstance(content, Mapping):
        return None

    parts_raw = cast(Mapping[str, Any], content).get("parts")
    if isinstance(parts_raw, str) or not isinstance(parts_raw, Sequence):
        return None
    parts = cast(Sequence[Any], parts_raw)
    if not parts or not isinstance(parts[0], Mapping):
        return None

    text: Any = cast(Mapping[str, Any], parts[0]).get("text")
    if not isinstance(text, str) or not text:
        return None
    return text


@dataclass(slots=True)
class GeminiClient:
    """Minimal Gemini client used for transcription and note formatting."""

    api_key: str
    model: str = DEFAULT_GEMINI_MODEL
    base_url: str = DEFAULT_GEMINI_API_BASE_URL

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def transcribe_audio(
        self,
        audio_base64: str,
        *,
        prompt: str,
        mime_type: str = "audio/ogg",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 60.0,
    ) -> Optional[str]:
        """Transcribe base64-encoded audio, returning ``None`` when no text came back."""

        parts: list[dict[str, Any]] = [
            {"inline_data": {"mime_type": mime_type, "data": audio_base64}},
            {"text": prompt},
        ]
        payload = await self.generate_content(parts, http_client=http_client, timeout=timeout)
        return extract_candidate_text(payload)

    async def format_note(
        self,
        transcription: str,
        *,
        prompt: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 60.0,
    ) -> Optional[str]:
        """Restructure a transcription into a note, returning ``None`` when no text came back."""

        parts: list[dict[str, Any]] = [{"text": f"{prompt}\n{transcription}"}]
        payload = await self.generate_content(parts, http_client=http_client, timeout=timeout)
        return extract_candidate_text(payload)

    async def generate_content(
        self,
        parts: list[dict[str, Any]],
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = 60.0,
    ) -> Mapping[str, Any]:
        """POST a single-turn ``contents`` body and return the decoded response."""

        body: dict[str, Any] = {"contents": [{"parts": parts}]}
        params = {"key": self.api_key}

        async def _generate(client: httpx.AsyncClient) -> Mapping[str, Any]:
            response = await client.post(self.endpoint, params=params, json=body)

            try:
                payload_obj: Any = response.json()
            except ValueError:
                payload_obj = None

            if isinstance(payload_obj, Mapping):
                payload_map = cast(Mapping[str, Any], payload_obj)
            else:
                payload_map = _EMPTY_MAPPING

            error_obj: Any = payload_map.get("error")
            if isinstance(error_obj, Mapping):
                error_map = cast(Mapping[str, Any], error_obj)
                message = error_map.get("message")
                raise GeminiAPIError(
                    str(message) if message is not None else str(dict(error_map))
                )
            if error_obj:
                raise GeminiAPIError(str(error_obj))

            if response.status_code != HTTPStatus.OK:
                raise GeminiAPIError(
                    "Gemini generateContent request failed: "
                    f"status={response.status_code}, detail={response.text or 'Unknown error'}"
                )

            if payload_obj is None:
                raise GeminiAPIError("Gemini generateContent response was not valid JSON")
            if payload_map is _EMPTY_MAPPING:
                raise GeminiAPIError("Gemini generateContent response had unexpected format")

            return payload_map

        if http_client is not None:
            return await _generate(http_client)

        async with httpx.AsyncClient(timeout=timeout) as client:
            return await _generate(client)


def build_gemini_client(settings: AppSettings) -> GeminiClient:
    """Create a GeminiClient instance from application settings."""

    if not settings.gemini_api_key:
        raise GeminiClientConfigError("GEMINI_API_KEY is required to instantiate GeminiClient")

    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_api_base_url,
    )
