"""Chat completion client for OpenAI-compatible APIs (OpenRouter by default)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ragchat.config import Settings
from ragchat.embeddings import upstream_error_message
from ragchat.errors import CompletionError, ConfigurationError

LOGGER = logging.getLogger(__name__)

_COMPLETIONS_PATH = "chat/completions"


def extract_answer(body: dict[str, Any]) -> Optional[str]:
    """Return the first choice's text, or ``None`` when the body carries none."""

    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    first = choices[0]
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str) and content:
            return content
    text = first.get("text")
    if isinstance(text, str) and text:
        return text
    return None


class ChatCompletionClient:
    """Send a single prompt to the completion API and return the answer text."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self._settings.chat_model

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> Optional[str]:
        try:
            api_key = self._settings.require_llm_credentials()
        except ConfigurationError as exc:
            raise CompletionError(f"{exc.message}; cannot call the chat API") from exc

        payload = {
            "model": model or self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens if max_tokens is not None else self._settings.llm_max_tokens,
            "temperature": (
                temperature if temperature is not None else self._settings.llm_temperature
            ),
        }
        async with httpx.AsyncClient(
            base_url=self._settings.openrouter_base_url.rstrip("/") + "/",
            timeout=self._settings.http_timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(_COMPLETIONS_PATH, json=payload)
            except httpx.HTTPError as exc:
                raise CompletionError(f"Chat completion request failed: {exc}") from exc

        if response.is_error:
            LOGGER.error("Chat completion error response (%s): %s", response.status_code, response.text)
            raise CompletionError(
                f"Chat completion failed: {response.status_code} - {upstream_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise CompletionError("Chat completion response is not valid JSON") from exc
        if not isinstance(body, dict):
            raise CompletionError("Chat completion response is not a JSON object")
        return extract_answer(body)


__all__ = ["ChatCompletionClient", "extract_answer"]
