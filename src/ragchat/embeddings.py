"""Embedding client for OpenAI-compatible ``/embeddings`` endpoints."""
from __future__ import annotations

import asyncio
import logging
import time
from numbers import Real
from typing import Any, List, Optional, Sequence

import httpx

from ragchat.config import Settings
from ragchat.errors import ConfigurationError, EmbeddingError
from ragchat.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

_EMBEDDINGS_PATH = "embeddings"


def upstream_error_message(response: httpx.Response) -> str:
    """Return the upstream ``error.message`` when present, else the raw body."""

    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return response.text


def _parse_embedding(body: Any) -> List[float]:
    try:
        embedding = body["data"][0]["embedding"]
    except (KeyError, IndexError, TypeError) as exc:
        raise EmbeddingError("Invalid embedding response: missing data[0].embedding") from exc
    if not isinstance(embedding, list) or not embedding:
        raise EmbeddingError("Invalid embedding response: embedding is not a non-empty list")
    if not all(isinstance(value, Real) and not isinstance(value, bool) for value in embedding):
        raise EmbeddingError("Invalid embedding response: embedding contains non-numeric values")
    return [float(value) for value in embedding]


class EmbeddingClient:
    """Thin async wrapper converting text into embedding vectors."""

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
        return self._settings.embedding_model

    def _client(self) -> httpx.AsyncClient:
        try:
            api_key = self._settings.require_llm_credentials()
        except ConfigurationError as exc:
            raise EmbeddingError(f"{exc.message}; cannot compute embeddings") from exc
        return httpx.AsyncClient(
            base_url=self._settings.openrouter_base_url.rstrip("/") + "/",
            timeout=self._settings.http_timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=self._transport,
        )

    async def embed(self, text: str, *, client: Optional[httpx.AsyncClient] = None) -> List[float]:
        """Return the embedding for *text*; no retries."""

        if not isinstance(text, str) or not text.strip():
            raise EmbeddingError("Invalid input text for embeddings")
        if client is None:
            async with self._client() as owned_client:
                return await self._request(owned_client, text)
        return await self._request(client, text)

    async def embed_many(self, texts: Sequence[str], *, concurrency: int = 8) -> List[List[float]]:
        """Embed *texts* concurrently, at most ``concurrency`` requests in flight.

        The result preserves input order. The first failure cancels the
        remaining requests and propagates.
        """

        if not texts:
            return []
        semaphore = asyncio.Semaphore(max(1, concurrency))
        started = time.perf_counter()

        async with self._client() as client:

            async def _bounded(text: str) -> List[float]:
                async with semaphore:
                    return await self.embed(text, client=client)

            tasks = [asyncio.ensure_future(_bounded(text)) for text in texts]
            try:
                vectors = await asyncio.gather(*tasks)
            except Exception as error:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                emit_embeddings_event(
                    model=self.model_name,
                    count=len(texts),
                    duration_ms=(time.perf_counter() - started) * 1000.0,
                    errors=[str(error)],
                )
                raise

        emit_embeddings_event(
            model=self.model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return list(vectors)

    async def _request(self, client: httpx.AsyncClient, text: str) -> List[float]:
        payload = {"model": self.model_name, "input": text}
        try:
            response = await client.post(_EMBEDDINGS_PATH, json=payload)
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        if response.is_error:
            message = upstream_error_message(response)
            LOGGER.error("Embedding request failed (%s): %s", response.status_code, message)
            raise EmbeddingError(
                f"Embedding request failed ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise EmbeddingError("Invalid embedding response: body is not JSON") from exc
        return _parse_embedding(body)


__all__ = ["EmbeddingClient", "upstream_error_message"]
