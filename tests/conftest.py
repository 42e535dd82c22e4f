"""Shared fixtures: settings, a fake OpenRouter transport and an in-memory store."""
from __future__ import annotations

import json
import string
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from ragchat.config import Settings, reset_settings_cache
from ragchat.embeddings import EmbeddingClient
from ragchat.llm_client import ChatCompletionClient
from ragchat.vectorstore import InMemoryVectorStore, reset_vector_store_cache

_ALPHABET = string.ascii_lowercase


def letter_histogram(text: str) -> List[float]:
    """Deterministic toy embedding: letter counts plus a bias term."""

    lowered = text.lower()
    return [float(lowered.count(letter)) for letter in _ALPHABET] + [1.0]


@dataclass
class FakeOpenRouter:
    """Records requests and answers the embeddings and chat endpoints."""

    answer: Optional[str] = "Generated answer"
    embedding_requests: List[Dict[str, Any]] = field(default_factory=list)
    chat_requests: List[Dict[str, Any]] = field(default_factory=list)
    embed: Callable[[str], List[float]] = letter_histogram

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if request.url.path.endswith("/embeddings"):
            self.embedding_requests.append({"payload": payload, "headers": dict(request.headers)})
            return httpx.Response(200, json={"data": [{"embedding": self.embed(payload["input"])}]})
        if request.url.path.endswith("/chat/completions"):
            self.chat_requests.append({"payload": payload, "headers": dict(request.headers)})
            if self.answer is None:
                return httpx.Response(200, json={"choices": []})
            return httpx.Response(200, json={"choices": [{"message": {"content": self.answer}}]})
        return httpx.Response(404, json={"error": {"message": f"unknown path {request.url.path}"}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_prompt(self) -> str:
        return self.chat_requests[-1]["payload"]["messages"][0]["content"]


@pytest.fixture(autouse=True)
def _reset_caches():
    reset_settings_cache()
    reset_vector_store_cache()
    yield
    reset_settings_cache()
    reset_vector_store_cache()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        openrouter_api_key="test-key",
        vector_store="memory",
        vector_store_index_name="test-index",
    )


@pytest.fixture()
def fake_openrouter() -> FakeOpenRouter:
    return FakeOpenRouter()


@pytest.fixture()
def embedding_client(settings: Settings, fake_openrouter: FakeOpenRouter) -> EmbeddingClient:
    return EmbeddingClient(settings, transport=fake_openrouter.transport)


@pytest.fixture()
def completion_client(settings: Settings, fake_openrouter: FakeOpenRouter) -> ChatCompletionClient:
    return ChatCompletionClient(settings, transport=fake_openrouter.transport)


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore("test-index")
