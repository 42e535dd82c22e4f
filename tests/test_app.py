from __future__ import annotations

import asyncio
import dataclasses
import random
import string

import httpx
import pytest
from fastapi.testclient import TestClient

from ragchat.api import get_ingestion_pipeline, get_query_pipeline
from ragchat.config import Settings, get_settings
from ragchat.embeddings import EmbeddingClient
from ragchat.ingest import IngestionPipeline
from ragchat.llm_client import ChatCompletionClient
from ragchat.main import app
from ragchat.services import QueryPipeline
from ragchat.vectorstore import get_vector_store


def _document_text(length: int = 4000) -> bytes:
    rng = random.Random(3)
    words = ("".join(rng.choice(string.ascii_lowercase) for _ in range(rng.randint(2, 9))) for _ in range(length))
    return " ".join(words)[:length].encode()


@pytest.fixture()
def client(settings, embedding_client, completion_client):
    store = get_vector_store(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ingestion_pipeline] = lambda: IngestionPipeline(
        settings, embedding_client=embedding_client, vector_store=store
    )
    app.dependency_overrides[get_query_pipeline] = lambda: QueryPipeline(
        settings,
        embedding_client=embedding_client,
        completion_client=completion_client,
        vector_store=store,
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_read_root_returns_ok() -> None:
    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert response.text == "ok"


def test_healthz_returns_ok() -> None:
    response = TestClient(app).get("/healthz")

    assert response.status_code == 200
    assert response.text == "ok"


def test_upload_then_chat(client: TestClient, fake_openrouter) -> None:
    files = {"file": ("handbook.txt", _document_text(), "text/plain")}

    upload = client.post("/upload", files=files)

    assert upload.status_code == 200
    assert upload.json() == {
        "success": True,
        "message": 'File "handbook.txt" uploaded successfully with 4 chunks.',
        "parserUsed": "plain-text",
        "chunkCount": 4,
    }

    chat = client.post(
        "/chat",
        json={"messages": [{"role": "user", "content": "What does the handbook say?"}]},
    )

    assert chat.status_code == 200
    assert chat.json() == {"response": "Generated answer"}
    assert "Chunk 1:" in fake_openrouter.last_prompt


def test_upload_without_file_is_rejected(client: TestClient) -> None:
    response = client.post("/upload")

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}


def test_upload_with_too_little_text_reports_sample(client: TestClient, fake_openrouter) -> None:
    files = {"file": ("tiny.txt", b"  tiny\n  file ", "text/plain")}

    response = client.post("/upload", files=files)

    assert response.status_code == 400
    assert response.json() == {
        "error": "Failed to extract sufficient text from document",
        "parser": "plain-text",
        "textSample": "tiny file",
    }
    assert fake_openrouter.embedding_requests == []


def test_upload_with_unconfigured_vector_store_is_a_server_error(embedding_client) -> None:
    unconfigured = Settings(openrouter_api_key="test-key", vector_store="chroma")
    app.dependency_overrides[get_ingestion_pipeline] = lambda: IngestionPipeline(
        unconfigured, embedding_client=embedding_client
    )
    try:
        response = TestClient(app).post("/upload", files={"file": ("a.txt", _document_text(200), "text/plain")})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"].startswith("Vector store environment variables not set")


@pytest.mark.parametrize("body", [{}, {"messages": []}, {"messages": None}])
def test_chat_without_messages_is_rejected(client: TestClient, body) -> None:
    response = client.post("/chat", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "No messages provided"}


@pytest.mark.parametrize("content", ["   ", None])
def test_chat_with_blank_question_is_rejected(client: TestClient, content) -> None:
    response = client.post("/chat", json={"messages": [{"role": "user", "content": content}]})

    assert response.status_code == 400
    assert response.json() == {"error": "Empty question"}


def test_chat_with_malformed_body_is_rejected(client: TestClient) -> None:
    response = client.post("/chat", json={"messages": "hello"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"


def test_chat_upstream_failure_is_a_server_error(settings, embedding_client, memory_store) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "boom"}})

    failing = ChatCompletionClient(settings, transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_query_pipeline] = lambda: QueryPipeline(
        settings,
        embedding_client=embedding_client,
        completion_client=failing,
        vector_store=memory_store,
    )
    try:
        response = TestClient(app).post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "Chat completion failed: 500 - boom"


def test_unexpected_failure_is_rendered_with_detail() -> None:
    class Exploding:
        async def answer(self, messages):
            raise RuntimeError("kaboom")

    app.dependency_overrides[get_query_pipeline] = lambda: Exploding()
    try:
        response = TestClient(app).post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "kaboom", "detail": "kaboom"}


def test_delete_by_chunk_index_removes_uploaded_chunks(client: TestClient, settings) -> None:
    client.post("/upload", files={"file": ("a.txt", _document_text(), "text/plain")})
    client.post("/upload", files={"file": ("b.txt", _document_text(), "text/plain")})

    response = client.post("/delete-by-chunk-index", json={"chunkIndex": 0})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Deleted 2 vectors with chunkIndex=0",
        "deletedCount": 2,
    }
    assert len(get_vector_store(settings)) == 6


def test_delete_without_matches_succeeds_with_zero(client: TestClient) -> None:
    response = client.post("/delete-by-chunk-index", json={"chunkIndex": 42})

    assert response.status_code == 200
    assert response.json()["deletedCount"] == 0


@pytest.mark.parametrize("body", [{"chunkIndex": "abc"}, {"chunkIndex": True}, {}])
def test_delete_with_non_numeric_index_is_rejected(client: TestClient, body) -> None:
    response = client.post("/delete-by-chunk-index", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "chunkIndex must be a number"}


def test_readyz_ok_when_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "k")
    monkeypatch.setenv("VECTOR_STORE", "memory")

    response = TestClient(app).get("/readyz")

    assert response.status_code == 200
    assert response.text == "ok"


def test_readyz_reports_missing_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("VECTOR_STORE_API_KEY", raising=False)
    monkeypatch.setenv("VECTOR_STORE", "chroma")

    response = TestClient(app).get("/readyz")

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert "llm_unconfigured" in detail
    assert "vector_store_unconfigured" in detail


def test_upload_timeout_is_a_server_error_without_empty_detail(settings, memory_store) -> None:
    class SlowEmbeddings(EmbeddingClient):
        async def embed_many(self, texts, *, concurrency=8):
            await asyncio.sleep(1)
            return [[1.0] for _ in texts]

    quick = dataclasses.replace(settings, ingest_timeout_seconds=0.05)
    app.dependency_overrides[get_ingestion_pipeline] = lambda: IngestionPipeline(
        quick, embedding_client=SlowEmbeddings(quick), vector_store=memory_store
    )
    try:
        response = TestClient(app).post("/upload", files={"file": ("a.txt", _document_text(200), "text/plain")})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Ingestion of 'a.txt' exceeded the 0.05s time limit"}
