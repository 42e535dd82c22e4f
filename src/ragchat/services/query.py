from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from ragchat.config import Settings
from ragchat.embeddings import EmbeddingClient
from ragchat.errors import InputError
from ragchat.llm_client import ChatCompletionClient
from ragchat.prompt_builder import build_prompt
from ragchat.telemetry import (
    emit_inference_request,
    emit_inference_result,
    emit_retriever_event,
)
from ragchat.vectorstore import QueryMatch, VectorStore, get_vector_store

LOGGER = logging.getLogger(__name__)

NO_ANSWER_MESSAGE = "No answer generated."


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """One turn of the client-side conversation."""

    role: str
    content: Optional[str]


class QueryPipeline:
    """Answer the last message of a conversation from retrieved document chunks."""

    def __init__(
        self,
        settings: Settings,
        *,
        embedding_client: Optional[EmbeddingClient] = None,
        completion_client: Optional[ChatCompletionClient] = None,
        vector_store: Optional[VectorStore] = None,
    ) -> None:
        self.settings = settings
        self.embedding_client = embedding_client or EmbeddingClient(settings)
        self.completion_client = completion_client or ChatCompletionClient(settings)
        self._vector_store = vector_store

    def _resolve_store(self) -> VectorStore:
        if self._vector_store is not None:
            return self._vector_store
        return get_vector_store(self.settings)

    async def answer(self, messages: Sequence[ChatMessage]) -> str:
        question = self.extract_question(messages)
        LOGGER.info("New question received: %s", question[:200])

        matches = await self.retrieve(question)
        prompt = build_prompt(question, matches)

        req_id = uuid.uuid4().hex
        emit_inference_request(
            req_id=req_id,
            model=self.completion_client.model_name,
            prompt_preview=prompt,
            prompt_len=len(prompt),
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            sources=[match.id for match in matches],
        )
        started = time.perf_counter()
        answer = await self.completion_client.complete(
            prompt,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
        )
        fallback = not answer
        answer_text = answer or NO_ANSWER_MESSAGE
        emit_inference_result(
            req_id=req_id,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            model=self.completion_client.model_name,
            answer_preview=answer_text,
            fallback=fallback,
        )
        return answer_text

    @staticmethod
    def extract_question(messages: Optional[Sequence[ChatMessage]]) -> str:
        if not messages:
            raise InputError("No messages provided")
        question = (messages[-1].content or "").strip()
        if not question:
            raise InputError("Empty question")
        return question

    async def retrieve(self, question: str) -> list[QueryMatch]:
        """Embed *question* and return the top matches with metadata."""

        vector = await self.embedding_client.embed(question)
        store = self._resolve_store()
        started = time.perf_counter()
        matches = await asyncio.to_thread(
            store.query,
            vector,
            self.settings.query_top_k,
            include_metadata=True,
        )
        emit_retriever_event(
            query=question,
            top_k=self.settings.query_top_k,
            results=[{"id": match.id, "score": match.score} for match in matches],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        LOGGER.info("Found %s context chunks", len(matches))
        return matches


__all__ = ["ChatMessage", "NO_ANSWER_MESSAGE", "QueryPipeline"]
