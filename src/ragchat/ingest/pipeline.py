"""High level ingestion pipeline entry point."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

from ragchat.config import Settings
from ragchat.embeddings import EmbeddingClient
from ragchat.errors import (
    ConfigurationError,
    ExtractionError,
    IngestTimeoutError,
    InputError,
)
from ragchat.logging_config import AUDIT_LOGGER_NAME
from ragchat.telemetry import emit_ingest_event, traced_duration
from ragchat.vectorstore import VectorRecord, VectorStore, get_vector_store, make_record_id

from .chunking import ChunkingConfig, TextChunker
from .models import Chunk, Document, IngestResult, ParsedText
from .parser import MIN_TEXT_LENGTH, TEXT_SAMPLE_CHARS, parse_document

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


class IngestionPipeline:
    """Parse, chunk, embed and upsert one uploaded document."""

    def __init__(
        self,
        settings: Settings,
        *,
        embedding_client: Optional[EmbeddingClient] = None,
        vector_store: Optional[VectorStore] = None,
    ) -> None:
        if settings.upsert_batch_size <= 0:
            raise ConfigurationError(
                f"UPSERT_BATCH_SIZE must be positive, got {settings.upsert_batch_size}"
            )
        self.settings = settings
        self.chunker = TextChunker(
            ChunkingConfig(chunk_size=settings.chunk_size, overlap=settings.chunk_overlap)
        )
        self.embedding_client = embedding_client or EmbeddingClient(settings)
        self._vector_store = vector_store

    def _resolve_store(self) -> VectorStore:
        if self._vector_store is not None:
            return self._vector_store
        return get_vector_store(self.settings)

    async def ingest(self, document: Optional[Document]) -> IngestResult:
        """Run the whole pipeline under the configured wall-clock budget."""

        if document is None or not document.file_name:
            raise InputError("No file uploaded")

        budget = self.settings.ingest_timeout_seconds
        try:
            return await asyncio.wait_for(self._ingest(document), timeout=budget)
        except asyncio.TimeoutError as exc:
            LOGGER.error("Ingestion of %s exceeded %ss", document.file_name, budget)
            raise IngestTimeoutError(
                f"Ingestion of {document.file_name!r} exceeded the {budget:g}s time limit"
            ) from exc

    async def _ingest(self, document: Document) -> IngestResult:
        started = time.perf_counter()
        emit_ingest_event(
            "ingest.file.start",
            file_name=document.file_name,
            size_bytes=len(document.content),
        )

        parsed = await asyncio.to_thread(parse_document, document)
        self._ensure_sufficient_text(parsed, document.file_name)
        LOGGER.info(
            "Extracted text from %s: length=%s parser=%s",
            document.file_name,
            len(parsed.text),
            parsed.parser,
        )

        chunks = self.chunker.chunk(parsed.text)
        LOGGER.info("Split %s into %s chunks", document.file_name, len(chunks))

        self.settings.require_vector_store()
        store = self._resolve_store()
        stats = await asyncio.to_thread(store.describe)
        LOGGER.info("Vector store stats before ingest: %s", stats)

        vectors = await self.embedding_client.embed_many(
            [chunk.text for chunk in chunks],
            concurrency=self.settings.embedding_concurrency,
        )
        records = self._build_records(document.file_name, parsed, chunks, vectors)

        batch_size = self.settings.upsert_batch_size
        with traced_duration(
            "ingest.upsert",
            file=document.file_name,
            records=len(records),
            batch_size=batch_size,
        ):
            # One worker-thread hop per batch so a timeout stops before the next batch.
            committed = 0
            for batch_number, offset in enumerate(range(0, len(records), batch_size), start=1):
                batch = records[offset : offset + batch_size]
                committed += await asyncio.to_thread(
                    store.upsert_batch,
                    batch,
                    batch_number=batch_number,
                    committed=committed,
                )
                LOGGER.info("Uploaded batch %s for %s", batch_number, document.file_name)

        duration = time.perf_counter() - started
        emit_ingest_event(
            "ingest.file.complete",
            file_name=document.file_name,
            size_bytes=len(document.content),
            duration_ms=duration * 1000.0,
            parser=parsed.parser,
            text_length=len(parsed.text),
            chunks=len(chunks),
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "file_name": document.file_name,
                "parser": parsed.parser,
                "chunk_count": len(chunks),
            }
        )
        return IngestResult(
            file_name=document.file_name,
            chunk_count=len(chunks),
            parser_used=parsed.parser,
            duration_seconds=duration,
        )

    @staticmethod
    def _ensure_sufficient_text(parsed: ParsedText, file_name: str) -> None:
        if parsed.text and len(parsed.text.strip()) >= MIN_TEXT_LENGTH:
            return
        LOGGER.warning(
            "Upload rejected: extracted text too small for %s (length=%s, parser=%s)",
            file_name,
            len(parsed.text),
            parsed.parser,
        )
        raise ExtractionError(
            "Failed to extract sufficient text from document",
            parser=parsed.parser,
            text_sample=parsed.text[:TEXT_SAMPLE_CHARS],
        )

    @staticmethod
    def _build_records(
        file_name: str,
        parsed: ParsedText,
        chunks: List[Chunk],
        vectors: List[List[float]],
    ) -> List[VectorRecord]:
        return [
            VectorRecord(
                id=make_record_id(file_name, chunk.index),
                values=vector,
                metadata={
                    "text": chunk.text,
                    "file_name": file_name,
                    "chunk_index": chunk.index,
                    "parser_used": parsed.parser,
                },
            )
            for chunk, vector in zip(chunks, vectors)
        ]


__all__ = ["IngestionPipeline"]
