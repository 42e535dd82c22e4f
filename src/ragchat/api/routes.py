"""API router exposing upload, chat and delete endpoints."""
from __future__ import annotations

from typing import Any, Awaitable, Optional, TypeVar

from fastapi import APIRouter, Body, Depends, File, UploadFile
from pydantic import BaseModel, Field

from ragchat.config import Settings, get_settings
from ragchat.errors import RagChatError, UpstreamError
from ragchat.ingest import Document, IngestionPipeline
from ragchat.services import ChatMessage, QueryPipeline, coerce_chunk_index, delete_by_chunk_index
from ragchat.vectorstore import get_vector_store

router = APIRouter(tags=["rag"])

T = TypeVar("T")


class ChatMessageModel(BaseModel):
    role: str = "user"
    content: Optional[str] = None


class ChatRequest(BaseModel):
    """Full conversation; the last message is the active question."""

    messages: Optional[list[ChatMessageModel]] = Field(
        None, description="Ordered conversation history maintained by the client."
    )


class ChatResponse(BaseModel):
    response: str


class UploadResponse(BaseModel):
    success: bool
    message: str
    parserUsed: str
    chunkCount: int


class DeleteResponse(BaseModel):
    success: bool
    message: str
    deletedCount: int


def get_ingestion_pipeline(settings: Settings = Depends(get_settings)) -> IngestionPipeline:
    """FastAPI dependency building the ingestion pipeline from settings."""

    return IngestionPipeline(settings)


def get_query_pipeline(settings: Settings = Depends(get_settings)) -> QueryPipeline:
    """FastAPI dependency building the query pipeline from settings."""

    return QueryPipeline(settings)


async def _at_boundary(operation: Awaitable[T]) -> T:
    """Convert unexpected failures into :class:`UpstreamError` for uniform rendering."""

    try:
        return await operation
    except RagChatError:
        raise
    except Exception as exc:
        raise UpstreamError(str(exc) or "Internal server error", cause=exc) from exc


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
) -> ChatResponse:
    """Answer the last message using retrieved document context."""

    messages = [ChatMessage(role=item.role, content=item.content) for item in request.messages or []]
    answer = await _at_boundary(pipeline.answer(messages))
    return ChatResponse(response=answer)


@router.post("/upload", response_model=UploadResponse)
async def upload(
    file: Optional[UploadFile] = File(None),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
) -> UploadResponse:
    """Parse, chunk, embed and store one uploaded document."""

    document = None
    if file is not None and file.filename:
        document = Document(
            file_name=file.filename,
            content=await file.read(),
            mime_type=file.content_type,
        )
    result = await _at_boundary(pipeline.ingest(document))
    return UploadResponse(
        success=True,
        message=f'File "{result.file_name}" uploaded successfully with {result.chunk_count} chunks.',
        parserUsed=result.parser_used,
        chunkCount=result.chunk_count,
    )


@router.post("/delete-by-chunk-index", response_model=DeleteResponse)
async def delete_chunks(
    payload: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_settings),
) -> DeleteResponse:
    """Delete every stored vector whose ``chunk_index`` metadata matches."""

    chunk_index = coerce_chunk_index(payload.get("chunkIndex"))
    store = get_vector_store(settings)
    deleted = await _at_boundary(delete_by_chunk_index(store, chunk_index))
    return DeleteResponse(
        success=True,
        message=f"Deleted {deleted} vectors with chunkIndex={chunk_index}",
        deletedCount=deleted,
    )
