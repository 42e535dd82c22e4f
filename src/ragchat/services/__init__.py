"""Request-level services composed from the ingest, retrieval and LLM clients."""

from .documents import coerce_chunk_index, delete_by_chunk_index
from .query import NO_ANSWER_MESSAGE, ChatMessage, QueryPipeline

__all__ = [
    "ChatMessage",
    "NO_ANSWER_MESSAGE",
    "QueryPipeline",
    "coerce_chunk_index",
    "delete_by_chunk_index",
]
