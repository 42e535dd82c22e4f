"""Vector store helpers backed by pluggable backends."""

from __future__ import annotations

from functools import lru_cache

from ragchat.config import Settings
from ragchat.errors import ConfigurationError

from .base import (
    DEFAULT_BATCH_SIZE,
    QueryMatch,
    VectorRecord,
    VectorStore,
    make_record_id,
    sanitize_file_name,
)
from .chroma_store import ChromaVectorStore
from .memory_store import InMemoryVectorStore


@lru_cache()
def get_vector_store(settings: Settings) -> VectorStore:
    """Return the store selected by ``settings.vector_store``.

    Raises :class:`ConfigurationError` when the backend is unknown or its
    credentials are missing.
    """

    settings.require_vector_store()
    backend = settings.vector_store
    if backend == "memory":
        return InMemoryVectorStore(settings.vector_store_index_name or "ragchat")
    if backend == "chroma":
        return ChromaVectorStore(
            settings.vector_store_index_name or "",
            url=settings.vector_store_url,
            api_key=settings.vector_store_api_key,
        )
    raise ConfigurationError(f"Unsupported VECTOR_STORE backend: {backend!r}")


def reset_vector_store_cache() -> None:
    """Clear cached store instances (primarily for testing)."""

    get_vector_store.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ChromaVectorStore",
    "DEFAULT_BATCH_SIZE",
    "InMemoryVectorStore",
    "QueryMatch",
    "VectorRecord",
    "VectorStore",
    "get_vector_store",
    "make_record_id",
    "reset_vector_store_cache",
    "sanitize_file_name",
]
