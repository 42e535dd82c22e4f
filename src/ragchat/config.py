"""Runtime configuration resolved once from the process environment."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping

from ragchat.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_CHAT_MODEL = "mistralai/mistral-7b-instruct"
DEFAULT_EMBEDDING_MODEL = "mistralai/mistral-embed-2312"
DEFAULT_VECTOR_STORE = "chroma"


def _str_from_env(env: Mapping[str, str], name: str, default: str | None = None) -> str | None:
    value = env.get(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    value = env.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit configuration handed to every client and pipeline."""

    openrouter_api_key: str | None = None
    openrouter_base_url: str = DEFAULT_BASE_URL
    chat_model: str = DEFAULT_CHAT_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    vector_store: str = DEFAULT_VECTOR_STORE
    vector_store_api_key: str | None = None
    vector_store_index_name: str | None = None
    vector_store_url: str | None = None
    chunk_size: int = 1500
    chunk_overlap: int = 250
    embedding_concurrency: int = 8
    upsert_batch_size: int = 50
    query_top_k: int = 5
    llm_max_tokens: int = 600
    llm_temperature: float = 0.2
    http_timeout_seconds: float = 60.0
    ingest_timeout_seconds: float = 300.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            openrouter_api_key=_str_from_env(env, "OPENROUTER_API_KEY"),
            openrouter_base_url=_str_from_env(env, "OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            chat_model=_str_from_env(env, "OPENROUTER_CHAT_MODEL", DEFAULT_CHAT_MODEL),
            embedding_model=_str_from_env(env, "EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            vector_store=(_str_from_env(env, "VECTOR_STORE", DEFAULT_VECTOR_STORE) or "").lower(),
            vector_store_api_key=_str_from_env(env, "VECTOR_STORE_API_KEY"),
            vector_store_index_name=_str_from_env(env, "VECTOR_STORE_INDEX_NAME"),
            vector_store_url=_str_from_env(env, "VECTOR_STORE_URL"),
            chunk_size=_int_from_env(env, "CHUNK_SIZE", 1500),
            chunk_overlap=_int_from_env(env, "CHUNK_OVERLAP", 250),
            embedding_concurrency=_int_from_env(env, "EMBEDDING_CONCURRENCY", 8),
            upsert_batch_size=_int_from_env(env, "UPSERT_BATCH_SIZE", 50),
            query_top_k=_int_from_env(env, "QUERY_TOP_K", 5),
            llm_max_tokens=_int_from_env(env, "LLM_MAX_TOKENS", 600),
            llm_temperature=_float_from_env(env, "LLM_TEMPERATURE", 0.2),
            http_timeout_seconds=_float_from_env(env, "HTTP_TIMEOUT_SECONDS", 60.0),
            ingest_timeout_seconds=_float_from_env(env, "INGEST_TIMEOUT_SECONDS", 300.0),
        )

    def require_llm_credentials(self) -> str:
        if not self.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not set")
        return self.openrouter_api_key

    def require_vector_store(self) -> None:
        """Raise when the configured vector store backend cannot be addressed."""

        if self.vector_store == "memory":
            return
        missing = [
            name
            for name, value in (
                ("VECTOR_STORE_API_KEY", self.vector_store_api_key),
                ("VECTOR_STORE_INDEX_NAME", self.vector_store_index_name),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Vector store environment variables not set ({' or '.join(missing)})"
            )

    def public_summary(self) -> dict[str, object]:
        """Settings safe to log (no secrets)."""

        return {
            "openrouter_base_url": self.openrouter_base_url,
            "chat_model": self.chat_model,
            "embedding_model": self.embedding_model,
            "vector_store": self.vector_store,
            "vector_store_index_name": self.vector_store_index_name,
            "vector_store_url": self.vector_store_url,
            "openrouter_api_key_set": bool(self.openrouter_api_key),
            "vector_store_api_key_set": bool(self.vector_store_api_key),
            "chunk_size": self.chunk_size,
            "chunk_overlap": self.chunk_overlap,
            "embedding_concurrency": self.embedding_concurrency,
        }


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]
