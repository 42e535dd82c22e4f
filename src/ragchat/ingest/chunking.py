"""Chunking utilities for breaking text into embedding-friendly units."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List

from ragchat.errors import ConfigurationError

from .models import Chunk
from .normalization import collapse_whitespace

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1500
DEFAULT_CHUNK_OVERLAP = 250


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_CHUNK_OVERLAP

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap < 0:
            raise ConfigurationError(f"overlap must be non-negative, got {self.overlap}")
        if self.overlap >= self.chunk_size:
            raise ConfigurationError(
                f"overlap ({self.overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap


class TextChunker:
    """Split text into fixed-size, overlapping windows."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk(self, text: str) -> List[Chunk]:
        chunks = list(self._iter_chunks(text))
        LOGGER.debug(
            "Split %s characters into %s chunks (size=%s, overlap=%s)",
            len(text),
            len(chunks),
            self.config.chunk_size,
            self.config.overlap,
        )
        return chunks

    def _iter_chunks(self, text: str) -> Iterator[Chunk]:
        size = self.config.chunk_size
        step = self.config.step
        text_length = len(text)
        index = 0
        for start in range(0, text_length, step):
            end = min(start + size, text_length)
            content = collapse_whitespace(text[start:end])
            if not content:
                continue
            yield Chunk(index=index, text=content, start=start, end=end)
            index += 1


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Chunk]:
    """Split *text* into windows of ``size`` characters overlapping by ``overlap``."""

    return TextChunker(ChunkingConfig(chunk_size=size, overlap=overlap)).chunk(text)


__all__ = ["ChunkingConfig", "TextChunker", "chunk_text"]
