"""Data models used by the ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional


@dataclass(slots=True)
class Document:
    """Raw uploaded bytes together with the declared file name."""

    file_name: str
    content: bytes
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return PurePath(self.file_name).suffix.lower().lstrip(".")


@dataclass(frozen=True, slots=True)
class ParsedText:
    """Normalised document text and the parser that produced it."""

    text: str
    parser: str


@dataclass(frozen=True, slots=True)
class Chunk:
    """A trimmed window of parsed text.

    ``start`` and ``end`` are the untrimmed window offsets in the source text,
    so consecutive chunks overlap by exactly the configured number of
    characters except for the final, shorter window.
    """

    index: int
    text: str
    start: int
    end: int


@dataclass(slots=True)
class IngestResult:
    """Structured result returned from :meth:`IngestionPipeline.ingest`."""

    file_name: str
    chunk_count: int
    parser_used: str
    duration_seconds: float
