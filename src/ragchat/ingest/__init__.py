"""Document ingestion: parsing, chunking and persisting embeddings."""

from .chunking import ChunkingConfig, TextChunker, chunk_text
from .models import Chunk, Document, IngestResult, ParsedText
from .parser import MIN_TEXT_LENGTH, parse_document
from .pipeline import IngestionPipeline

__all__ = [
    "Chunk",
    "ChunkingConfig",
    "Document",
    "IngestResult",
    "IngestionPipeline",
    "MIN_TEXT_LENGTH",
    "ParsedText",
    "TextChunker",
    "chunk_text",
    "parse_document",
]
