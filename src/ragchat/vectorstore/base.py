"""Vector store contract shared by the Chroma and in-memory backends."""

from __future__ import annotations

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from ragchat.errors import ConfigurationError, VectorStoreError
from ragchat.telemetry import emit_vectorstore_event

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50

_UNSAFE_ID_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")
_WHITESPACE_RE = re.compile(r"\s+")

MetadataValue = str | int | float | bool


def sanitize_file_name(file_name: str) -> str:
    """Return an identifier-safe version of *file_name*.

    Whitespace becomes ``_`` and other unsafe characters ``_`` as well. When
    the name had to change, a short digest of the original name is appended
    after ``~`` (a character that never survives sanitisation), so two
    different file names can never map to the same prefix.
    """

    sanitized = _WHITESPACE_RE.sub("_", file_name)
    sanitized = _UNSAFE_ID_CHARS_RE.sub("_", sanitized) or "upload"
    if sanitized != file_name:
        digest = hashlib.sha1(file_name.encode("utf-8")).hexdigest()[:8]
        sanitized = f"{sanitized}~{digest}"
    return sanitized


def make_record_id(file_name: str, chunk_index: int) -> str:
    """Identifier of the form ``<sanitized-file-name>-<chunk-index>``."""

    return f"{sanitize_file_name(file_name)}-{chunk_index}"


@dataclass(slots=True)
class VectorRecord:
    """A vector ready to be written to the store."""

    id: str
    values: List[float]
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class QueryMatch:
    """A single similarity search hit; higher ``score`` means more similar."""

    id: str
    score: float
    metadata: Dict[str, Any]

    @property
    def text(self) -> str:
        return str(self.metadata.get("text", ""))


class VectorStore(ABC):
    """Upsert, similarity query and metadata-filtered delete."""

    backend_name = "unknown"

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the index/collection the store writes to."""

    def upsert(self, records: Sequence[VectorRecord], *, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        """Write *records* in sequential batches and return how many were written.

        A failing batch aborts the call; batches written before it stay
        committed.
        """

        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")

        written = 0
        for batch_number, offset in enumerate(range(0, len(records), batch_size), start=1):
            written += self.upsert_batch(
                records[offset : offset + batch_size],
                batch_number=batch_number,
                committed=written,
            )
        return written

    def upsert_batch(
        self,
        records: Sequence[VectorRecord],
        *,
        batch_number: int = 1,
        committed: int = 0,
    ) -> int:
        """Write one batch and return its size.

        *batch_number* and *committed* (records written by earlier batches of
        the same upload) only label the telemetry event and the error message.
        """

        batch = list(records)
        try:
            self._upsert_batch(batch)
        except Exception as exc:
            error = self._wrap(
                exc,
                f"Failed to upsert batch {batch_number} ({committed} records already committed)",
            )
            emit_vectorstore_event(
                "vectorstore.upsert",
                backend=self.backend_name,
                collection=self.collection_name,
                count=len(batch),
                batch=batch_number,
                error=error,
            )
            raise error
        emit_vectorstore_event(
            "vectorstore.upsert",
            backend=self.backend_name,
            collection=self.collection_name,
            count=len(batch),
            batch=batch_number,
        )
        return len(batch)

    def query(self, vector: Sequence[float], top_k: int = 5, *, include_metadata: bool = True) -> List[QueryMatch]:
        """Return at most *top_k* matches ordered by descending score."""

        if top_k <= 0:
            return []
        try:
            matches = self._query(list(vector), top_k, include_metadata)
        except Exception as exc:
            raise self._wrap(exc, "Vector store query failed")
        emit_vectorstore_event(
            "vectorstore.query",
            backend=self.backend_name,
            collection=self.collection_name,
            count=len(matches),
        )
        return matches

    def delete_by_metadata(self, metadata_filter: Mapping[str, MetadataValue]) -> int:
        """Delete every record whose metadata equals *metadata_filter*; return the count."""

        if not metadata_filter:
            raise ConfigurationError("Refusing to delete with an empty metadata filter")
        try:
            deleted = self._delete_by_metadata(dict(metadata_filter))
        except Exception as exc:
            raise self._wrap(exc, "Vector store delete failed")
        emit_vectorstore_event(
            "vectorstore.delete",
            backend=self.backend_name,
            collection=self.collection_name,
            count=deleted,
        )
        return deleted

    def describe(self) -> Dict[str, Any]:
        """Probe the store and return basic statistics."""

        try:
            stats = self._describe()
        except Exception as exc:
            raise self._wrap(exc, "Failed to connect to vector store")
        return {"backend": self.backend_name, "collection": self.collection_name, **stats}

    @staticmethod
    def _wrap(exc: Exception, message: str) -> VectorStoreError:
        if isinstance(exc, VectorStoreError):
            return exc
        return VectorStoreError(f"{message}: {exc}", cause=exc)

    @abstractmethod
    def _upsert_batch(self, records: List[VectorRecord]) -> None: ...

    @abstractmethod
    def _query(self, vector: List[float], top_k: int, include_metadata: bool) -> List[QueryMatch]: ...

    @abstractmethod
    def _delete_by_metadata(self, metadata_filter: Dict[str, MetadataValue]) -> int: ...

    @abstractmethod
    def _describe(self) -> Dict[str, Any]: ...
