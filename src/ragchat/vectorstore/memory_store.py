"""Simple in-memory vector store for development and tests."""
from __future__ import annotations

import math
import threading
from typing import Any, Dict, List, Sequence

from .base import MetadataValue, QueryMatch, VectorRecord, VectorStore


def _cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    if len(left) != len(right):
        raise ValueError(f"Vector dimension mismatch: {len(left)} != {len(right)}")
    dot = sum(a * b for a, b in zip(left, right))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    if norm == 0:
        return 0.0
    return dot / norm


class InMemoryVectorStore(VectorStore):
    """Keeps records in a dict keyed by id; upserts overwrite."""

    backend_name = "memory"

    def __init__(self, collection_name: str = "ragchat") -> None:
        self._collection_name = collection_name
        self._records: Dict[str, VectorRecord] = {}
        self._lock = threading.Lock()

    @property
    def collection_name(self) -> str:
        return self._collection_name

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> VectorRecord | None:
        return self._records.get(record_id)

    def _upsert_batch(self, records: List[VectorRecord]) -> None:
        with self._lock:
            for record in records:
                self._records[record.id] = VectorRecord(
                    id=record.id,
                    values=[float(value) for value in record.values],
                    metadata=dict(record.metadata),
                )

    def _query(self, vector: List[float], top_k: int, include_metadata: bool) -> List[QueryMatch]:
        with self._lock:
            records = list(self._records.values())
        scored = [(_cosine_similarity(vector, record.values), record) for record in records]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            QueryMatch(
                id=record.id,
                score=score,
                metadata=dict(record.metadata) if include_metadata else {},
            )
            for score, record in scored[:top_k]
        ]

    def _delete_by_metadata(self, metadata_filter: Dict[str, MetadataValue]) -> int:
        with self._lock:
            doomed = [
                record_id
                for record_id, record in self._records.items()
                if all(
                    key in record.metadata and record.metadata[key] == value
                    for key, value in metadata_filter.items()
                )
            ]
            for record_id in doomed:
                del self._records[record_id]
        return len(doomed)

    def _describe(self) -> Dict[str, Any]:
        with self._lock:
            dimensions = {len(record.values) for record in self._records.values()}
            return {"count": len(self._records), "dimension": next(iter(dimensions), None)}


__all__ = ["InMemoryVectorStore"]
