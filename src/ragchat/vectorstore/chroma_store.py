"""Chroma vector store adapter talking to a remote Chroma server over HTTP."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlparse

import chromadb

from .base import MetadataValue, QueryMatch, VectorRecord, VectorStore

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from chromadb.api import ClientAPI
    from chromadb.api.models.Collection import Collection

DEFAULT_DISTANCE_METRIC = "cosine"


def _where_clause(metadata_filter: Dict[str, MetadataValue]) -> Dict[str, Any]:
    if len(metadata_filter) == 1:
        return dict(metadata_filter)
    return {"$and": [{key: value} for key, value in metadata_filter.items()]}


class ChromaVectorStore(VectorStore):
    """Adapter around one Chroma collection (the configured index)."""

    backend_name = "chroma"

    def __init__(
        self,
        index_name: str,
        *,
        url: str | None = None,
        api_key: str | None = None,
        distance_metric: str = DEFAULT_DISTANCE_METRIC,
        client: Optional["ClientAPI"] = None,
        collection: Optional["Collection"] = None,
    ) -> None:
        self._index_name = index_name
        self._url = url
        self._api_key = api_key
        self._distance_metric = distance_metric
        self._client = client
        self._collection = collection

    @property
    def collection_name(self) -> str:
        return self._index_name

    def _get_client(self) -> "ClientAPI":
        if self._client is None:
            parsed = urlparse(self._url or "http://localhost:8000")
            ssl = parsed.scheme == "https"
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
            self._client = chromadb.HttpClient(
                host=parsed.hostname or "localhost",
                port=parsed.port or (443 if ssl else 8000),
                ssl=ssl,
                headers=headers,
            )
        return self._client

    def _get_collection(self) -> "Collection":
        if self._collection is None:
            self._collection = self._get_client().get_or_create_collection(
                name=self._index_name,
                metadata={"hnsw:space": self._distance_metric},
            )
        return self._collection

    def _upsert_batch(self, records: List[VectorRecord]) -> None:
        self._get_collection().upsert(
            ids=[record.id for record in records],
            embeddings=[list(map(float, record.values)) for record in records],
            documents=[str(record.metadata.get("text", "")) for record in records],
            metadatas=[dict(record.metadata) for record in records],
        )

    def _query(self, vector: List[float], top_k: int, include_metadata: bool) -> List[QueryMatch]:
        include = ["distances", "metadatas"] if include_metadata else ["distances"]
        result = self._get_collection().query(
            query_embeddings=[vector],
            n_results=top_k,
            include=include,
        )

        ids = (result.get("ids") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0] if include_metadata else []
        if len(metadatas) < len(ids):
            metadatas = list(metadatas) + [None] * (len(ids) - len(metadatas))

        matches = [
            QueryMatch(
                id=str(record_id),
                score=1.0 - float(distance) if distance is not None else 0.0,
                metadata=dict(metadata or {}),
            )
            for record_id, distance, metadata in zip(ids, distances, metadatas)
        ]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    def _delete_by_metadata(self, metadata_filter: Dict[str, MetadataValue]) -> int:
        collection = self._get_collection()
        where = _where_clause(metadata_filter)
        matching = collection.get(where=where, include=[])
        ids = list(matching.get("ids") or [])
        if ids:
            collection.delete(ids=ids)
        return len(ids)

    def _describe(self) -> Dict[str, Any]:
        return {"count": int(self._get_collection().count())}


__all__ = ["ChromaVectorStore"]
