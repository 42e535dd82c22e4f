"""Maintenance operations over stored document chunks."""
from __future__ import annotations

import asyncio
import logging
from numbers import Real

from ragchat.errors import InputError
from ragchat.vectorstore import VectorStore

LOGGER = logging.getLogger(__name__)


def coerce_chunk_index(value: object) -> int | float:
    """Validate a JSON ``chunkIndex``; integral floats become ints."""

    if isinstance(value, bool) or not isinstance(value, Real):
        raise InputError("chunkIndex must be a number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


async def delete_by_chunk_index(store: VectorStore, chunk_index: object) -> int:
    """Remove every record whose ``chunk_index`` metadata equals *chunk_index*.

    Returns the number of removed records; zero matches is not an error.
    """

    value = coerce_chunk_index(chunk_index)
    deleted = await asyncio.to_thread(store.delete_by_metadata, {"chunk_index": value})
    if deleted == 0:
        LOGGER.info("No vectors matched chunk_index=%s; nothing deleted", value)
    else:
        LOGGER.info("Deleted %s vectors with chunk_index=%s", deleted, value)
    return deleted


__all__ = ["coerce_chunk_index", "delete_by_chunk_index"]
