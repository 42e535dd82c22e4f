"""Structured lifecycle events for ingestion, retrieval and inference.

Every event is a dict record on the ``ragchat.telemetry`` logger so the JSON
formatter in :mod:`ragchat.logging_config` renders it as one object::

    {"step": "ingest.file.complete", "duration_ms": 812.4,
     "details": {"file": "handbook.pdf", "chunks": 12, ...}}
"""

from __future__ import annotations

import logging
import platform
import sys
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional

LOGGER = logging.getLogger("ragchat.telemetry")

PREVIEW_CHARS = 120


def _preview(text: str) -> str:
    return text[:PREVIEW_CHARS]


def _traceback_text(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def log_event(
    step: str,
    *,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    req_id: str | None = None,
    duration_ms: float | None = None,
    error: BaseException | None = None,
    details: Mapping[str, Any] | None = None,
) -> None:
    """Log *step* as a dict record; ``None`` detail values are omitted."""

    target = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": target.name}
    if req_id:
        event["req_id"] = req_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details:
        event["details"] = {key: value for key, value in details.items() if value is not None}
    if error is not None:
        event["error"] = str(error)
        event["exc"] = _traceback_text(error)
    target.log(level, event)


def emit_app_startup_event(settings_summary: Mapping[str, Any]) -> None:
    log_event(
        "app.startup",
        details={
            "settings": dict(settings_summary),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
        },
    )


def emit_ingest_event(
    step: str,
    *,
    file_name: str,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    parser: str | None = None,
    text_length: int | None = None,
    chunks: int | None = None,
) -> None:
    log_event(
        step,
        duration_ms=duration_ms,
        details={
            "file": file_name,
            "size_bytes": size_bytes,
            "parser": parser,
            "text_length": text_length,
            "chunks": chunks,
        },
    )


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    log_event(
        "embeddings.compute",
        level=logging.ERROR if errors else logging.INFO,
        duration_ms=duration_ms,
        details={
            "model": model,
            "count": count,
            "avg_ms": round(duration_ms / count, 3) if count else None,
            "errors": errors,
        },
    )


def emit_vectorstore_event(
    step: str,
    *,
    backend: str,
    collection: str,
    count: int,
    batch: int | None = None,
    error: BaseException | None = None,
) -> None:
    log_event(
        step,
        level=logging.ERROR if error is not None else logging.INFO,
        error=error,
        details={"backend": backend, "collection": collection, "count": count, "batch": batch},
    )


def emit_retriever_event(
    *, query: str, top_k: int, results: list[dict[str, Any]], duration_ms: float
) -> None:
    log_event(
        "retriever.search",
        duration_ms=duration_ms,
        details={"query": _preview(query), "top_k": top_k, "hits": len(results), "results": results},
    )


def emit_inference_request(
    *,
    req_id: str,
    model: str,
    prompt_preview: str,
    prompt_len: int,
    temperature: float,
    max_tokens: int,
    sources: Iterable[str],
) -> None:
    log_event(
        "inference.request",
        req_id=req_id,
        details={
            "model": model,
            "prompt": _preview(prompt_preview),
            "prompt_len": prompt_len,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "sources": list(sources),
        },
    )


def emit_inference_result(
    *, req_id: str, duration_ms: float, model: str, answer_preview: str, fallback: bool
) -> None:
    log_event(
        "inference.result",
        req_id=req_id,
        duration_ms=duration_ms,
        details={"model": model, "answer": _preview(answer_preview), "fallback": fallback},
    )


def emit_exception(*, module: str, error: BaseException, req_id: str | None = None) -> None:
    """Record an error that ended a request with a server-side status."""

    log_event(
        "exception",
        level=logging.ERROR,
        req_id=req_id,
        error=error,
        details={"module": module, "type": type(error).__name__},
    )


@contextmanager
def traced_duration(step: str, **fields: Any) -> Iterator[None]:
    """Log ``<step>.start`` and then ``<step>.complete`` or ``<step>.error`` with timing."""

    started = time.perf_counter()
    log_event(f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        elapsed = (time.perf_counter() - started) * 1000.0
        log_event(f"{step}.error", level=logging.ERROR, duration_ms=elapsed, error=error, details=fields)
        raise
    log_event(f"{step}.complete", duration_ms=(time.perf_counter() - started) * 1000.0, details=fields)


__all__ = [
    "PREVIEW_CHARS",
    "emit_app_startup_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_ingest_event",
    "emit_retriever_event",
    "emit_vectorstore_event",
    "log_event",
    "traced_duration",
]
