"""Error taxonomy shared by the pipelines and the HTTP layer."""
from __future__ import annotations


class RagChatError(Exception):
    """Base class for errors rendered as JSON at the request boundary."""

    http_status = 500

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def to_payload(self) -> dict[str, object]:
        return {"error": self.message}


class InputError(RagChatError):
    """User-correctable request problem (missing file, empty message, ...)."""

    http_status = 400


class ExtractionError(RagChatError):
    """Raised when a document does not yield enough text to ingest."""

    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        parser: str | None = None,
        text_sample: str = "",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.parser = parser
        self.text_sample = text_sample

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"error": self.message}
        if self.parser is not None:
            payload["parser"] = self.parser
        payload["textSample"] = self.text_sample
        return payload


class ParseError(ExtractionError):
    """Raised by the document parser when no strategy produced usable text."""


class ConfigurationError(RagChatError):
    """Operator-correctable problem such as missing credentials."""


class UpstreamError(RagChatError):
    """Failure reported by (or while talking to) an external API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class EmbeddingError(UpstreamError):
    """The embeddings API call failed or returned an unusable vector."""


class CompletionError(UpstreamError):
    """The chat completion API call failed or returned a malformed body."""


class VectorStoreError(UpstreamError):
    """The vector store rejected a request or could not be reached."""


class IngestTimeoutError(UpstreamError):
    """The ingestion wall-clock budget was exceeded."""


__all__ = [
    "CompletionError",
    "ConfigurationError",
    "EmbeddingError",
    "ExtractionError",
    "IngestTimeoutError",
    "InputError",
    "ParseError",
    "RagChatError",
    "UpstreamError",
    "VectorStoreError",
]
