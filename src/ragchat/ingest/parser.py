"""Convert uploaded documents into normalised plain text."""
from __future__ import annotations

import io
import logging

from pdfminer.high_level import extract_text as pdfminer_extract_text
from pypdf import PdfReader

from ragchat.errors import ParseError

from .models import Document, ParsedText
from .normalization import decode_text, normalize_text

LOGGER = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 50
TEXT_SAMPLE_CHARS = 500
PLAIN_TEXT_EXTENSIONS = frozenset({"txt", "md"})

PLAIN_TEXT_PARSER = "plain-text"
PYPDF_PARSER = "pypdf"
PDFMINER_PARSER = "pdfminer"


def parse_document(document: Document) -> ParsedText:
    """Return the document text and the tag of the parser that produced it.

    Plain-text files (and any unknown extension) never fail, even when empty;
    the caller decides whether the text is long enough. PDFs go through pypdf
    first and pdfminer second, and raise :class:`ParseError` when neither
    yields at least ``MIN_TEXT_LENGTH`` characters.
    """

    extension = document.extension
    if extension == "pdf":
        return _parse_pdf(document)

    if extension not in PLAIN_TEXT_EXTENSIONS:
        LOGGER.info("No dedicated parser for %r; decoding %s as text", extension, document.file_name)
    text = normalize_text(decode_text(document.content))
    return ParsedText(text=text, parser=PLAIN_TEXT_PARSER)


def _parse_pdf(document: Document) -> ParsedText:
    text = ""
    last_parser = PYPDF_PARSER
    try:
        text = normalize_text(_extract_with_pypdf(document.content))
    except Exception as error:
        LOGGER.warning("pypdf failed for %s: %s", document.file_name, error)
    else:
        if len(text) >= MIN_TEXT_LENGTH:
            LOGGER.info("Parsed %s with pypdf, length=%s", document.file_name, len(text))
            return ParsedText(text=text, parser=PYPDF_PARSER)
        LOGGER.warning(
            "pypdf returned small text for %s (length=%s); falling back to pdfminer",
            document.file_name,
            len(text),
        )

    try:
        last_parser = PDFMINER_PARSER
        fallback_text = normalize_text(_extract_with_pdfminer(document.content))
    except Exception as error:
        LOGGER.warning("pdfminer failed for %s: %s", document.file_name, error)
    else:
        if len(fallback_text) >= MIN_TEXT_LENGTH:
            LOGGER.info("Parsed %s with pdfminer, length=%s", document.file_name, len(fallback_text))
            return ParsedText(text=fallback_text, parser=PDFMINER_PARSER)
        LOGGER.warning(
            "pdfminer returned small text for %s (length=%s)", document.file_name, len(fallback_text)
        )
        text = fallback_text or text

    raise ParseError(
        "no extractable text",
        parser=last_parser,
        text_sample=text[:TEXT_SAMPLE_CHARS],
    )


def _extract_with_pypdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages = []
    for page in reader.pages:
        pages.append(page.extract_text() or "")
    return "\n\n".join(pages)


def _extract_with_pdfminer(data: bytes) -> str:
    return pdfminer_extract_text(io.BytesIO(data)) or ""


__all__ = [
    "MIN_TEXT_LENGTH",
    "PDFMINER_PARSER",
    "PLAIN_TEXT_PARSER",
    "PYPDF_PARSER",
    "TEXT_SAMPLE_CHARS",
    "parse_document",
]
