"""Text normalisation utilities."""
from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Normalise Unicode representation and whitespace."""

    return collapse_whitespace(unicodedata.normalize("NFC", text))


def decode_text(data: bytes) -> str:
    """Best-effort decode of uploaded bytes."""

    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # latin-1 maps every byte, so this cannot fail.
        return data.decode("latin-1")
