"""Utilities for constructing the document question-answering prompt."""
from __future__ import annotations

from typing import Iterable

from ragchat.vectorstore import QueryMatch

NOT_FOUND_PHRASE = "I couldn't find relevant information in the document."

_PROMPT_TEMPLATE = """\
You are a helpful AI assistant that answers questions using the provided document context.
Answer only from the context below. If the answer isn't in the document, say: "{not_found}"

Context:
{context}

Question:
{question}

Answer:
"""


def build_context(matches: Iterable[QueryMatch]) -> str:
    """Label each match ``Chunk N:`` in store order, separated by blank lines."""

    sections = [f"Chunk {index}:\n{match.text}" for index, match in enumerate(matches, start=1)]
    return "\n\n".join(sections)


def build_prompt(question: str, matches: Iterable[QueryMatch]) -> str:
    """Compose the full prompt; an empty context still yields a valid prompt."""

    if question is None:
        raise ValueError("question must not be None")
    return _PROMPT_TEMPLATE.format(
        not_found=NOT_FOUND_PHRASE,
        context=build_context(matches),
        question=question.strip(),
    )


__all__ = ["NOT_FOUND_PHRASE", "build_context", "build_prompt"]
