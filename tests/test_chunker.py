import math
import random
import string

import pytest

from ragchat.errors import ConfigurationError
from ragchat.ingest import chunk_text


def generate_letters(length: int, seed: int = 42) -> str:
    rng = random.Random(seed)
    return "".join(rng.choice(string.ascii_letters) for _ in range(length))


def generate_words(words: int = 200, seed: int = 42) -> str:
    rng = random.Random(seed)
    tokens = []
    for _ in range(words):
        size = rng.randint(3, 12)
        tokens.append("".join(rng.choice(string.ascii_lowercase) for _ in range(size)))
    return " ".join(tokens)


def test_4000_characters_yield_four_windows() -> None:
    text = generate_letters(4000)

    chunks = chunk_text(text, size=1500, overlap=250)

    assert [chunk.start for chunk in chunks] == [0, 1250, 2500, 3750]
    assert [chunk.end - chunk.start for chunk in chunks] == [1500, 1500, 1500, 250]
    assert [chunk.index for chunk in chunks] == [0, 1, 2, 3]
    assert chunks[-1].text == text[3750:]


def test_default_window_is_1500_with_250_overlap() -> None:
    text = generate_letters(3000)

    chunks = chunk_text(text)

    assert [(chunk.start, chunk.end) for chunk in chunks] == [(0, 1500), (1250, 2750), (2500, 3000)]


@pytest.mark.parametrize(
    ("length", "size", "overlap"),
    [(1, 10, 0), (99, 10, 3), (100, 10, 3), (4000, 1500, 250), (1500, 1500, 250), (777, 50, 49)],
)
def test_chunk_count_matches_window_loop(length: int, size: int, overlap: int) -> None:
    text = generate_letters(length)

    chunks = chunk_text(text, size=size, overlap=overlap)

    assert len(chunks) == math.ceil(length / (size - overlap))


def test_non_overlapping_spans_reconstruct_text() -> None:
    text = generate_letters(2345)
    size, overlap = 300, 40

    chunks = chunk_text(text, size=size, overlap=overlap)

    rebuilt = chunks[0].text
    for previous, current in zip(chunks, chunks[1:]):
        rebuilt += current.text[previous.end - current.start :]
    assert rebuilt == text


def test_consecutive_windows_overlap_by_configured_amount() -> None:
    text = generate_words(300)

    chunks = chunk_text(text, size=200, overlap=30)

    for previous, current in zip(chunks, chunks[1:]):
        assert current.start > previous.start
        if previous.end - previous.start == 200:
            assert previous.end - current.start == 30


def test_chunk_text_is_whitespace_collapsed_and_trimmed() -> None:
    text = "alpha   beta\n\n\tgamma " * 10

    chunks = chunk_text(text, size=25, overlap=5)

    for chunk in chunks:
        assert chunk.text == chunk.text.strip()
        assert "  " not in chunk.text
        assert "\n" not in chunk.text and "\t" not in chunk.text


def test_blank_windows_are_dropped_and_indexes_stay_sequential() -> None:
    text = "a" * 10 + " " * 30 + "b" * 10

    chunks = chunk_text(text, size=10, overlap=0)

    assert [chunk.text for chunk in chunks] == ["a" * 10, "b" * 10]
    assert [chunk.index for chunk in chunks] == [0, 1]


def test_empty_text_returns_no_chunks() -> None:
    assert chunk_text("") == []


@pytest.mark.parametrize(("size", "overlap"), [(10, 10), (10, 11), (0, 0), (-5, 0), (10, -1)])
def test_invalid_window_configuration_is_rejected(size: int, overlap: int) -> None:
    with pytest.raises(ConfigurationError):
        chunk_text("some text", size=size, overlap=overlap)
