import math

import pytest

from pipelines.chunker import Chunk, ChunkSequence, chunk_text


def letters(length: int) -> str:
    return "".join(chr(97 + i % 26) for i in range(length))


def test_chunker_respects_size():
    """Test that no chunk exceeds the window size."""
    chunks = list(chunk_text(letters(2500), max_chars=1200, overlap=150))
    assert len(chunks) == 3
    assert all(len(c.text) <= 1200 for c in chunks)
    assert [len(c.text) for c in chunks] == [1200, 1200, 400]


def test_chunker_with_small_text():
    """Test chunker behavior with text smaller than max_chars."""
    chunks = list(chunk_text("Short text"))
    assert chunks == [Chunk(index=0, text="Short text")]


def test_chunker_overlap():
    """Test that adjacent chunks share exactly ``overlap`` characters."""
    chunks = chunk_text(letters(4000), max_chars=1000, overlap=100).texts()
    for current, following in zip(chunks, chunks[1:]):
        assert current[-100:] == following[:100]


def test_chunker_empty_text():
    """Test chunker behavior with empty text."""
    assert list(chunk_text("")) == []
    assert list(chunk_text(None)) == []


@pytest.mark.parametrize("length", [1, 1049, 1050, 1051, 1200, 2101, 5000])
def test_chunk_count_matches_window_count(length):
    sequence = chunk_text(letters(length))
    assert len(list(sequence)) == math.ceil(length / 1050)
    assert sequence.window_count() == math.ceil(length / 1050)


def test_whitespace_windows_dropped_and_indices_contiguous():
    text = "a" * 1000 + " " * 1200 + "b" * 500
    chunks = list(chunk_text(text))
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert all(c.text == c.text.strip() and c.text for c in chunks)
    assert chunks[0].text == "a" * 1000


def test_trailing_whitespace_only_window_skipped():
    chunks = list(chunk_text("a" * 1000 + " " * 1200))
    assert len(chunks) == 1


def test_sequence_is_restartable():
    sequence = chunk_text(letters(3000), max_chars=500, overlap=50)
    assert list(sequence) == list(sequence)


@pytest.mark.parametrize("max_chars,overlap", [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)])
def test_invalid_window_settings(max_chars, overlap):
    with pytest.raises(ValueError):
        ChunkSequence("text", max_chars=max_chars, overlap=overlap)


def test_chunk_to_dict():
    assert Chunk(index=2, text="x").to_dict() == {"index": 2, "text": "x"}
