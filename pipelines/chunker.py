"""Text chunking for SiteFoundry.

Splits cleaned page text into fixed-size overlapping windows, the unit of
embedding.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 1200
DEFAULT_OVERLAP = 150


@dataclass(frozen=True)
class Chunk:
    """A trimmed, non-empty window of page text."""
    index: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "text": self.text}


class ChunkSequence:
    """Lazy, restartable sequence of chunks over one text.

    Each iteration walks the text again from the start; nothing is cached.
    """

    def __init__(self, text: str, max_chars: int = DEFAULT_MAX_CHARS, overlap: int = DEFAULT_OVERLAP):
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        if overlap < 0:
            raise ValueError("overlap must not be negative")
        if overlap >= max_chars:
            raise ValueError("overlap must be smaller than max_chars")

        self.text = text or ""
        self.max_chars = max_chars
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.max_chars - self.overlap

    def window_count(self) -> int:
        """Number of windows cut from the text, before empty ones are dropped."""
        length = len(self.text)
        return -(-length // self.step) if length else 0

    def __iter__(self) -> Iterator[Chunk]:
        index = 0
        for start in range(0, len(self.text), self.step):
            piece = self.text[start:start + self.max_chars].strip()
            if piece:
                yield Chunk(index=index, text=piece)
                index += 1

    def texts(self) -> List[str]:
        return [chunk.text for chunk in self]

    def __repr__(self) -> str:
        return (f"ChunkSequence(length={len(self.text)}, max_chars={self.max_chars}, "
                f"overlap={self.overlap})")


def chunk_text(text: str, max_chars: int = DEFAULT_MAX_CHARS, overlap: int = DEFAULT_OVERLAP) -> ChunkSequence:
    """Split ``text`` into overlapping windows.

    Windows start every ``max_chars - overlap`` characters, so adjacent
    windows share exactly ``overlap`` characters of source text. Windows that
    are empty after trimming are skipped and indices stay contiguous.
    """
    return ChunkSequence(text, max_chars=max_chars, overlap=overlap)
