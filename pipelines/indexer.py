"""Page indexing pipeline for SiteFoundry.

Turns the cleaned text of one page into embedded, tagged vectors and
upserts them into a namespace.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import List, Optional

from indexer.embeddings import EmbeddingClient
from indexer.vector_store import EmbeddingVector, VectorStoreWriter
from .chunker import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP, Chunk, chunk_text
from .errors import EmbeddingError
from .utils import safe_slice

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 800
TITLE_CHARS = 300
SINGLE_TEXT_CHARS = 5000


def vector_id(address: str, suffix) -> str:
    """Stable vector id for one chunk of one address."""
    digest = hashlib.sha256(address.encode('utf-8')).hexdigest()[:16]
    return f"{digest}-{suffix}"


def page_metadata(address: str, title: str, chunk_index: int, text: str) -> dict:
    return {
        "url": address,
        "title": safe_slice(title or "", TITLE_CHARS),
        "chunk_index": chunk_index,
        "text": safe_slice(text, SNIPPET_CHARS),
    }


@dataclass
class PageIndexResult:
    """Outcome of indexing one page."""
    chunks: int
    upserted: int


class PageIndexer:
    """Chunk, embed and upsert page text."""

    def __init__(self,
                 embedder: EmbeddingClient,
                 writer: VectorStoreWriter,
                 max_chars: int = DEFAULT_MAX_CHARS,
                 overlap: int = DEFAULT_OVERLAP):
        self.embedder = embedder
        self.writer = writer
        self.max_chars = max_chars
        self.overlap = overlap

    def build_vectors(self, address: str, title: str,
                      chunks: List[Chunk], embeddings: List[List[float]]) -> List[EmbeddingVector]:
        if len(chunks) != len(embeddings):
            raise EmbeddingError(f"Got {len(embeddings)} embeddings for {len(chunks)} chunks")
        return [
            EmbeddingVector(
                id=vector_id(address, chunk.index),
                values=values,
                metadata=page_metadata(address, title, chunk.index, chunk.text),
            )
            for chunk, values in zip(chunks, embeddings)
        ]

    async def index_page(self, address: str, text: str, title: str = "",
                         namespace: Optional[str] = None) -> PageIndexResult:
        """Index all chunks of ``text``; pages without chunks make no remote calls."""
        chunks = list(chunk_text(text, self.max_chars, self.overlap))
        if not chunks:
            return PageIndexResult(chunks=0, upserted=0)

        embeddings = await self.embedder.embed([chunk.text for chunk in chunks])
        vectors = self.build_vectors(address, title, chunks, embeddings)
        upserted = await self.writer.upsert(vectors, namespace=namespace)

        logger.info(f"Indexed {address}: {len(chunks)} chunks, {upserted} vectors")
        return PageIndexResult(chunks=len(chunks), upserted=upserted)

    async def index_single(self, address: str, text: str, title: str = "",
                           namespace: Optional[str] = None) -> int:
        """Store ``text`` as one vector with a short snippet for grounding."""
        values = await self.embedder.embed_query(text[:SINGLE_TEXT_CHARS])
        vector = EmbeddingVector(
            id=vector_id(address, "one"),
            values=values,
            metadata={
                "url": address,
                "title": safe_slice(title or "", TITLE_CHARS),
                "text": safe_slice(text, SNIPPET_CHARS),
            },
        )
        return await self.writer.upsert([vector], namespace=namespace)
