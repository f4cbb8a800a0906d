"""Ingestion flows for SiteFoundry.

``IngestionService`` is what the API and CLI call: scrape previews,
single-page ingestion, full crawls and question queries. Errors here are
surfaced to the caller; only the crawl loop swallows per-page failures.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from config.settings import IngestSettings
from indexer.embeddings import EmbeddingClient
from indexer.vector_store import VectorStoreWriter
from .crawler import CrawlOptions, CrawlResult, CrawlSession
from .errors import InvalidAddress, NoContent, ValidationError
from .fetcher import Fetcher
from .indexer import SNIPPET_CHARS, PageIndexer
from .security import check_url_ssrf
from .urls import is_http_url, namespace_for, normalize_url
from .utils import clamp_int, safe_slice

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 1500
DEFAULT_QUERY_TOP_K = 5
MAX_QUERY_TOP_K = 50


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@dataclass
class ScrapePreview:
    url: str
    length: int
    preview: str
    elapsed_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChunkIngestResult:
    url: str
    namespace: str
    chunks: int
    upserted: int
    elapsed_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TextIngestResult:
    url: str
    namespace: str
    upserted: int
    elapsed_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class QueryResult:
    question: str
    namespace: Optional[str]
    top_k: int
    results: List[Dict[str, Any]] = field(default_factory=list)
    elapsed_ms: int = 0

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["count"] = self.count
        return data


class IngestionService:
    """Wires fetcher, embedder and vector store together per request."""

    def __init__(self,
                 settings: Optional[IngestSettings] = None,
                 embedder: Optional[EmbeddingClient] = None,
                 writer: Optional[VectorStoreWriter] = None,
                 fetcher_factory: Optional[Callable[[], Fetcher]] = None):
        self.settings = settings or IngestSettings.from_env()
        self._embedder = embedder
        self._writer = writer
        self._fetcher_factory = fetcher_factory or (lambda: Fetcher.from_settings(self.settings))

    @property
    def embedder(self) -> EmbeddingClient:
        if self._embedder is None:
            self._embedder = EmbeddingClient.from_settings(self.settings)
        return self._embedder

    @property
    def writer(self) -> VectorStoreWriter:
        if self._writer is None:
            self._writer = VectorStoreWriter.from_settings(self.settings)
        return self._writer

    def page_indexer(self) -> PageIndexer:
        return PageIndexer(
            self.embedder,
            self.writer,
            max_chars=self.settings.chunk_max_chars,
            overlap=self.settings.chunk_overlap,
        )

    async def _checked_address(self, url: Any, field_name: str = "url") -> str:
        if not is_http_url(url):
            raise InvalidAddress(f"Please provide a valid HTTP(S) '{field_name}'.")
        clean = normalize_url(url)
        if self.settings.block_private_addresses:
            # Hostname resolution blocks; keep it off the event loop
            await asyncio.to_thread(check_url_ssrf, clean)
        return clean

    @staticmethod
    def _namespace(namespace: Any, url: str) -> str:
        if isinstance(namespace, str) and namespace.strip():
            return namespace.strip()
        return namespace_for(url)

    async def scrape_preview(self, url: Any) -> ScrapePreview:
        """Scrape ``url`` and return its length and a short preview."""
        started = time.monotonic()
        clean = await self._checked_address(url)

        async with self._fetcher_factory() as fetcher:
            text = await fetcher.scrape_text(clean)
        if not text or not text.strip():
            raise NoContent("No readable text found at the provided url.")

        return ScrapePreview(url=clean, length=len(text),
                             preview=safe_slice(text, PREVIEW_CHARS),
                             elapsed_ms=_elapsed_ms(started))

    async def ingest_url_chunks(self, url: Any, title: Any = "", namespace: Any = None) -> ChunkIngestResult:
        """Scrape one page, chunk it and upsert every chunk."""
        started = time.monotonic()
        clean = await self._checked_address(url)
        ns = self._namespace(namespace, clean)

        async with self._fetcher_factory() as fetcher:
            text = await fetcher.scrape_text(clean)
        if not text or not text.strip():
            raise NoContent("The page had no readable text to ingest.")

        result = await self.page_indexer().index_page(
            clean, text, title=title if isinstance(title, str) else "", namespace=ns
        )
        if not result.chunks:
            raise NoContent("No chunks were produced from the page text.")

        return ChunkIngestResult(url=clean, namespace=ns, chunks=result.chunks,
                                 upserted=result.upserted, elapsed_ms=_elapsed_ms(started))

    async def ingest_text(self, url: Any, text: Any, title: Any = "", namespace: Any = None) -> TextIngestResult:
        """Store caller-supplied text for ``url`` as a single vector."""
        started = time.monotonic()
        if not is_http_url(url):
            raise InvalidAddress("Please provide a valid HTTP(S) 'url'.")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Please provide non-empty 'text'.")

        clean = normalize_url(url)
        ns = self._namespace(namespace, clean)
        upserted = await self.page_indexer().index_single(
            clean, text, title=title if isinstance(title, str) else "", namespace=ns
        )
        return TextIngestResult(url=clean, namespace=ns, upserted=upserted,
                                elapsed_ms=_elapsed_ms(started))

    async def crawl(self, start_url: Any = None, **request) -> CrawlResult:
        """Crawl a site from ``start_url`` into its namespace.

        Invalid seeds abort here, before the loop starts.
        """
        options = CrawlOptions.build(start_url, **request)
        await self._checked_address(options.start_url, field_name="start_url")

        async with self._fetcher_factory() as fetcher:
            session = CrawlSession(options, fetcher, self.page_indexer())
            return await session.run()

    async def query(self, question: Any, top_k: Any = None, namespace: Optional[str] = None) -> QueryResult:
        """Embed ``question`` and return the closest stored snippets."""
        started = time.monotonic()
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Please include a non-empty 'question' string.")

        k = clamp_int(top_k, 1, MAX_QUERY_TOP_K, DEFAULT_QUERY_TOP_K)
        ns = namespace.strip() if isinstance(namespace, str) and namespace.strip() else None

        vector = await self.embedder.embed_query(question.strip())
        matches = await self.writer.query(vector, top_k=k, namespace=ns)

        results = [
            {
                "id": match.id,
                "score": match.score,
                "url": match.metadata.get("url"),
                "title": match.metadata.get("title"),
                "snippet": safe_slice(match.metadata.get("text") or "", SNIPPET_CHARS),
            }
            for match in matches
        ]
        return QueryResult(question=question.strip(), namespace=ns, top_k=k,
                           results=results, elapsed_ms=_elapsed_ms(started))
