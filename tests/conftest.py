"""Shared test doubles for SiteFoundry tests."""

import pytest
from typing import Dict, List, Optional

from config.settings import IngestSettings
from indexer.vector_store import VectorStoreWriter
from pipelines.errors import FetchError, NoContent
from pipelines.text_cleaner import clean_html


class FakeIndex:
    """In-memory stand-in for a Pinecone index handle."""

    def __init__(self, fail_batches=(), fail_times=None, matches=None, fail_urls=()):
        self.upsert_calls: List[dict] = []
        self.query_calls: List[dict] = []
        self.fail_batches = set(fail_batches)
        # Remaining failures per batch number; None means fail forever
        self.fail_times = fail_times
        self.matches = matches or []
        self.fail_urls = set(fail_urls)
        self.attempts = 0

    def upsert(self, vectors, namespace=""):
        self.attempts += 1
        batch_number = len(self.upsert_calls) + 1
        if any(record["metadata"].get("url") in self.fail_urls for record in vectors):
            raise RuntimeError("upsert rejected for url")
        if batch_number in self.fail_batches:
            if self.fail_times is None:
                raise RuntimeError(f"upsert batch {batch_number} rejected")
            if self.fail_times > 0:
                self.fail_times -= 1
                raise RuntimeError(f"upsert batch {batch_number} rejected")
        self.upsert_calls.append({"vectors": vectors, "namespace": namespace})
        return {"upserted_count": len(vectors)}

    def query(self, **kwargs):
        self.query_calls.append(kwargs)
        return {"matches": list(self.matches)}

    @property
    def stored(self) -> List[dict]:
        return [record for call in self.upsert_calls for record in call["vectors"]]


class FakeEmbedder:
    """Deterministic embedder: each text maps to [len(text), 1.0]."""

    def __init__(self, fail: bool = False):
        self.calls: List[List[str]] = []
        self.fail = fail

    async def embed(self, texts):
        texts = list(texts)
        self.calls.append(texts)
        if self.fail:
            from pipelines.errors import EmbeddingError
            raise EmbeddingError("embedding provider unavailable")
        return [[float(len(text)), 1.0] for text in texts]

    async def embed_query(self, text):
        vectors = await self.embed([text])
        return vectors[0]


class FakeFetcher:
    """Serves canned pages by address.

    ``pages`` maps address to HTML; ``texts`` optionally overrides the
    scraped text for an address. Missing addresses raise ``FetchError``.
    """

    def __init__(self, pages: Dict[str, str], texts: Optional[Dict[str, str]] = None,
                 scrape_failures=()):
        self.pages = pages
        self.texts = texts or {}
        self.scrape_failures = set(scrape_failures)
        self.fetched: List[str] = []
        self.scraped: List[str] = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1

    async def fetch_html(self, url):
        self.fetched.append(url)
        if url not in self.pages:
            raise FetchError(f"HTTP 404 for {url}")
        return self.pages[url]

    async def scrape_text(self, url):
        self.scraped.append(url)
        if url in self.scrape_failures:
            raise NoContent(f"No readable text found at {url}")
        if url in self.texts:
            return self.texts[url]
        if url not in self.pages:
            raise NoContent(f"No readable text found at {url}")
        return clean_html(self.pages[url])


def page(title: str, body: str, links=()) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><head><title>{title}</title></head><body><main>{body}</main>{anchors}</body></html>"


@pytest.fixture
def settings():
    return IngestSettings(block_private_addresses=False, retry_base_delay_ms=0)


@pytest.fixture
def fake_index():
    return FakeIndex()


@pytest.fixture
def writer(fake_index):
    return VectorStoreWriter(fake_index, batch_size=100, tries=3, base_delay_ms=0, timeout=5.0)


@pytest.fixture
def embedder():
    return FakeEmbedder()
