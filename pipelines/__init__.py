"""Pipelines package for SiteFoundry.

Provides address normalization, fetching, link discovery, text cleaning,
chunking, retries and the crawl loop. The crawl and ingestion entry points
live in ``pipelines.crawler`` and ``pipelines.ingest``.
"""

from .errors import (
    IngestError,
    ValidationError,
    InvalidAddress,
    UnsafeAddress,
    FetchError,
    NoContent,
    EmbeddingError,
    InvalidVector,
    VectorStoreError
)
from .urls import normalize_url, is_http_url, namespace_for, DEFAULT_STRIP_PARAMS
from .text_cleaner import clean_html, extract_title
from .chunker import Chunk, ChunkSequence, chunk_text
from .links import discover_links
from .retry import with_retry

__all__ = [
    # Errors
    'IngestError',
    'ValidationError',
    'InvalidAddress',
    'UnsafeAddress',
    'FetchError',
    'NoContent',
    'EmbeddingError',
    'InvalidVector',
    'VectorStoreError',

    # Addresses
    'normalize_url',
    'is_http_url',
    'namespace_for',
    'DEFAULT_STRIP_PARAMS',

    # Text
    'clean_html',
    'extract_title',
    'Chunk',
    'ChunkSequence',
    'chunk_text',

    # Crawling
    'discover_links',
    'with_retry'
]
