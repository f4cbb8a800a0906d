"""Runtime settings for SiteFoundry.

All knobs come from environment variables (optionally a ``.env`` file) and
are read once through ``IngestSettings.from_env()``.
"""

import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "SiteFoundry/0.1 (+https://github.com/sitefoundry/sitefoundry)"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


class IngestSettings(BaseModel):
    """Configuration for fetching, embedding and vector storage."""

    # Embeddings
    openai_api_key: str = Field(default="", description="OpenAI API key")
    embedding_model: str = Field(default="text-embedding-3-small", description="Embedding model name")
    embedding_dimensions: Optional[int] = Field(default=None, description="Requested vector size")
    embed_timeout_s: float = Field(default=60.0, description="Embedding request timeout")

    # Vector store
    pinecone_api_key: str = Field(default="", description="Pinecone API key")
    pinecone_index: str = Field(default="", description="Pinecone index name")
    vector_timeout_s: float = Field(default=30.0, description="Per-call vector store timeout")
    upsert_batch_size: int = Field(default=100, description="Vectors per upsert call")

    # Retry policy shared by remote calls
    retry_tries: int = Field(default=3, description="Attempts per remote call")
    retry_base_delay_ms: int = Field(default=300, description="Initial backoff delay")

    # Fetching
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent for HTTP and browser")
    http_timeout_s: float = Field(default=25.0, description="Raw HTTP fetch timeout")
    nav_timeout_s: float = Field(default=45.0, description="Browser navigation timeout")
    selector_wait_s: float = Field(default=10.0, description="Soft wait for a content container")
    min_content_chars: int = Field(default=200, description="Shortest fast-path text accepted")
    render_fallback: bool = Field(default=True, description="Fall back to a headless browser")

    # Chunking
    chunk_max_chars: int = Field(default=1200, description="Chunk window size")
    chunk_overlap: int = Field(default=150, description="Characters shared by adjacent chunks")

    # Safety
    block_private_addresses: bool = Field(default=True, description="Reject private/internal seed hosts")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    @classmethod
    def from_env(cls) -> 'IngestSettings':
        """Create settings from environment variables."""
        load_dotenv()
        dimensions = os.getenv('EMBEDDING_DIMENSIONS', '').strip()
        return cls(
            openai_api_key=os.getenv('OPENAI_API_KEY', '').strip(),
            embedding_model=os.getenv('EMBEDDING_MODEL', 'text-embedding-3-small'),
            embedding_dimensions=int(dimensions) if dimensions.isdigit() else None,
            embed_timeout_s=_env_float('EMBED_TIMEOUT_S', 60.0),
            pinecone_api_key=os.getenv('PINECONE_API_KEY', '').strip(),
            pinecone_index=os.getenv('PINECONE_INDEX', '').strip(),
            vector_timeout_s=_env_float('VECTOR_TIMEOUT_S', 30.0),
            upsert_batch_size=_env_int('UPSERT_BATCH_SIZE', 100),
            retry_tries=_env_int('RETRY_TRIES', 3),
            retry_base_delay_ms=_env_int('RETRY_BASE_DELAY_MS', 300),
            user_agent=os.getenv('CRAWL_USER_AGENT', DEFAULT_USER_AGENT),
            http_timeout_s=_env_float('HTTP_TIMEOUT_S', 25.0),
            nav_timeout_s=_env_float('NAV_TIMEOUT_S', 45.0),
            selector_wait_s=_env_float('SELECTOR_WAIT_S', 10.0),
            min_content_chars=_env_int('MIN_CONTENT_CHARS', 200),
            render_fallback=_env_bool('RENDER_FALLBACK', True),
            chunk_max_chars=_env_int('CHUNK_MAX_CHARS', 1200),
            chunk_overlap=_env_int('CHUNK_OVERLAP', 150),
            block_private_addresses=_env_bool('BLOCK_PRIVATE_ADDRESSES', True),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_json=_env_bool('LOG_JSON', False),
        )
