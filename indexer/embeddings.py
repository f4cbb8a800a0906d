# SiteFoundry Embeddings Module
# Converts batches of text chunks into vectors through the OpenAI embeddings API

import logging
from typing import Any, List, Optional, Sequence

from openai import AsyncOpenAI

from pipelines.errors import EmbeddingError
from pipelines.retry import DEFAULT_BASE_DELAY_MS, DEFAULT_TRIES, with_retry

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"


class EmbeddingClient:
    """Embeds ordered batches of text with a fixed-dimensionality model"""

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: str = DEFAULT_MODEL,
                 dimensions: Optional[int] = None,
                 timeout: float = 60.0,
                 tries: int = DEFAULT_TRIES,
                 base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
                 client: Optional[Any] = None):
        """
        Initialize embedding client

        Args:
            api_key: OpenAI API key (ignored when ``client`` is given)
            model: Embedding model name
            dimensions: Optional output dimensionality passed to the provider
            timeout: Per-request timeout in seconds
            tries: Attempts per request, shared retry policy
            base_delay_ms: Initial backoff between attempts
            client: Pre-built client exposing ``embeddings.create``
        """
        if client is None:
            if not api_key:
                raise EmbeddingError("Missing OPENAI_API_KEY for the embedding provider")
            # Retries are handled by with_retry, not the SDK
            client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.tries = tries
        self.base_delay_ms = base_delay_ms

    @classmethod
    def from_settings(cls, settings) -> 'EmbeddingClient':
        return cls(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            timeout=settings.embed_timeout_s,
            tries=settings.retry_tries,
            base_delay_ms=settings.retry_base_delay_ms,
        )

    async def _request(self, texts: List[str]):
        kwargs = {"model": self.model, "input": texts}
        if self.dimensions:
            kwargs["dimensions"] = self.dimensions
        return await self.client.embeddings.create(**kwargs)

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed ``texts``; ``result[i]`` is the vector for ``texts[i]``"""
        texts = list(texts)
        if not texts:
            return []

        try:
            response = await with_retry(
                lambda: self._request(texts),
                tries=self.tries,
                base_delay_ms=self.base_delay_ms,
            )
        except Exception as e:
            logger.error(f"Embedding request for {len(texts)} texts failed: {e}")
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        # The provider tags each item with its input position
        items = sorted(response.data, key=lambda item: item.index)
        vectors = [list(item.embedding) for item in items]

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} inputs"
            )
        dimensions = {len(vector) for vector in vectors}
        if len(dimensions) != 1 or 0 in dimensions:
            raise EmbeddingError(f"Inconsistent embedding dimensions: {sorted(dimensions)}")

        logger.debug(f"Embedded {len(texts)} texts with {self.model} ({dimensions.pop()} dims)")
        return vectors

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single question or passage"""
        vectors = await self.embed([text])
        return vectors[0]

    async def close(self):
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
