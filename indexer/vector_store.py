"""Namespaced vector persistence on Pinecone.

Upserts go out in fixed-size batches, each wrapped in the shared retry
policy and a per-call timeout. Batches committed before a failure stay
committed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pinecone import Pinecone

from pipelines.errors import InvalidVector, VectorStoreError
from pipelines.retry import DEFAULT_BASE_DELAY_MS, DEFAULT_TRIES, with_retry
from pipelines.utils import batched, clamp_int

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
DEFAULT_TOP_K = 8
MAX_TOP_K = 200


@dataclass
class EmbeddingVector:
    """One record to persist: id, values and page metadata."""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.id, "values": list(self.values), "metadata": dict(self.metadata)}


@dataclass
class QueryMatch:
    """Nearest-neighbour hit returned by the vector store."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "score": self.score, "metadata": self.metadata}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    # SDK responses expose attributes, test doubles and older SDKs use dicts
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class VectorStoreWriter:
    """Batched, retried writes and queries against one Pinecone index."""

    def __init__(self,
                 index: Any,
                 batch_size: int = UPSERT_BATCH_SIZE,
                 tries: int = DEFAULT_TRIES,
                 base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
                 timeout: float = 30.0):
        """
        Args:
            index: Pinecone ``Index`` handle (anything with ``upsert`` and ``query``)
            batch_size: Vectors per upsert call
            tries: Attempts per remote call
            base_delay_ms: Initial backoff between attempts
            timeout: Seconds allowed for a single remote call
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.index = index
        self.batch_size = batch_size
        self.tries = tries
        self.base_delay_ms = base_delay_ms
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> 'VectorStoreWriter':
        if not settings.pinecone_api_key:
            raise VectorStoreError("Missing PINECONE_API_KEY")
        if not settings.pinecone_index:
            raise VectorStoreError("Missing PINECONE_INDEX")
        client = Pinecone(api_key=settings.pinecone_api_key)
        return cls(
            index=client.Index(settings.pinecone_index),
            batch_size=settings.upsert_batch_size,
            tries=settings.retry_tries,
            base_delay_ms=settings.retry_base_delay_ms,
            timeout=settings.vector_timeout_s,
        )

    async def _call(self, func, **kwargs):
        # The Pinecone client is synchronous; keep the event loop free
        return await asyncio.wait_for(asyncio.to_thread(func, **kwargs), timeout=self.timeout)

    @staticmethod
    def validate(vectors: Sequence[EmbeddingVector]) -> None:
        for position, vector in enumerate(vectors):
            if not vector.id or not isinstance(vector.id, str):
                raise InvalidVector(f"Vector at index {position} has no id")
            if not vector.values:
                raise InvalidVector(f"Vector at index {position} ({vector.id}) has no values")

    async def upsert(self, vectors: Sequence[EmbeddingVector], namespace: Optional[str] = None) -> int:
        """Persist ``vectors`` into ``namespace`` and return how many were accepted.

        Raises:
            InvalidVector: a record is malformed; nothing was sent
            VectorStoreError: a batch exhausted its retries; ``upserted`` counts
                the vectors committed by earlier batches
        """
        vectors = list(vectors)
        if not vectors:
            return 0
        self.validate(vectors)

        total = 0
        batches = list(batched(vectors, self.batch_size))
        for number, batch in enumerate(batches, start=1):
            records = [vector.to_record() for vector in batch]
            try:
                await with_retry(
                    lambda: self._call(self.index.upsert, vectors=records, namespace=namespace or ""),
                    tries=self.tries,
                    base_delay_ms=self.base_delay_ms,
                )
            except Exception as e:
                logger.error(f"Upsert batch {number}/{len(batches)} failed after {self.tries} attempts: {e}")
                raise VectorStoreError(f"Upsert failed after {total} vectors: {e}", upserted=total) from e
            total += len(batch)
            logger.debug(f"Upserted batch {number}/{len(batches)} ({len(batch)} vectors) into '{namespace or ''}'")

        return total

    async def query(self,
                    vector: Sequence[float],
                    top_k: Any = DEFAULT_TOP_K,
                    namespace: Optional[str] = None,
                    filter: Optional[Dict[str, Any]] = None) -> List[QueryMatch]:
        """Return the ``top_k`` closest stored vectors, best first."""
        if not vector:
            raise InvalidVector("Query vector must be a non-empty list of numbers")

        k = clamp_int(top_k, 1, MAX_TOP_K, DEFAULT_TOP_K)
        kwargs = {
            "vector": list(vector),
            "top_k": k,
            "namespace": namespace or "",
            "include_metadata": True,
            "include_values": False,
        }
        if filter:
            kwargs["filter"] = filter

        try:
            response = await with_retry(
                lambda: self._call(self.index.query, **kwargs),
                tries=self.tries,
                base_delay_ms=self.base_delay_ms,
            )
        except Exception as e:
            logger.error(f"Query failed after {self.tries} attempts: {e}")
            raise VectorStoreError(f"Query failed: {e}") from e

        matches = [
            QueryMatch(
                id=_field(match, "id", ""),
                score=float(_field(match, "score", 0.0) or 0.0),
                metadata=dict(_field(match, "metadata", None) or {}),
            )
            for match in (_field(response, "matches", None) or [])
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches
