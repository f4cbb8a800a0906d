"""Error taxonomy for the SiteFoundry ingestion pipeline.

Every error carries a stable ``code`` and the HTTP status the API maps it to.
"""

from typing import Any, Dict


class IngestError(Exception):
    """Base class for all pipeline errors."""

    code = "server_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(IngestError):
    """Bad or missing input fields. Never retried."""

    code = "bad_request"
    status_code = 400


class InvalidAddress(ValidationError):
    """Input is not an absolute HTTP(S) address."""


class UnsafeAddress(ValidationError):
    """Address points at a private host or internal service."""


class FetchError(IngestError):
    """Page unreachable, non-successful, or not HTML."""

    code = "fetch_failed"
    status_code = 502


class NoContent(IngestError):
    """No fetch strategy produced readable text."""

    code = "no_content"
    status_code = 422


class EmbeddingError(IngestError):
    """Embedding provider failure."""

    code = "embedding_failed"
    status_code = 502


class InvalidVector(IngestError):
    """Malformed vector record, detected before any remote call."""

    code = "bad_request"
    status_code = 400


class VectorStoreError(IngestError):
    """Vector database failure after retries.

    ``upserted`` holds the number of vectors committed by earlier batches
    of the same call; those are not rolled back.
    """

    code = "vector_store_failed"
    status_code = 502

    def __init__(self, message: str, upserted: int = 0):
        super().__init__(message)
        self.upserted = upserted
