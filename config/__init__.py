"""Configuration module for SiteFoundry.

Provides environment-driven settings for fetching, embeddings and the vector store.
"""

from .settings import IngestSettings, DEFAULT_USER_AGENT

__all__ = [
    'IngestSettings',
    'DEFAULT_USER_AGENT'
]
