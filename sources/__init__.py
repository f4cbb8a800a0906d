"""Sources package for SiteFoundry.

Provides crawl profile loading.
"""

from .loader import (
    SourceConfig,
    SourceLoader,
    load_source_config,
    load_all_sources
)

__all__ = [
    'SourceConfig',
    'SourceLoader',
    'load_source_config',
    'load_all_sources'
]
