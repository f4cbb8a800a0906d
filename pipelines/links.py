"""Outbound link discovery for the crawler."""

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .errors import InvalidAddress
from .urls import normalize_url, origin_of

logger = logging.getLogger(__name__)

_SKIPPED_PREFIXES = ('#', 'mailto:', 'javascript:', 'tel:', 'data:')


def discover_links(html: str, base_url: str,
                   same_origin: bool = True,
                   path_prefix: Optional[str] = None) -> List[str]:
    """Extract canonical in-scope links from ``html``.

    Args:
        html: Raw page markup
        base_url: Address the markup was fetched from, used to resolve relative links
        same_origin: Only keep links whose scheme, host and port match ``base_url``
        path_prefix: If set, only keep links whose path starts with it

    Returns:
        Normalized addresses in document order, without duplicates
    """
    soup = BeautifulSoup(html or '', 'html.parser')
    base_origin = origin_of(base_url)
    links: List[str] = []
    seen = set()

    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if not href or href.lower().startswith(_SKIPPED_PREFIXES):
            continue

        try:
            absolute = urljoin(base_url, href)
            candidate = normalize_url(absolute)
        except (ValueError, InvalidAddress):
            continue

        if same_origin and origin_of(candidate) != base_origin:
            continue
        if path_prefix and not urlsplit(candidate).path.startswith(path_prefix):
            continue

        if candidate not in seen:
            seen.add(candidate)
            links.append(candidate)

    logger.debug(f"Found {len(links)} in-scope links on {base_url}")
    return links
