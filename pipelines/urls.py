"""Address canonicalization for crawl dedup and storage."""

from typing import FrozenSet, Iterable, Optional, Tuple
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from .errors import InvalidAddress

ALLOWED_SCHEMES = {'http', 'https'}
DEFAULT_PORTS = {'http': 80, 'https': 443}

# Common campaign / click-id parameters
DEFAULT_STRIP_PARAMS: FrozenSet[str] = frozenset({
    'utm_source',
    'utm_medium',
    'utm_campaign',
    'utm_term',
    'utm_content',
    'gclid',
    'fbclid',
})


def is_http_url(value) -> bool:
    """Return True if ``value`` parses as an absolute HTTP(S) address."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlsplit(value.strip())
        parsed.port  # raises on malformed ports
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.hostname)


def _strip_query(query: str, strip_params: Iterable[str]) -> str:
    # Work on raw segments so the encoding of kept parameters is untouched
    kept = []
    for segment in query.split('&'):
        if not segment:
            continue
        key = unquote_plus(segment.split('=', 1)[0])
        if key in strip_params:
            continue
        kept.append(segment)
    return '&'.join(kept)


def normalize_url(address: str, strip_params: Optional[Iterable[str]] = DEFAULT_STRIP_PARAMS) -> str:
    """Canonicalize an absolute HTTP(S) address.

    - drops the fragment
    - drops tracking query parameters, keeping the others in order
    - lower-cases scheme and host, drops default ports
    - keeps a directory-style trailing slash but never more than one

    Raises:
        InvalidAddress: if ``address`` is not an absolute HTTP(S) address
    """
    if not is_http_url(address):
        raise InvalidAddress(f"Not a valid HTTP(S) address: {address!r}")

    parsed = urlsplit(address.strip())
    scheme = parsed.scheme.lower()

    host = parsed.hostname.lower()
    if ':' in host:
        host = f"[{host}]"
    netloc = host
    if parsed.port is not None and parsed.port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{parsed.port}"
    if parsed.username is not None:
        userinfo = parsed.username
        if parsed.password is not None:
            userinfo += f":{parsed.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parsed.path or '/'
    if path != '/' and path.endswith('/'):
        path = path.rstrip('/') + '/'

    query = _strip_query(parsed.query, frozenset(strip_params or ()))
    return urlunsplit((scheme, netloc, path, query, ''))


def origin_of(address: str) -> Tuple[str, str, int]:
    """Return (scheme, host, port) with the default port filled in."""
    parsed = urlsplit(address)
    scheme = parsed.scheme.lower()
    port = parsed.port or DEFAULT_PORTS.get(scheme, 0)
    return scheme, (parsed.hostname or '').lower(), port


def namespace_for(address: str) -> str:
    """Derive the vector namespace for a site from its hostname."""
    return urlsplit(normalize_url(address)).hostname or ''
