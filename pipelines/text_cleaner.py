"""HTML to flat text reduction used by the fast fetch path."""

import logging
import re

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_SCRIPT_RE = re.compile(r'<script[\s\S]*?</script>', re.IGNORECASE)
_STYLE_RE = re.compile(r'<style[\s\S]*?</style>', re.IGNORECASE)
_COMMENT_RE = re.compile(r'<!--[\s\S]*?-->')
_NOSCRIPT_RE = re.compile(r'<noscript[\s\S]*?</noscript>', re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]+>')
_WHITESPACE_RE = re.compile(r'\s+')


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return _WHITESPACE_RE.sub(' ', text or '').strip()


def clean_html(html: str) -> str:
    """Reduce HTML markup to readable text without building a DOM."""
    if not html:
        return ''
    text = _SCRIPT_RE.sub('', html)
    text = _STYLE_RE.sub('', text)
    text = _COMMENT_RE.sub('', text)
    text = _NOSCRIPT_RE.sub('', text)
    text = _TAG_RE.sub(' ', text)
    return collapse_whitespace(text)


def extract_title(html: str) -> str:
    """Return the page ``<title>`` text, or an empty string."""
    if not html:
        return ''
    try:
        soup = BeautifulSoup(html, 'html.parser')
    except Exception as e:
        logger.debug(f"Could not parse HTML for title: {e}")
        return ''
    title = soup.find('title')
    if title is None:
        return ''
    return collapse_whitespace(title.get_text())
