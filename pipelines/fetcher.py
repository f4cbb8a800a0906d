"""Page retrieval for SiteFoundry.

Two independent paths against the same address:

- ``HttpFetcher.fetch_html`` returns raw HTML for link discovery and titles.
- ``Fetcher.scrape_text`` returns readable text, trying ``FastFetch`` first
  and ``RenderedFetch`` (headless Chromium) when ``should_render`` says the
  fast result is unusable.
"""

import asyncio
import logging
import re
from typing import Optional

import aiohttp
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from config.settings import DEFAULT_USER_AGENT
from .errors import FetchError, NoContent
from .text_cleaner import clean_html, collapse_whitespace

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 200

REQUEST_HEADERS = {
    'Accept': 'text/html,*/*',
    'Accept-Language': 'en-US,en;q=0.9',
}

BLOCKED_RESOURCE_TYPES = {'media', 'font', 'image'}
BLOCKED_HOSTS_RE = re.compile(
    r'(googletagmanager|google-analytics|gtag|doubleclick|hotjar|segment|amplitude'
    r'|intercom|clarity|optimizely|cdn-cookielaw)',
    re.IGNORECASE,
)
CONTENT_SELECTOR = 'main, article, #__next, .content, .docs'

VISIBLE_TEXT_JS = """() => {
  const pick = document.querySelector("main, article, #__next, .content, .docs, body");
  return ((pick && pick.innerText) || (document.body && document.body.innerText) || "").trim();
}"""

BROWSER_ARGS = ['--disable-dev-shm-usage', '--no-sandbox']


def should_render(text: Optional[str], failed: bool, min_chars: int = MIN_CONTENT_CHARS) -> bool:
    """Decide whether the rendering strategy must run after the fast path.

    A failed fast path and a successful-but-short one are treated alike.
    """
    return failed or len(text or '') < min_chars


def should_block_request(resource_type: str, url: str) -> bool:
    """True for heavy resources and analytics requests the renderer skips."""
    return resource_type in BLOCKED_RESOURCE_TYPES or bool(BLOCKED_HOSTS_RE.search(url or ''))


class HttpFetcher:
    """Time-bounded raw HTTP GETs over a shared aiohttp session."""

    def __init__(self,
                 user_agent: str = DEFAULT_USER_AGENT,
                 timeout: float = 25.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(headers={'User-Agent': self.user_agent})
            self._owns_session = True
        return self.session

    async def close(self):
        """Close the session if this fetcher created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch_html(self, url: str) -> str:
        """GET ``url`` and return its HTML.

        Raises:
            FetchError: non-2xx status, non-HTML content, transport error or timeout
        """
        session = await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with session.get(url, allow_redirects=True, headers=REQUEST_HEADERS,
                                   timeout=timeout) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"HTTP {response.status} for {url}")

                content_type = response.headers.get('content-type', '')
                if 'text/html' not in content_type.lower():
                    raise FetchError(f"Not HTML: {content_type or 'unknown'} for {url}")

                return await response.text(errors='replace')
        except asyncio.TimeoutError as e:
            raise FetchError(f"Timed out after {self.timeout}s fetching {url}") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Client error fetching {url}: {e}") from e


class FastFetch:
    """Raw HTTP fetch reduced to flat text."""

    name = 'fast'

    def __init__(self, http: HttpFetcher):
        self.http = http

    async def extract(self, url: str) -> str:
        html = await self.http.fetch_html(url)
        return clean_html(html)


class RenderedFetch:
    """Headless Chromium rendering for script-built pages."""

    name = 'rendered'

    def __init__(self,
                 user_agent: str = DEFAULT_USER_AGENT,
                 nav_timeout: float = 45.0,
                 selector_wait: float = 10.0,
                 min_visible_chars: int = MIN_CONTENT_CHARS):
        self.user_agent = user_agent
        self.nav_timeout_ms = int(nav_timeout * 1000)
        self.selector_wait_ms = int(selector_wait * 1000)
        self.min_visible_chars = min_visible_chars

    @staticmethod
    async def _route_filter(route):
        request = route.request
        if should_block_request(request.resource_type, request.url):
            await route.abort()
        else:
            await route.continue_()

    async def extract(self, url: str) -> str:
        """Render ``url`` and return its visible text.

        The browser is closed on every exit path.
        """
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
            try:
                context = await browser.new_context(
                    user_agent=self.user_agent,
                    ignore_https_errors=True,
                    locale='en-US',
                )
                page = await context.new_page()
                await page.route('**/*', self._route_filter)
                page.set_default_navigation_timeout(self.nav_timeout_ms)

                # DOM-ready only; network idle never comes on long-polling pages
                await page.goto(url, wait_until='domcontentloaded', timeout=self.nav_timeout_ms)
                try:
                    await page.wait_for_selector(CONTENT_SELECTOR, timeout=self.selector_wait_ms)
                except PlaywrightTimeoutError:
                    logger.debug(f"No content container on {url} after {self.selector_wait_ms}ms")

                visible = collapse_whitespace(await page.evaluate(VISIBLE_TEXT_JS) or '')
                if len(visible) > self.min_visible_chars:
                    return visible

                return clean_html(await page.content())
            finally:
                await browser.close()


class Fetcher:
    """Raw HTML and text scraping for one crawl or ingestion call."""

    def __init__(self,
                 http: HttpFetcher,
                 rendered: Optional[RenderedFetch] = None,
                 min_content_chars: int = MIN_CONTENT_CHARS):
        self.http = http
        self.fast = FastFetch(http)
        self.rendered = rendered
        self.min_content_chars = min_content_chars

    @classmethod
    def from_settings(cls, settings) -> 'Fetcher':
        http = HttpFetcher(user_agent=settings.user_agent, timeout=settings.http_timeout_s)
        rendered = None
        if settings.render_fallback:
            rendered = RenderedFetch(
                user_agent=settings.user_agent,
                nav_timeout=settings.nav_timeout_s,
                selector_wait=settings.selector_wait_s,
                min_visible_chars=settings.min_content_chars,
            )
        return cls(http, rendered=rendered, min_content_chars=settings.min_content_chars)

    async def __aenter__(self):
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.http.close()

    async def close(self):
        await self.http.close()

    async def fetch_html(self, url: str) -> str:
        return await self.http.fetch_html(url)

    async def scrape_text(self, url: str) -> str:
        """Return readable text for ``url``.

        Raises:
            NoContent: neither strategy produced non-empty text
        """
        text = ''
        failed = False
        try:
            text = await self.fast.extract(url)
        except Exception as e:
            failed = True
            logger.warning(f"Fast fetch failed for {url}, falling back to rendering: {e}")

        if not should_render(text, failed, self.min_content_chars):
            return text

        render_error: Optional[Exception] = None
        if self.rendered is not None:
            try:
                rendered = await self.rendered.extract(url)
                if rendered:
                    return rendered
            except Exception as e:
                render_error = e
                logger.warning(f"Rendered fetch failed for {url}: {e}")

        if text:
            return text
        raise NoContent(f"No readable text found at {url}") from render_error
