"""Tests for raw HTML fetching and the fast/rendered text strategies."""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.settings import IngestSettings
from pipelines.errors import FetchError, NoContent
from pipelines.fetcher import (
    Fetcher,
    HttpFetcher,
    RenderedFetch,
    should_block_request,
    should_render,
)

LONG_TEXT = "Documentation text. " * 30


def mock_session(status=200, content_type="text/html; charset=utf-8", body="<html>ok</html>", error=None):
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
        return session
    response = MagicMock()
    response.status = status
    response.headers = {"content-type": content_type}
    response.text = AsyncMock(return_value=body)
    session.get.return_value.__aenter__ = AsyncMock(return_value=response)
    session.get.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


class TestHttpFetcher:

    async def test_returns_html(self):
        fetcher = HttpFetcher(session=mock_session(body="<html><title>x</title></html>"))
        assert await fetcher.fetch_html("https://example.com/") == "<html><title>x</title></html>"

    async def test_redirects_followed_and_timeout_applied(self):
        session = mock_session()
        await HttpFetcher(session=session, timeout=7).fetch_html("https://example.com/")
        kwargs = session.get.call_args.kwargs
        assert kwargs["allow_redirects"] is True
        assert kwargs["timeout"].total == 7

    @pytest.mark.parametrize("status", [301, 404, 500])
    async def test_non_success_status(self, status):
        with pytest.raises(FetchError, match=f"HTTP {status}"):
            await HttpFetcher(session=mock_session(status=status)).fetch_html("https://example.com/")

    async def test_non_html_rejected(self):
        with pytest.raises(FetchError, match="Not HTML"):
            await HttpFetcher(session=mock_session(content_type="application/json")).fetch_html("https://example.com/")

    async def test_transport_error(self):
        session = mock_session(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(FetchError, match="Client error"):
            await HttpFetcher(session=session).fetch_html("https://example.com/")

    async def test_timeout(self):
        session = mock_session(error=asyncio.TimeoutError())
        with pytest.raises(FetchError, match="Timed out"):
            await HttpFetcher(session=session).fetch_html("https://example.com/")

    async def test_borrowed_session_not_closed(self):
        session = mock_session()
        session.close = AsyncMock()
        async with HttpFetcher(session=session):
            pass
        session.close.assert_not_awaited()


def test_should_render():
    assert should_render("", failed=False)
    assert should_render("short", failed=False)
    assert should_render(LONG_TEXT, failed=True)
    assert not should_render(LONG_TEXT, failed=False)
    assert should_render("x" * 199, failed=False, min_chars=200)
    assert not should_render("x" * 200, failed=False, min_chars=200)


@pytest.mark.parametrize("resource_type,url,blocked", [
    ("image", "https://example.com/logo.png", True),
    ("font", "https://example.com/f.woff2", True),
    ("media", "https://example.com/v.mp4", True),
    ("script", "https://www.googletagmanager.com/gtm.js", True),
    ("xhr", "https://api.segment.io/v1/t", True),
    ("script", "https://example.com/app.js", False),
    ("document", "https://example.com/docs", False),
])
def test_should_block_request(resource_type, url, blocked):
    assert should_block_request(resource_type, url) is blocked


def make_fetcher(fast_result=None, fast_error=None, rendered_result=None, rendered_error=None, with_renderer=True):
    fetcher = Fetcher(HttpFetcher(session=MagicMock()))
    fetcher.fast = MagicMock()
    fetcher.fast.extract = AsyncMock(return_value=fast_result, side_effect=fast_error)
    if with_renderer:
        fetcher.rendered = MagicMock()
        fetcher.rendered.extract = AsyncMock(return_value=rendered_result, side_effect=rendered_error)
    else:
        fetcher.rendered = None
    return fetcher


class TestScrapeText:

    async def test_long_fast_text_skips_rendering(self):
        fetcher = make_fetcher(fast_result=LONG_TEXT)
        assert await fetcher.scrape_text("https://example.com/") == LONG_TEXT
        fetcher.rendered.extract.assert_not_awaited()

    async def test_short_fast_text_uses_rendering(self):
        fetcher = make_fetcher(fast_result="Loading...", rendered_result=LONG_TEXT)
        assert await fetcher.scrape_text("https://example.com/") == LONG_TEXT
        fetcher.rendered.extract.assert_awaited_once_with("https://example.com/")

    async def test_failed_fast_fetch_uses_rendering(self):
        fetcher = make_fetcher(fast_error=FetchError("HTTP 403"), rendered_result=LONG_TEXT)
        assert await fetcher.scrape_text("https://example.com/") == LONG_TEXT

    async def test_render_failure_falls_back_to_short_fast_text(self):
        fetcher = make_fetcher(fast_result="Short but real", rendered_error=RuntimeError("browser crashed"))
        assert await fetcher.scrape_text("https://example.com/") == "Short but real"

    async def test_nothing_readable_raises_no_content(self):
        fetcher = make_fetcher(fast_error=FetchError("HTTP 500"), rendered_error=RuntimeError("crash"))
        with pytest.raises(NoContent) as excinfo:
            await fetcher.scrape_text("https://example.com/")
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    async def test_empty_render_and_empty_fast(self):
        fetcher = make_fetcher(fast_result="", rendered_result="")
        with pytest.raises(NoContent):
            await fetcher.scrape_text("https://example.com/")

    async def test_without_renderer_short_text_returned(self):
        fetcher = make_fetcher(fast_result="tiny", with_renderer=False)
        assert await fetcher.scrape_text("https://example.com/") == "tiny"


def test_from_settings_respects_render_fallback():
    assert Fetcher.from_settings(IngestSettings(render_fallback=False)).rendered is None
    fetcher = Fetcher.from_settings(IngestSettings(nav_timeout_s=5, min_content_chars=50))
    assert fetcher.rendered.nav_timeout_ms == 5000
    assert fetcher.min_content_chars == 50


def fake_playwright(page):
    browser = MagicMock()
    browser.close = AsyncMock()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    browser.new_context = AsyncMock(return_value=context)
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, browser


def fake_page(visible="", html="", goto_error=None, selector_error=None):
    page = MagicMock()
    page.route = AsyncMock()
    page.goto = AsyncMock(side_effect=goto_error)
    page.wait_for_selector = AsyncMock(side_effect=selector_error)
    page.evaluate = AsyncMock(return_value=visible)
    page.content = AsyncMock(return_value=html)
    return page


class TestRenderedFetch:

    async def test_visible_text_returned(self):
        page = fake_page(visible="  Rendered   docs\n" * 40,
                         selector_error=PlaywrightTimeoutError("no container"))
        manager, browser = fake_playwright(page)
        with patch("pipelines.fetcher.async_playwright", return_value=manager):
            text = await RenderedFetch().extract("https://example.com/app")
        assert text.startswith("Rendered docs Rendered docs")
        assert page.goto.await_args.kwargs["wait_until"] == "domcontentloaded"
        browser.close.assert_awaited_once()

    async def test_short_visible_text_falls_back_to_markup(self):
        page = fake_page(visible="Hi", html="<body><script>x()</script><p>Full page</p></body>")
        manager, _ = fake_playwright(page)
        with patch("pipelines.fetcher.async_playwright", return_value=manager):
            assert await RenderedFetch().extract("https://example.com/app") == "Full page"

    async def test_browser_closed_when_navigation_fails(self):
        page = fake_page(goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
        manager, browser = fake_playwright(page)
        with patch("pipelines.fetcher.async_playwright", return_value=manager):
            with pytest.raises(RuntimeError):
                await RenderedFetch().extract("https://example.com/app")
        browser.close.assert_awaited_once()

    async def test_route_filter(self):
        route = MagicMock()
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()
        route.request.resource_type = "image"
        route.request.url = "https://example.com/a.png"
        await RenderedFetch._route_filter(route)
        route.abort.assert_awaited_once()

        route.request.resource_type = "document"
        route.request.url = "https://example.com/docs"
        await RenderedFetch._route_filter(route)
        route.continue_.assert_awaited_once()
