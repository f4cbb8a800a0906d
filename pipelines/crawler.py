"""Web crawler pipeline for SiteFoundry.

A ``CrawlSession`` walks one site breadth-first from a seed address,
bounded by depth, page count and a politeness delay, and indexes every
page it can read. Failures are isolated per page.
"""

import argparse
import asyncio
import json
import logging
import sys
import time
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set

from observability.logging import get_structured_logger
from .errors import IngestError, InvalidAddress, VectorStoreError
from .fetcher import Fetcher
from .indexer import PageIndexer
from .links import discover_links
from .text_cleaner import extract_title
from .urls import is_http_url, namespace_for, normalize_url
from .utils import clamp_int

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 1
DEFAULT_MAX_PAGES = 50
DEFAULT_DELAY_MS = 200


def normalize_path_prefix(value: Any) -> Optional[str]:
    """Return ``value`` with a leading slash, or None when unset."""
    if not isinstance(value, str) or not value.strip():
        return None
    prefix = value.strip()
    return prefix if prefix.startswith('/') else f"/{prefix}"


@dataclass
class CrawlTask:
    """An address waiting in the frontier."""
    address: str
    depth: int


@dataclass
class CrawlOptions:
    """Validated, clamped crawl configuration."""
    start_url: str
    namespace: str
    path_prefix: Optional[str] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    max_pages: int = DEFAULT_MAX_PAGES
    delay_ms: int = DEFAULT_DELAY_MS
    title: str = ""

    @classmethod
    def build(cls,
              start_url: Any,
              namespace: Any = None,
              path_prefix: Any = None,
              max_depth: Any = None,
              max_pages: Any = None,
              delay_ms: Any = None,
              title: Any = None) -> 'CrawlOptions':
        """Apply defaults and clamping once, at the boundary.

        Raises:
            InvalidAddress: ``start_url`` is not an absolute HTTP(S) address
        """
        if not is_http_url(start_url):
            raise InvalidAddress("Please provide a valid HTTP(S) 'start_url'.")
        seed = normalize_url(start_url)

        if isinstance(namespace, str) and namespace.strip():
            namespace = namespace.strip()
        else:
            namespace = namespace_for(seed)

        return cls(
            start_url=seed,
            namespace=namespace,
            path_prefix=normalize_path_prefix(path_prefix),
            max_depth=clamp_int(max_depth, 0, 6, DEFAULT_MAX_DEPTH),
            max_pages=clamp_int(max_pages, 1, 1000, DEFAULT_MAX_PAGES),
            delay_ms=clamp_int(delay_ms, 0, 5000, DEFAULT_DELAY_MS),
            title=title.strip() if isinstance(title, str) else "",
        )


@dataclass
class CrawlStats:
    """Per-session counters beyond the caller-facing result."""
    fetch_failed: int = 0
    scrape_failed: int = 0
    index_failed: int = 0
    links_enqueued: int = 0
    chunks: int = 0


@dataclass
class CrawlResult:
    """Summary returned to the caller; never persisted."""
    start_url: str
    namespace: str
    path_prefix: Optional[str]
    max_depth: int
    max_pages: int
    crawled: int
    upserted: int
    elapsed_ms: int
    stats: CrawlStats = field(default_factory=CrawlStats)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CrawlSession:
    """Frontier, seen-set and counters for one crawl invocation."""

    def __init__(self, options: CrawlOptions, fetcher: Fetcher, indexer: PageIndexer):
        self.options = options
        self.fetcher = fetcher
        self.indexer = indexer

        self.frontier: Deque[CrawlTask] = deque([CrawlTask(options.start_url, 0)])
        self.seen: Set[str] = set()
        self.queued: Set[str] = {options.start_url}
        self.visited: List[CrawlTask] = []
        self.crawled = 0
        self.upserted = 0
        self.stats = CrawlStats()

        self.session_id = uuid.uuid4().hex[:8]
        self.log = get_structured_logger(__name__, session=self.session_id)

    def _in_scope_links(self, html: str, task: CrawlTask) -> List[str]:
        return discover_links(html, task.address, same_origin=True, path_prefix=self.options.path_prefix)

    def _enqueue_links(self, html: str, task: CrawlTask) -> None:
        for link in self._in_scope_links(html, task):
            if link in self.seen or link in self.queued:
                continue
            self.queued.add(link)
            self.frontier.append(CrawlTask(link, task.depth + 1))
            self.stats.links_enqueued += 1

    async def _process(self, task: CrawlTask) -> None:
        url = task.address

        try:
            html = await self.fetcher.fetch_html(url)
        except Exception as e:
            self.stats.fetch_failed += 1
            self.log.warning(f"Raw fetch failed: {e}", url=url)
            return

        title = self.options.title or extract_title(html)

        if task.depth < self.options.max_depth:
            try:
                self._enqueue_links(html, task)
            except Exception as e:
                self.log.warning(f"Link discovery failed: {e}", url=url)

        try:
            text = await self.fetcher.scrape_text(url)
        except Exception as e:
            self.stats.scrape_failed += 1
            self.log.warning(f"Scrape failed: {e}", url=url)
            return

        self.crawled += 1

        try:
            result = await self.indexer.index_page(url, text, title=title, namespace=self.options.namespace)
        except VectorStoreError as e:
            # Batches committed before the failure stay committed
            self.upserted += e.upserted
            self.stats.index_failed += 1
            self.log.warning(f"Upsert failed: {e}", url=url)
            return
        except Exception as e:
            self.stats.index_failed += 1
            self.log.warning(f"Indexing failed: {e}", url=url)
            return

        self.upserted += result.upserted
        self.stats.chunks += result.chunks

    async def run(self) -> CrawlResult:
        """Drain the frontier until it is empty or the page cap is reached."""
        started = time.monotonic()
        opts = self.options
        self.log.info(
            f"Starting crawl of {opts.start_url}",
            namespace=opts.namespace, path_prefix=opts.path_prefix,
            max_depth=opts.max_depth, max_pages=opts.max_pages,
        )

        while self.frontier and self.crawled < opts.max_pages:
            task = self.frontier.popleft()
            if task.address in self.seen or task.depth > opts.max_depth:
                continue
            self.seen.add(task.address)
            self.visited.append(task)

            await self._process(task)

            if opts.delay_ms:
                await asyncio.sleep(opts.delay_ms / 1000.0)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self.log.info(
            f"Crawl completed: {self.crawled} pages, {self.upserted} vectors "
            f"({self.stats.fetch_failed} fetch failures, {self.stats.scrape_failed} scrape failures, "
            f"{self.stats.index_failed} indexing failures)",
            elapsed_ms=elapsed_ms,
        )
        return CrawlResult(
            start_url=opts.start_url,
            namespace=opts.namespace,
            path_prefix=opts.path_prefix,
            max_depth=opts.max_depth,
            max_pages=opts.max_pages,
            crawled=self.crawled,
            upserted=self.upserted,
            elapsed_ms=elapsed_ms,
            stats=self.stats,
        )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SiteFoundry crawler: crawl a site into the vector store")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--start-url", help="Seed address")
    target.add_argument("--source", help="Source profile name or YAML path")
    parser.add_argument("--namespace", help="Vector namespace (default: seed hostname)")
    parser.add_argument("--path-prefix", help="Only follow links under this path")
    parser.add_argument("--max-depth", type=int, help="Link depth limit (0-6)")
    parser.add_argument("--max-pages", type=int, help="Page limit (1-1000)")
    parser.add_argument("--delay-ms", type=int, help="Politeness delay between pages")
    parser.add_argument("--title", help="Title stored on every vector")
    parser.add_argument("--log-level", default=None, help="Log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; prints the crawl result as JSON."""
    from config.settings import IngestSettings
    from observability.logging import setup_logging
    from sources.loader import load_source_config
    from .ingest import IngestionService

    args = build_arg_parser().parse_args(argv)
    settings = IngestSettings.from_env()
    setup_logging(level=args.log_level or settings.log_level,
                  use_json=args.json_logs or settings.log_json)

    request: Dict[str, Any] = {}
    if args.source:
        source = load_source_config(args.source)
        if source is None:
            logger.error(f"Unknown source profile: {args.source}")
            return 2
        request.update(source.to_request())
    else:
        request["start_url"] = args.start_url

    overrides = {
        "namespace": args.namespace,
        "path_prefix": args.path_prefix,
        "max_depth": args.max_depth,
        "max_pages": args.max_pages,
        "delay_ms": args.delay_ms,
        "title": args.title,
    }
    request.update({key: value for key, value in overrides.items() if value is not None})

    try:
        result = asyncio.run(IngestionService(settings).crawl(**request))
    except IngestError as e:
        logger.error(f"Crawl aborted [{e.code}]: {e.message}")
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
