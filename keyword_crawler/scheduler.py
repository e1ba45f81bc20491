"""
Crawl Scheduler
===============
Breadth-first traversal of one site under depth and page budgets.

- FIFO frontier (insertion-ordered URL -> depth map) + visited set
- A URL is marked visited when it is dequeued, before it is fetched,
  so it can never be fetched twice
- Only same-origin links discovered on successful pages are enqueued,
  at depth + 1, and only while depth < max_depth
- The page cap is checked at dequeue time and the frontier never grows past
  the remaining budget, so at most ``max_pages`` URLs are visited
- Per-page failures are recorded and the crawl continues
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional, Set

from .fetcher import CrawlSession, FetcherConfig, PageFetcher
from .models import CrawlOutcome, CrawlTask, PageResult
from .utils import URLNormalizer, validate_and_normalize_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_PAGES = 500


class Frontier:
    """Insertion-ordered queue of URLs awaiting a visit."""

    def __init__(self):
        self._entries: "OrderedDict[str, int]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def push(self, url: str, depth: int) -> bool:
        if url in self._entries:
            return False
        self._entries[url] = depth
        return True

    def pop(self) -> CrawlTask:
        url, depth = self._entries.popitem(last=False)
        return CrawlTask(url=url, depth=depth)


class CrawlScheduler:
    """
    Orchestrates the fetcher over a BFS frontier.

    Usage::

        scheduler = CrawlScheduler(PageFetcher(fetcher_config))
        outcome = await scheduler.run("https://example.com", max_depth=3, max_pages=500)
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        session_factory: Optional[Callable[[str], CrawlSession]] = None,
    ):
        """
        Args:
            fetcher: Page fetcher (defaults to a ``PageFetcher`` with default config)
            session_factory: Callable(origin) returning an async context manager
                that yields the per-crawl session. Defaults to ``CrawlSession``.
        """
        self.fetcher = fetcher or PageFetcher()
        self._session_factory = session_factory or self._default_session
        self.url_normalizer = URLNormalizer()
        self._progress_callback: Optional[Callable] = None

    def _default_session(self, origin: str) -> CrawlSession:
        config = getattr(self.fetcher, 'config', None) or FetcherConfig()
        return CrawlSession(config, origin=origin)

    def set_progress_callback(self, callback: Callable) -> None:
        """Set callback: callback(pages_visited, current_url, page_result)"""
        self._progress_callback = callback

    async def run(
        self,
        seed_url: str,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> CrawlOutcome:
        """
        Crawl ``seed_url`` breadth-first.

        Raises:
            ValidationError: the seed URL is malformed (nothing is fetched)
        """
        seed = validate_and_normalize_url(seed_url)
        seed = self.url_normalizer.normalize(seed) or seed

        logger.info(f"Starting BFS crawl of {seed} (max_depth={max_depth}, max_pages={max_pages})")
        t_start = time.monotonic()

        async with self._session_factory(seed) as session:
            outcome = await self._crawl(seed, session, max_depth, max_pages)

        elapsed = time.monotonic() - t_start
        logger.info(
            f"Crawl complete: visited={outcome.total_visited}, "
            f"ok={len(outcome.successful_pages)}, failed={len(outcome.failed_pages)}, "
            f"{elapsed:.1f}s"
        )
        return outcome

    async def _crawl(self, seed: str, session, max_depth: int, max_pages: int) -> CrawlOutcome:
        frontier = Frontier()
        visited: Set[str] = set()
        pages = []

        frontier.push(seed, 0)

        while frontier and len(visited) < max_pages:
            task = frontier.pop()

            if task.url in visited or task.depth > max_depth:
                continue
            visited.add(task.url)

            logger.info(f"[BFS] Depth:{task.depth} | Queue:{len(frontier)} | {task.url[:80]}")

            result = await self.fetcher.fetch(task.url, task.depth, session)
            pages.append(result)
            self._notify(len(visited), task.url, result)

            if not result.ok or task.depth >= max_depth:
                continue

            budget = max_pages - len(visited) - len(frontier)
            enqueued = self._enqueue_links(result, frontier, visited, budget)
            logger.info(
                f"[FRONTIER] {task.url[:60]} → links={len(result.outbound_links)} "
                f"enqueued={enqueued} queue_size={len(frontier)}"
            )

        if frontier:
            logger.info(f"Reached max pages limit: {max_pages} ({len(frontier)} URLs left in frontier)")

        return CrawlOutcome(pages=pages, total_visited=len(visited))

    def _enqueue_links(
        self,
        result: PageResult,
        frontier: Frontier,
        visited: Set[str],
        budget: int,
    ) -> int:
        enqueued = 0
        for link in result.outbound_links:
            if enqueued >= budget:
                break
            normalized = self.url_normalizer.normalize(link)
            if not normalized or normalized in visited or normalized in frontier:
                continue
            frontier.push(normalized, result.depth + 1)
            enqueued += 1
        return enqueued

    def _notify(self, visited_count: int, url: str, result: PageResult) -> None:
        if not self._progress_callback:
            return
        try:
            self._progress_callback(visited_count, url, result)
        except Exception as e:
            logger.debug(f"Progress callback error ignored: {e}")
