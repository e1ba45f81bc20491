"""
Page Fetcher & Extractor
========================
Navigates one URL in the crawl's shared Playwright session and turns the
rendered document into a ``PageResult``.

Architecture:
- One browser, one BrowserContext, one Page per crawl (``CrawlSession``)
- Route-based blocking of images, stylesheets, fonts and media
- Desktop Chrome user agent, bounded per-navigation timeout
- Extraction runs on the rendered HTML with BeautifulSoup, so it is a pure
  function of (html, page url, crawl origin)
- Navigation failures are classified (dns / refused / timeout / ssl / unknown)
  and returned as error results; they never propagate to the scheduler
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from bs4 import BeautifulSoup
from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .exceptions import NetworkError
from .keywords import extract_keywords
from .models import PageResult
from .utils import URLNormalizer, clean_text, origin_of, same_origin

logger = logging.getLogger(__name__)

_BS_PARSER = "lxml"

# Nodes whose text counts as page content
_TEXT_SELECTOR = "h1, h2, h3, h4, h5, h6, p, li, span"

# Never carry readable content
_STRIP_TAGS = ['script', 'style', 'noscript', 'template', 'svg']


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class FetcherConfig:
    """Configuration for the browser session and page extraction."""
    navigation_timeout_ms: int = 60000
    launch_timeout_ms: int = 120000
    headless: bool = True
    ignore_https_errors: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )
    blocked_resource_types: FrozenSet[str] = frozenset(["image", "stylesheet", "font", "media"])

    # Content extraction
    max_raw_snippets: int = 25
    max_snippets: int = 15
    min_snippet_length: int = 15
    max_snippet_length: int = 800
    keywords_per_page: int = 10


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------

# (error_type, substrings, human message); first match wins
_ERROR_RULES: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("dns_error", ("ERR_NAME_NOT_RESOLVED",),
     "DNS resolution failed - domain may not exist"),
    ("connection_refused", ("ERR_CONNECTION_REFUSED",),
     "Connection refused - server may be down"),
    ("timeout", ("timeout", "ERR_TIMED_OUT"),
     "Request timeout - server took too long to respond"),
    ("ssl_error", ("SSL", "ERR_CERT_"),
     "SSL certificate error - secure connection failed"),
)


def classify_navigation_error(message: str) -> Tuple[str, str]:
    """
    Map a navigation error message to ``(error_type, human_message)``.

    Matching is by substring, case-insensitive, in a fixed order so a
    message mentioning both a DNS failure and a timeout is a DNS error.
    """
    message = message or ""
    lowered = message.lower()
    for error_type, needles, human in _ERROR_RULES:
        if any(n.lower() in lowered for n in needles):
            return error_type, human
    return "unknown", f"Scrape failed: {message[:100]}..."


# ---------------------------------------------------------------------------
# Extraction (pure)
# ---------------------------------------------------------------------------

def extract_page_content(
    html: str,
    page_url: str,
    origin: str,
    config: Optional[FetcherConfig] = None,
) -> Dict:
    """
    Pull title, content snippets and same-origin links out of a document.

    Args:
        html: Rendered page HTML
        page_url: URL the document was served from (resolves relative links)
        origin: Crawl origin; links must share its scheme and host
        config: Extraction limits

    Returns:
        Dict with ``title``, ``raw_snippets``, ``snippets``, ``links``,
        ``text``, ``content_length`` and ``word_count``.
    """
    config = config or FetcherConfig()
    soup = BeautifulSoup(html or "", _BS_PARSER)

    for tag in soup.find_all(_STRIP_TAGS):
        tag.decompose()

    title = clean_text(soup.title.get_text()) if soup.title else ""

    raw_snippets: List[str] = []
    for element in soup.select(_TEXT_SELECTOR):
        text = clean_text(element.get_text(" "))
        if config.min_snippet_length <= len(text) < config.max_snippet_length:
            raw_snippets.append(text)
            if len(raw_snippets) >= config.max_raw_snippets:
                break

    normalizer = URLNormalizer()
    links: List[str] = []
    seen = set()
    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if not href or href.startswith('#') or href.endswith('#'):
            continue
        normalized = normalizer.normalize(href, page_url)
        if not normalized or not same_origin(normalized, origin):
            continue
        if normalized not in seen:
            seen.add(normalized)
            links.append(normalized)

    text = " ".join(raw_snippets)
    return {
        'title': title,
        'raw_snippets': raw_snippets,
        'snippets': raw_snippets[:config.max_snippets],
        'links': links,
        'text': text,
        'content_length': len(text),
        'word_count': len(text.split()),
    }


# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------

class CrawlSession:
    """
    Per-crawl browser resource plus the crawl's origin.

    Usage::

        async with CrawlSession(config, origin="https://example.com") as session:
            result = await fetcher.fetch(url, depth, session)

    The browser is closed on every exit path of the ``async with`` block.
    """

    def __init__(self, config: FetcherConfig, origin: str):
        self.config = config
        self.origin = origin_of(origin)
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "CrawlSession":
        try:
            await self._open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _open(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            timeout=self.config.launch_timeout_ms,
            args=['--disable-gpu', '--no-sandbox', '--disable-dev-shm-usage'],
        )
        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            viewport={
                'width': self.config.viewport_width,
                'height': self.config.viewport_height,
            },
            ignore_https_errors=self.config.ignore_https_errors,
            locale='en-US',
        )
        if self.config.blocked_resource_types:
            await self._context.route("**/*", self._route_handler)

        self.page = await self._context.new_page()
        self.page.set_default_timeout(self.config.navigation_timeout_ms)
        self.page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        logger.info(
            f"[SESSION] Browser ready (blocking={','.join(sorted(self.config.blocked_resource_types)) or 'none'})"
        )

    async def _route_handler(self, route) -> None:
        """Abort non-document resources."""
        if route.request.resource_type in self.config.blocked_resource_types:
            await route.abort()
            return
        await route.continue_()

    async def close(self) -> None:
        """Close page, context, browser and Playwright; safe to call twice."""
        for closer in (self.page, self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except Exception as e:
                logger.debug(f"[SESSION] Close error ignored: {e}")
        self.page = None
        self._context = None
        self._browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"[SESSION] Playwright stop error ignored: {e}")
            self._playwright = None


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

class PageFetcher:
    """Fetches and extracts one page at a time through a ``CrawlSession``."""

    def __init__(self, config: Optional[FetcherConfig] = None):
        self.config = config or FetcherConfig()

    async def fetch(self, url: str, depth: int, session: CrawlSession) -> PageResult:
        """
        Navigate to ``url`` and extract its content.

        Never raises for navigation problems: a classified error
        ``PageResult`` is returned instead.
        """
        t_start = time.monotonic()
        try:
            html = await self._navigate(url, session)
        except NetworkError as e:
            logger.warning(f"[FETCH] Failed {url[:70]} — {e.error_type}: {e.message[:120]}")
            return PageResult.failed(url, depth, e.error_type, e.message)

        content = extract_page_content(html, url, session.origin, self.config)
        keywords = extract_keywords(content['text'], self.config.keywords_per_page)

        elapsed_ms = (time.monotonic() - t_start) * 1000
        logger.info(
            f"[FETCH] {url[:70]} — title='{content['title'][:50]}', "
            f"words={content['word_count']:,}, links={len(content['links'])}, "
            f"{elapsed_ms:.0f}ms"
        )
        return PageResult(
            url=url,
            depth=depth,
            title=content['title'],
            content_snippets=tuple(content['snippets']),
            outbound_links=tuple(content['links']),
            keywords=tuple(keywords),
            content_length=content['content_length'],
            word_count=content['word_count'],
        )

    async def _navigate(self, url: str, session: CrawlSession) -> str:
        """Load ``url`` in the session page and return its HTML, or raise ``NetworkError``."""
        try:
            await session.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
            return await session.page.content()
        except PlaywrightTimeout as e:
            raw = f"Navigation timeout: {e}"
        except Exception as e:
            raw = str(e)
        error_type, human = classify_navigation_error(raw)
        logger.debug(f"[FETCH] Raw navigation error for {url[:70]}: {raw[:200]}")
        raise NetworkError(url, error_type, human)
