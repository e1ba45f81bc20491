"""
Utility Functions
URL validation, normalization, origin checks and text helpers.
"""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class URLNormalizer:
    """
    Normalizes discovered links so the frontier can dedup them.
    Resolves relative hrefs, drops non-navigational schemes and fragments.
    """

    # Links that never lead to a crawlable document
    SKIP_PREFIXES = ('javascript:', 'mailto:', 'tel:', 'data:', '#')

    # File extensions to skip (non-HTML resources)
    SKIP_EXTENSIONS = {
        '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg', '.webp', '.ico',
        '.pdf', '.zip', '.rar', '.tar', '.gz', '.7z',
        '.mp3', '.mp4', '.avi', '.mov', '.webm',
        '.css', '.js', '.woff', '.woff2', '.ttf', '.eot', '.otf'
    }

    def __init__(self, remove_fragments: bool = True, skip_resources: bool = True):
        """
        Args:
            remove_fragments: Remove URL fragments (#section)
            skip_resources: Reject links to binary/static resources
        """
        self.remove_fragments = remove_fragments
        self.skip_resources = skip_resources

    def normalize(self, url: str, base_url: str = None) -> Optional[str]:
        """
        Normalize a URL for consistent comparison.

        Args:
            url: The URL to normalize
            base_url: Optional base URL for resolving relative URLs

        Returns:
            Normalized URL string or None if it should not be crawled
        """
        if not url:
            return None

        url = url.strip()
        if not url or url.lower().startswith(self.SKIP_PREFIXES):
            return None

        if base_url:
            url = urljoin(base_url, url)

        try:
            parsed = urlparse(url)
        except ValueError:
            return None

        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            return None

        path = parsed.path or '/'
        if self.skip_resources:
            lower_path = path.lower()
            if any(lower_path.endswith(ext) for ext in self.SKIP_EXTENSIONS):
                return None

        fragment = '' if self.remove_fragments else parsed.fragment
        return urlunparse((
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            path,
            parsed.params,
            parsed.query,
            fragment,
        ))


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def same_origin(url: str, origin: str) -> bool:
    """True when ``url`` shares scheme and host with the crawl origin."""
    try:
        a = urlparse(url)
        b = urlparse(origin)
    except ValueError:
        return False
    return (
        a.scheme.lower() == b.scheme.lower()
        and (a.hostname or '').lower() == (b.hostname or '').lower()
        and a.port == b.port
    )


def validate_and_normalize_url(url: str) -> str:
    """
    Validate a user-supplied seed URL.

    A missing scheme defaults to https. Anything that is not an http(s) URL
    with a host raises ``ValidationError``.
    """
    if not url or not isinstance(url, str) or not url.strip():
        raise ValidationError(str(url), "URL is required")

    url = url.strip()
    if '://' not in url:
        url = 'https://' + url

    try:
        parsed = urlparse(url)
        # Accessing .port validates the port number
        _ = parsed.port
    except ValueError as exc:
        raise ValidationError(url, str(exc)) from exc

    if parsed.scheme.lower() not in ('http', 'https'):
        raise ValidationError(url, f"unsupported scheme '{parsed.scheme}'")
    if not parsed.hostname or ' ' in parsed.netloc:
        raise ValidationError(url, "missing host")

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path or '/',
        parsed.params,
        parsed.query,
        parsed.fragment,
    ))


def clean_text(text: str) -> str:
    """Clean and normalize text content."""
    if not text:
        return ""

    # Replace multiple whitespace with single space
    text = re.sub(r'\s+', ' ', text)

    return text.strip()
