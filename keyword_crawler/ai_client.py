"""
AI Analysis Client
==================
Builds the bounded crawl payload and posts it to the external keyword
analysis webhook.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

import requests

from .exceptions import AIServiceError
from .models import PageResult, utc_now

logger = logging.getLogger(__name__)

ANALYSIS_TYPE = "keyword_and_content_analysis"


@dataclass
class AIClientConfig:
    """Connection settings for the analysis webhook."""
    webhook_url: str = ""
    timeout_seconds: int = 220
    user_agent: str = "RankSeo-Analyzer/1.0"
    snippet_items: int = 5

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)


def analyzable_pages(pages: Iterable[PageResult]) -> List[PageResult]:
    """Pages worth sending: fetched without error and carrying content."""
    return [p for p in pages if p.ok and p.content_length > 0]


def build_payload(pages: Iterable[PageResult], snippet_items: int = 5) -> Dict[str, Any]:
    """
    Shape crawl output into the request body the service accepts.

    Only the first ``snippet_items`` content snippets of each page are sent.
    """
    valid = analyzable_pages(pages)
    return {
        'analysisType': ANALYSIS_TYPE,
        'timestamp': utc_now().isoformat(),
        'totalPages': len(valid),
        'pages': [
            {
                'url': p.url,
                'title': p.title,
                'snippet': " ".join(p.content_snippets[:snippet_items]),
                'wordCount': p.word_count,
                'contentLength': p.content_length,
                'keywords': [dict(k) for k in p.keywords],
            }
            for p in valid
        ],
    }


class AIAnalysisClient:
    """Blocking HTTP client for the analysis webhook."""

    def __init__(self, config: AIClientConfig, session: requests.Session = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': config.user_agent,
        })

    def submit(self, payload: Dict[str, Any]) -> Any:
        """
        POST ``payload`` and return the reply.

        Returns:
            Decoded JSON when the body is valid JSON, otherwise the raw text.

        Raises:
            AIServiceError: not configured, transport failure, or non-2xx status
        """
        if not self.config.enabled:
            raise AIServiceError("AI webhook URL is not configured")

        logger.info(f"[AI] Sending {payload.get('totalPages', 0)} pages for analysis")
        t_start = time.monotonic()
        try:
            response = self.session.post(
                self.config.webhook_url,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout as e:
            raise AIServiceError(f"Request timed out after {self.config.timeout_seconds}s") from e
        except requests.RequestException as e:
            raise AIServiceError(str(e)) from e

        elapsed = time.monotonic() - t_start
        if not 200 <= response.status_code < 300:
            raise AIServiceError(response.text[:200] or response.reason or "", status_code=response.status_code)

        logger.info(f"[AI] Response {response.status_code} in {elapsed:.1f}s ({len(response.content):,} bytes)")
        try:
            return response.json()
        except ValueError:
            return response.text
