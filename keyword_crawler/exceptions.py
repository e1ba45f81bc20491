"""Exceptions raised across the keyword crawl pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class KeywordCrawlerError(Exception):
    """Base exception for the keyword crawler"""

    pass


class ValidationError(KeywordCrawlerError):
    """Seed URL is malformed; no crawl is attempted"""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        msg = f"Invalid URL format: {url!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class NetworkError(KeywordCrawlerError):
    """A single page navigation failed"""

    def __init__(self, url: str, error_type: str, message: str):
        self.url = url
        self.error_type = error_type
        self.message = message
        super().__init__(f"{error_type}: {message} ({url})")


class AIServiceError(KeywordCrawlerError):
    """The external analysis service could not be reached or answered non-2xx"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"HTTP {status_code}: {message}"
        super().__init__(message)


class ParseError(KeywordCrawlerError):
    """AI response could not be decoded by any recovery strategy"""

    def __init__(self, attempted: Optional[List[str]] = None, preview: str = ""):
        self.attempted = attempted or []
        self.preview = preview
        msg = "Unparsable AI response"
        if self.attempted:
            msg += f" after strategies: {', '.join(self.attempted)}"
        super().__init__(msg)


class LimitExceededError(KeywordCrawlerError):
    """Usage gate denied the request"""

    def __init__(self, message: str, usage: Optional[Dict[str, Any]] = None):
        self.usage = usage or {}
        super().__init__(message)


class ZeroPagesError(KeywordCrawlerError):
    """No page of the crawl could be fetched"""

    def __init__(self, report_id: str, attempted: int = 0):
        self.report_id = report_id
        self.attempted = attempted
        super().__init__(
            "Could not access or find any content on the provided URL. "
            "The website may be down, blocking bots, or the domain may not exist."
        )


class ReportNotFoundError(KeywordCrawlerError):
    """No report with this id exists for the owner"""

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class CrawlFailedError(KeywordCrawlerError):
    """Unhandled failure after a report was created; the report is marked failed"""

    def __init__(self, report_id: str, message: str):
        self.report_id = report_id
        super().__init__(message)
