"""
Keyword Crawler Package
Breadth-first site crawler that discovers SEO keywords, asks an external
analysis service to enrich them, and keeps the results as reports.

CLI Usage:
    python -m keyword_crawler <url> [options]

    Options:
        --depth         Maximum crawl depth (default: 3)
        --pages         Maximum pages to crawl (default: 500)
        --timeout       Per-page navigation timeout in seconds (default: 60)
        --ai-url        Keyword analysis webhook URL
        --store         Report store JSON file
        --owner         Owner id the report is filed under (default: cli)
        --output-json   Export to JSON file
        --output-csv    Export to CSV file
        --output-docx   Export to DOCX file
        --headed        Show the browser window
"""

from .exceptions import (
    AIServiceError,
    CrawlFailedError,
    KeywordCrawlerError,
    LimitExceededError,
    NetworkError,
    ParseError,
    ReportNotFoundError,
    ValidationError,
    ZeroPagesError,
)
from .fetcher import CrawlSession, FetcherConfig, PageFetcher
from .keywords import extract_keywords
from .lifecycle import KeywordCheckResult, ReportLifecycleManager
from .models import CrawlOutcome, KeywordEntry, KeywordReport, PageResult, Report, ReportStatus
from .normalizer import submit_and_normalize
from .report_store import InMemoryReportStore, JsonFileReportStore, ReportStore
from .run_config import CrawlerRunConfig
from .scheduler import CrawlScheduler
from .usage import InMemoryUsageTracker, UsageTracker

__all__ = [
    'CrawlScheduler',
    'PageFetcher',
    'FetcherConfig',
    'CrawlSession',
    'extract_keywords',
    'submit_and_normalize',
    'ReportLifecycleManager',
    'KeywordCheckResult',
    'CrawlerRunConfig',
    # Models
    'PageResult',
    'CrawlOutcome',
    'KeywordEntry',
    'KeywordReport',
    'Report',
    'ReportStatus',
    # Collaborators
    'ReportStore',
    'InMemoryReportStore',
    'JsonFileReportStore',
    'UsageTracker',
    'InMemoryUsageTracker',
    # Errors
    'KeywordCrawlerError',
    'NetworkError',
    'ParseError',
    'ValidationError',
    'LimitExceededError',
    'ZeroPagesError',
    'ReportNotFoundError',
    'AIServiceError',
    'CrawlFailedError',
]

__version__ = '1.0.0'
