"""
Data Model
==========
Typed records passed between the crawl, analysis and report stages.

- ``PageResult``    one per visited URL, frozen once produced
- ``CrawlOutcome``  the scheduler's output, consumed by the normalizer
- ``KeywordEntry``  canonical keyword shape, every field defaulted
- ``KeywordReport`` the normalized analysis handed to the report store
- ``Report``        the persisted record and its lifecycle status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Sentinel used for metrics the analysis service did not supply
NOT_AVAILABLE = "N/A"
DEFAULT_INTENT = "unknown"
DEFAULT_RELEVANCE = 50

# Top-level reply keys holding keyword objects -> default intent for entries without one
KEYWORD_SOURCES: Tuple[Tuple[str, Optional[str]], ...] = (
    ("keywords", None),
    ("primary_keywords", None),
    ("primaryKeywords", None),
    ("secondary_keywords", None),
    ("secondaryKeywords", None),
    ("long_tail_keywords", "long-tail"),
    ("longTailKeywords", "long-tail"),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Crawl records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CrawlTask:
    """A frontier entry."""
    url: str
    depth: int


@dataclass(frozen=True)
class PageResult:
    """Content extracted from one visited URL, or the reason it failed."""
    url: str
    depth: int
    title: str = ""
    content_snippets: Tuple[str, ...] = ()
    outbound_links: Tuple[str, ...] = ()
    keywords: Tuple[Dict[str, Any], ...] = ()
    content_length: int = 0
    word_count: int = 0
    timestamp: str = field(default_factory=lambda: utc_now().isoformat())
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, url: str, depth: int, error_type: str, message: str) -> "PageResult":
        return cls(url=url, depth=depth, error=message, error_type=error_type)

    def to_dict(self) -> dict:
        data = {
            'url': self.url,
            'depth': self.depth,
            'title': self.title,
            'content': list(self.content_snippets),
            'found_links': len(self.outbound_links),
            'keywords': [dict(k) for k in self.keywords],
            'content_length': self.content_length,
            'word_count': self.word_count,
            'timestamp': self.timestamp,
        }
        if self.error is not None:
            data['error'] = self.error
            data['error_type'] = self.error_type
        return data


@dataclass
class CrawlOutcome:
    """Result of a BFS crawl."""
    pages: List[PageResult] = field(default_factory=list)
    total_visited: int = 0

    @property
    def successful_pages(self) -> List[PageResult]:
        return [p for p in self.pages if p.ok]

    @property
    def failed_pages(self) -> List[PageResult]:
        return [p for p in self.pages if not p.ok]


# ---------------------------------------------------------------------------
# Keyword report
# ---------------------------------------------------------------------------

@dataclass
class KeywordEntry:
    """Canonical keyword record. Absent source data keeps the sentinels."""
    keyword: str
    intent: str = DEFAULT_INTENT
    difficulty: Any = NOT_AVAILABLE
    search_volume: Any = NOT_AVAILABLE
    cpc: Any = NOT_AVAILABLE
    competition: Any = NOT_AVAILABLE
    relevance_score: float = DEFAULT_RELEVANCE
    trend: Dict[str, Any] = field(default_factory=lambda: {'monthly': []})
    related_keywords: List[Any] = field(default_factory=list)
    serps: List[Any] = field(default_factory=list)

    @property
    def dedup_key(self) -> str:
        return self.keyword.strip().lower()

    def to_dict(self) -> dict:
        return {
            'keyword': self.keyword,
            'intent': self.intent,
            'difficulty': self.difficulty,
            'search_volume': self.search_volume,
            'cpc': self.cpc,
            'competition': self.competition,
            'relevance_score': self.relevance_score,
            'trend': self.trend,
            'related_keywords': list(self.related_keywords),
            'serps': list(self.serps),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KeywordEntry":
        return cls(
            keyword=data.get('keyword', ''),
            intent=data.get('intent', DEFAULT_INTENT),
            difficulty=data.get('difficulty', NOT_AVAILABLE),
            search_volume=data.get('search_volume', NOT_AVAILABLE),
            cpc=data.get('cpc', NOT_AVAILABLE),
            competition=data.get('competition', NOT_AVAILABLE),
            relevance_score=data.get('relevance_score', DEFAULT_RELEVANCE),
            trend=data.get('trend') or {'monthly': []},
            related_keywords=list(data.get('related_keywords') or []),
            serps=list(data.get('serps') or []),
        )


@dataclass
class KeywordSummary:
    primary_keywords: List[str] = field(default_factory=list)
    secondary_keywords: List[str] = field(default_factory=list)
    long_tail_keywords: List[str] = field(default_factory=list)
    total_keywords: int = 0
    intent_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'primary_keywords': list(self.primary_keywords),
            'secondary_keywords': list(self.secondary_keywords),
            'long_tail_keywords': list(self.long_tail_keywords),
            'total_keywords': self.total_keywords,
            'intent_breakdown': dict(self.intent_breakdown),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KeywordSummary":
        data = data or {}
        return cls(
            primary_keywords=list(data.get('primary_keywords') or []),
            secondary_keywords=list(data.get('secondary_keywords') or []),
            long_tail_keywords=list(data.get('long_tail_keywords') or []),
            total_keywords=int(data.get('total_keywords') or 0),
            intent_breakdown=dict(data.get('intent_breakdown') or {}),
        )


@dataclass
class KeywordReport:
    """Normalized, deduplicated keyword analysis."""
    keywords: List[KeywordEntry] = field(default_factory=list)
    summary: KeywordSummary = field(default_factory=KeywordSummary)
    recommendations: List[str] = field(default_factory=list)
    # url -> {title, keyword_count, top_keywords, content_score}
    pages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'keywords': [k.to_dict() for k in self.keywords],
            'summary': self.summary.to_dict(),
            'recommendations': list(self.recommendations),
            'pages': self.pages,
            'error': self.error,
        }


# ---------------------------------------------------------------------------
# Persisted report
# ---------------------------------------------------------------------------

class ReportStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AnalysisInfo:
    """How the keyword data of a report was produced."""
    sent_to_external: bool = False
    data_optimized: bool = False
    fallback_used: bool = False
    external_error: Optional[str] = None
    success_count: int = 0
    fail_count: int = 0

    def to_dict(self) -> dict:
        return {
            'sent_to_external': self.sent_to_external,
            'data_optimized': self.data_optimized,
            'fallback_used': self.fallback_used,
            'external_error': self.external_error,
            'success_count': self.success_count,
            'fail_count': self.fail_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisInfo":
        data = data or {}
        return cls(
            sent_to_external=bool(data.get('sent_to_external', False)),
            data_optimized=bool(data.get('data_optimized', False)),
            fallback_used=bool(data.get('fallback_used', False)),
            external_error=data.get('external_error'),
            success_count=int(data.get('success_count', 0)),
            fail_count=int(data.get('fail_count', 0)),
        )


@dataclass
class Report:
    """A keyword report as held by the report store, keyed by (report_id, owner_id)."""
    report_id: str
    owner_id: str
    main_url: str
    status: ReportStatus = ReportStatus.PROCESSING
    total_scraped: int = 0
    keywords: List[KeywordEntry] = field(default_factory=list)
    summary: KeywordSummary = field(default_factory=KeywordSummary)
    recommendations: List[str] = field(default_factory=list)
    pages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    analysis: AnalysisInfo = field(default_factory=AnalysisInfo)
    processing_time_ms: int = 0
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.report_id, self.owner_id)

    def to_dict(self) -> dict:
        return {
            'report_id': self.report_id,
            'owner_id': self.owner_id,
            'main_url': self.main_url,
            'status': self.status.value,
            'total_scraped': self.total_scraped,
            'keywords': [k.to_dict() for k in self.keywords],
            'summary': self.summary.to_dict(),
            'recommendations': list(self.recommendations),
            'pages': self.pages,
            'analysis': self.analysis.to_dict(),
            'processing_time_ms': self.processing_time_ms,
            'error': self.error,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    def to_summary_dict(self) -> dict:
        """Listing projection (no keyword payload)."""
        return {
            'report_id': self.report_id,
            'main_url': self.main_url,
            'total_scraped': self.total_scraped,
            'status': self.status.value,
            'created_at': self.created_at.isoformat(),
            'processing_time_ms': self.processing_time_ms,
            'success_count': self.analysis.success_count,
            'fail_count': self.analysis.fail_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Report":
        return cls(
            report_id=data['report_id'],
            owner_id=data['owner_id'],
            main_url=data.get('main_url', ''),
            status=ReportStatus(data.get('status', ReportStatus.PROCESSING.value)),
            total_scraped=int(data.get('total_scraped', 0)),
            keywords=[KeywordEntry.from_dict(k) for k in data.get('keywords') or []],
            summary=KeywordSummary.from_dict(data.get('summary') or {}),
            recommendations=list(data.get('recommendations') or []),
            pages=dict(data.get('pages') or {}),
            analysis=AnalysisInfo.from_dict(data.get('analysis') or {}),
            processing_time_ms=int(data.get('processing_time_ms', 0)),
            error=data.get('error'),
            created_at=datetime.fromisoformat(data['created_at']) if data.get('created_at') else utc_now(),
            updated_at=datetime.fromisoformat(data['updated_at']) if data.get('updated_at') else utc_now(),
        )
