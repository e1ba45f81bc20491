"""
Report Lifecycle
================
Owns a report's ``processing -> completed | failed`` state machine and runs
one crawl-and-report operation end to end:

    create -> crawl (BFS) -> analyze (service or local fallback) -> finalize
                         \\-> zero pages / exception -> fail

A report is created before any network activity so partial attempts can be
inspected. Terminal states never revert to ``processing``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .ai_client import AIAnalysisClient, analyzable_pages
from .exceptions import CrawlFailedError, ZeroPagesError
from .fetcher import PageFetcher
from .models import (
    AnalysisInfo,
    CrawlOutcome,
    KeywordReport,
    Report,
    ReportStatus,
)
from .normalizer import submit_and_normalize
from .report_store import ReportStore, generate_report_id
from .run_config import CrawlerRunConfig
from .scheduler import CrawlScheduler
from .utils import validate_and_normalize_url

logger = logging.getLogger(__name__)


@dataclass
class KeywordCheckResult:
    """Everything the caller needs after a successful keyword check."""
    report_id: str
    main_url: str
    report: KeywordReport
    outcome: CrawlOutcome
    analysis: AnalysisInfo
    stored: Report

    @property
    def total_scraped(self) -> int:
        return len(self.outcome.successful_pages)

    @property
    def total_attempted(self) -> int:
        return len(self.outcome.pages)


class ReportLifecycleManager:
    """
    Coordinates the crawl pipeline around a persisted report.

    Usage::

        manager = ReportLifecycleManager(store, config=CrawlerRunConfig.from_env())
        result = await manager.crawl_and_report("user-1", "https://example.com")
    """

    def __init__(
        self,
        store: ReportStore,
        config: Optional[CrawlerRunConfig] = None,
        scheduler: Optional[CrawlScheduler] = None,
        ai_client: Optional[AIAnalysisClient] = None,
    ):
        self.store = store
        self.config = config if config is not None else CrawlerRunConfig()
        if scheduler is None:
            scheduler = CrawlScheduler(PageFetcher(self.config.to_fetcher_config()))
        self.scheduler = scheduler
        if ai_client is None and self.config.ai_webhook_url:
            ai_client = AIAnalysisClient(self.config.to_ai_config())
        self.ai_client = ai_client

    # -----------------------------------------------------------------------
    # State transitions
    # -----------------------------------------------------------------------

    def create(self, report_id: str, owner_id: str, main_url: str) -> Report:
        """
        Persist a ``processing`` report before crawling starts.

        A report that already reached a terminal state is left untouched.
        """
        existing = self.store.get(report_id, owner_id)
        if existing is not None and existing.status != ReportStatus.PROCESSING:
            logger.warning(f"[REPORT] Refusing to reopen {report_id}: already {existing.status.value}")
            return existing

        report = Report(report_id=report_id, owner_id=owner_id, main_url=main_url)
        logger.info(f"[REPORT] Created {report_id} for {main_url}")
        return self.store.upsert(report)

    def finalize(
        self,
        report_id: str,
        owner_id: str,
        keyword_report: KeywordReport,
        outcome: CrawlOutcome,
        processing_time_ms: int,
        analysis: Optional[AnalysisInfo] = None,
    ) -> Report:
        """
        Mark the report ``completed`` with its keyword data.

        Calling it again for the same report overwrites the earlier data.
        A report that already failed is left untouched.
        """
        existing = self.store.get(report_id, owner_id)
        if existing is not None and existing.status == ReportStatus.FAILED:
            logger.warning(f"[REPORT] Refusing to complete {report_id}: already failed")
            return existing

        analysis = analysis or AnalysisInfo()
        analysis.success_count = len(outcome.successful_pages)
        analysis.fail_count = len(outcome.failed_pages)

        report = Report(
            report_id=report_id,
            owner_id=owner_id,
            main_url=existing.main_url if existing else "",
            status=ReportStatus.COMPLETED,
            total_scraped=analysis.success_count,
            keywords=list(keyword_report.keywords),
            summary=keyword_report.summary,
            recommendations=list(keyword_report.recommendations),
            pages=dict(keyword_report.pages),
            analysis=analysis,
            processing_time_ms=processing_time_ms,
            error=keyword_report.error,
        )
        stored = self.store.upsert(report)
        logger.info(
            f"[REPORT] Completed {report_id}: {len(report.keywords)} keywords, "
            f"{analysis.success_count} pages ok, {analysis.fail_count} failed, "
            f"{processing_time_ms}ms"
        )
        return stored

    def fail(
        self,
        report_id: str,
        owner_id: str,
        reason: str,
        processing_time_ms: int = 0,
        outcome: Optional[CrawlOutcome] = None,
    ) -> Report:
        """Mark the report ``failed``. A completed report is left untouched."""
        existing = self.store.get(report_id, owner_id)
        if existing is not None and existing.status == ReportStatus.COMPLETED:
            logger.warning(f"[REPORT] Refusing to fail {report_id}: already completed")
            return existing

        analysis = AnalysisInfo()
        if outcome is not None:
            analysis.success_count = len(outcome.successful_pages)
            analysis.fail_count = len(outcome.failed_pages)

        report = Report(
            report_id=report_id,
            owner_id=owner_id,
            main_url=existing.main_url if existing else "",
            status=ReportStatus.FAILED,
            analysis=analysis,
            processing_time_ms=processing_time_ms,
            error=reason,
        )
        logger.warning(f"[REPORT] Failed {report_id}: {reason}")
        return self.store.upsert(report)

    # -----------------------------------------------------------------------
    # Orchestration
    # -----------------------------------------------------------------------

    async def crawl_and_report(self, owner_id: str, url: str) -> KeywordCheckResult:
        """
        Crawl ``url`` and persist a keyword report for ``owner_id``.

        Raises:
            ValidationError: malformed URL (no report is created)
            ZeroPagesError: no page could be fetched (report marked failed)
            CrawlFailedError: anything else went wrong (report marked failed)
        """
        main_url = validate_and_normalize_url(url)
        report_id = generate_report_id()
        self.create(report_id, owner_id, main_url)
        t_start = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - t_start) * 1000)

        outcome: Optional[CrawlOutcome] = None
        try:
            outcome = await self.scheduler.run(
                main_url,
                max_depth=self.config.max_depth,
                max_pages=self.config.max_pages,
            )

            if not outcome.successful_pages:
                self.fail(
                    report_id, owner_id,
                    "No pages could be crawled successfully",
                    elapsed_ms(), outcome,
                )
                raise ZeroPagesError(report_id, attempted=len(outcome.pages))

            keyword_report, used_fallback = await asyncio.to_thread(
                submit_and_normalize, outcome.pages, self.ai_client,
            )
            analysis = AnalysisInfo(
                sent_to_external=self.ai_client is not None and bool(analyzable_pages(outcome.pages)),
                data_optimized=not used_fallback,
                fallback_used=used_fallback,
                external_error=keyword_report.error if used_fallback else None,
            )
            stored = self.finalize(
                report_id, owner_id, keyword_report, outcome, elapsed_ms(), analysis,
            )
        except ZeroPagesError:
            raise
        except Exception as e:
            logger.exception(f"[REPORT] Crawl for {report_id} crashed: {e}")
            self.fail(report_id, owner_id, str(e), elapsed_ms(), outcome)
            raise CrawlFailedError(report_id, "An internal server error occurred during the crawl.") from e

        return KeywordCheckResult(
            report_id=report_id,
            main_url=main_url,
            report=keyword_report,
            outcome=outcome,
            analysis=stored.analysis,
            stored=stored,
        )
