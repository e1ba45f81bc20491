"""
Tests for the report lifecycle: state transitions and the end-to-end
crawl-and-report operation with the crawl and analysis replaced by fakes.
"""

import asyncio

import pytest

from keyword_crawler.exceptions import (
    AIServiceError,
    CrawlFailedError,
    ValidationError,
    ZeroPagesError,
)
from keyword_crawler.lifecycle import ReportLifecycleManager
from keyword_crawler.models import (
    CrawlOutcome,
    KeywordEntry,
    KeywordReport,
    PageResult,
    ReportStatus,
)
from keyword_crawler.report_store import InMemoryReportStore

OWNER = "user-1"


def ok_page(url, depth=0):
    text = "Complete SEO audit and keyword research tools for growing teams"
    return PageResult(
        url=url,
        depth=depth,
        title="SEO Tools",
        content_snippets=(text,),
        keywords=({"word": "seo", "count": 25}, {"word": "audit", "count": 5}),
        content_length=len(text),
        word_count=len(text.split()),
    )


class FakeScheduler:
    def __init__(self, pages=None, error=None):
        self.pages = pages or []
        self.error = error
        self.calls = []

    def set_progress_callback(self, callback):
        pass

    async def run(self, seed_url, max_depth=3, max_pages=500):
        self.calls.append((seed_url, max_depth, max_pages))
        if self.error is not None:
            raise self.error
        return CrawlOutcome(pages=list(self.pages), total_visited=len(self.pages))


class FailingAIClient:
    def __init__(self):
        from keyword_crawler.ai_client import AIClientConfig
        self.config = AIClientConfig(webhook_url="https://ai.example.test/hook")

    def submit(self, payload):
        raise AIServiceError("Webhook returned status 503", status_code=503)


def make_manager(pages=None, error=None, ai_client=None):
    store = InMemoryReportStore()
    scheduler = FakeScheduler(pages=pages, error=error)
    manager = ReportLifecycleManager(store, scheduler=scheduler, ai_client=ai_client)
    return manager, store, scheduler


def single_keyword_report(word):
    return KeywordReport(keywords=[KeywordEntry(word, relevance_score=80)])


# ====================================================================
# 1. State transitions
# ====================================================================

class TestTransitions:

    def test_create_is_processing(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.PROCESSING
        assert report.main_url == "https://example.com/"

    def test_finalize_twice_keeps_one_report_with_latest_data(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        outcome = CrawlOutcome(pages=[ok_page("https://example.com/")], total_visited=1)

        manager.finalize("r1", OWNER, single_keyword_report("first"), outcome, 10)
        manager.finalize("r1", OWNER, single_keyword_report("second"), outcome, 20)

        assert len(store) == 1
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.COMPLETED
        assert [k.keyword for k in report.keywords] == ["second"]
        assert report.processing_time_ms == 20
        assert report.main_url == "https://example.com/"

    def test_failed_report_is_not_completed(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        manager.fail("r1", OWNER, "boom")
        outcome = CrawlOutcome(pages=[ok_page("https://example.com/")], total_visited=1)

        manager.finalize("r1", OWNER, single_keyword_report("late"), outcome, 10)
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.FAILED
        assert report.keywords == []

    def test_completed_report_is_not_failed(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        outcome = CrawlOutcome(pages=[ok_page("https://example.com/")], total_visited=1)
        manager.finalize("r1", OWNER, single_keyword_report("done"), outcome, 10)

        manager.fail("r1", OWNER, "late failure")
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.COMPLETED
        assert report.error is None

    def test_create_does_not_reopen_completed_report(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        outcome = CrawlOutcome(pages=[ok_page("https://example.com/")], total_visited=1)
        manager.finalize("r1", OWNER, single_keyword_report("seo"), outcome, 10)

        manager.create("r1", OWNER, "https://example.com/")
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.COMPLETED
        assert [k.keyword for k in report.keywords] == ["seo"]

    def test_create_does_not_reopen_failed_report(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        manager.fail("r1", OWNER, "boom")

        manager.create("r1", OWNER, "https://example.com/")
        report = store.get("r1", OWNER)
        assert report.status == ReportStatus.FAILED
        assert report.error == "boom"

    def test_finalize_counts_pages(self):
        manager, store, _ = make_manager()
        manager.create("r1", OWNER, "https://example.com/")
        outcome = CrawlOutcome(pages=[
            ok_page("https://example.com/"),
            PageResult.failed("https://example.com/x", 1, "timeout", "Navigation timeout"),
        ], total_visited=2)

        report = manager.finalize("r1", OWNER, single_keyword_report("seo"), outcome, 5)
        assert report.total_scraped == 1
        assert report.analysis.success_count == 1
        assert report.analysis.fail_count == 1


# ====================================================================
# 2. Crawl and report
# ====================================================================

class TestCrawlAndReport:

    def test_fallback_when_service_not_configured(self):
        manager, store, scheduler = make_manager(pages=[
            ok_page("https://example.com/"),
            ok_page("https://example.com/about", depth=1),
        ])
        result = asyncio.run(manager.crawl_and_report(OWNER, "example.com"))

        assert scheduler.calls[0][0] == "https://example.com/"
        assert result.main_url == "https://example.com/"
        assert result.total_scraped == 2
        assert result.report.keywords
        assert result.analysis.fallback_used
        assert not result.analysis.sent_to_external

        stored = store.get(result.report_id, OWNER)
        assert stored.status == ReportStatus.COMPLETED
        assert stored.error.startswith("AI analysis failed:")

    def test_fallback_when_service_fails(self):
        manager, _, _ = make_manager(
            pages=[ok_page("https://example.com/")],
            ai_client=FailingAIClient(),
        )
        result = asyncio.run(manager.crawl_and_report(OWNER, "https://example.com"))

        assert result.analysis.sent_to_external
        assert result.analysis.fallback_used
        assert not result.analysis.data_optimized
        assert "503" in result.analysis.external_error
        assert result.report.keywords[0].keyword == "seo"

    def test_zero_pages_marks_report_failed(self):
        manager, store, _ = make_manager(pages=[
            PageResult.failed("https://example.com/", 0, "timeout", "Navigation timeout"),
        ])
        with pytest.raises(ZeroPagesError) as exc_info:
            asyncio.run(manager.crawl_and_report(OWNER, "https://example.com"))

        report = store.get(exc_info.value.report_id, OWNER)
        assert report.status == ReportStatus.FAILED
        assert report.analysis.fail_count == 1

    def test_crash_marks_report_failed(self):
        manager, store, _ = make_manager(error=RuntimeError("browser died"))
        with pytest.raises(CrawlFailedError) as exc_info:
            asyncio.run(manager.crawl_and_report(OWNER, "https://example.com"))

        report = store.get(exc_info.value.report_id, OWNER)
        assert report.status == ReportStatus.FAILED
        assert report.error == "browser died"

    def test_invalid_url_creates_no_report(self):
        manager, store, scheduler = make_manager(pages=[ok_page("https://example.com/")])
        with pytest.raises(ValidationError):
            asyncio.run(manager.crawl_and_report(OWNER, "ftp://example.com"))
        assert len(store) == 0
        assert scheduler.calls == []

    def test_limits_passed_to_scheduler(self):
        from keyword_crawler.run_config import CrawlerRunConfig

        store = InMemoryReportStore()
        scheduler = FakeScheduler(pages=[ok_page("https://example.com/")])
        manager = ReportLifecycleManager(
            store,
            config=CrawlerRunConfig(max_depth=1, max_pages=7),
            scheduler=scheduler,
        )
        asyncio.run(manager.crawl_and_report(OWNER, "https://example.com"))
        assert scheduler.calls[0][1:] == (1, 7)
