"""
Tests for the keyword checker HTTP API.

The app is built with ``create_app`` around an in-memory store, an
in-memory usage tracker and a lifecycle manager whose crawl is faked, so
the full request path runs without a browser or network.
"""

import pytest
from fastapi.testclient import TestClient

from keyword_crawler.api import create_app
from keyword_crawler.exceptions import AIServiceError
from keyword_crawler.lifecycle import ReportLifecycleManager
from keyword_crawler.models import CrawlOutcome, PageResult, ReportStatus
from keyword_crawler.report_store import InMemoryReportStore, JsonFileReportStore
from keyword_crawler.usage import InMemoryUsageTracker

HEADERS = {"X-User-Id": "user-1"}


def ok_page(url, depth=0):
    text = "Enterprise SEO audit software with keyword research and rank tracking"
    return PageResult(
        url=url,
        depth=depth,
        title="SEO Platform",
        content_snippets=(text,),
        keywords=({"word": "seo", "count": 20}, {"word": "keyword", "count": 8}),
        content_length=len(text),
        word_count=len(text.split()),
    )


class FakeScheduler:
    def __init__(self, pages=None, error=None):
        self.pages = pages if pages is not None else [ok_page("https://example.com/")]
        self.error = error

    async def run(self, seed_url, max_depth=3, max_pages=500):
        if self.error is not None:
            raise self.error
        return CrawlOutcome(pages=list(self.pages), total_visited=len(self.pages))


class UnavailableAIClient:
    def __init__(self):
        from keyword_crawler.ai_client import AIClientConfig
        self.config = AIClientConfig(webhook_url="https://ai.example.test/hook")

    def submit(self, payload):
        raise AIServiceError("Request timed out after 220s")


def build(scheduler=None, limit=10):
    store = InMemoryReportStore()
    usage = InMemoryUsageTracker(default_limit=limit)
    pipeline = ReportLifecycleManager(
        store,
        scheduler=scheduler or FakeScheduler(),
        ai_client=UnavailableAIClient(),
    )
    app = create_app(store=store, usage=usage, pipeline=pipeline)
    return TestClient(app), store, usage


@pytest.fixture
def api():
    return build()


# ====================================================================
# 1. Crawl trigger
# ====================================================================

class TestCrawl:

    def test_successful_check_with_fallback(self, api):
        client, store, _ = api
        resp = client.post("/api/keychecker/crawl", json={"url": "https://example.com"}, headers=HEADERS)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["mainUrl"] == "https://example.com/"
        assert body["totalScraped"] == 1
        assert body["totalPagesAttempted"] == 1
        assert body["data"]["keywords"]
        assert body["analysis"]["fallback_used"] is True
        assert body["usage"] == {"used": 1, "limit": 10, "remaining": 9}

        stored = store.get(body["reportId"], "user-1")
        assert stored.status == ReportStatus.COMPLETED

    def test_requires_identity(self, api):
        client, _, _ = api
        resp = client.post("/api/keychecker/crawl", json={"url": "https://example.com"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("body", [{}, {"url": ""}, {"url": "   "}])
    def test_missing_url(self, api, body):
        client, _, usage = api
        resp = client.post("/api/keychecker/crawl", json=body, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "URL is required"}
        assert usage.get_usage("user-1").used == 0

    def test_invalid_url(self, api):
        client, store, _ = api
        resp = client.post("/api/keychecker/crawl", json={"url": "ftp://example.com"}, headers=HEADERS)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert len(store) == 0

    def test_limit_reached(self):
        client, store, _ = build(limit=1)
        client.post("/api/keychecker/crawl", json={"url": "https://example.com"}, headers=HEADERS)
        resp = client.post("/api/keychecker/crawl", json={"url": "https://example.com"}, headers=HEADERS)

        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert "limit" in body["message"].lower()
        assert body["usage"] == {"used": 1, "limit": 1, "remaining": 0}
        assert len(store) == 1

    def test_zero_pages(self):
        scheduler = FakeScheduler(pages=[
            PageResult.failed("https://example.com/", 0, "dns", "Could not resolve host"),
        ])
        client, store, usage = build(scheduler=scheduler)
        resp = client.post("/api/keychecker/crawl", json={"url": "https://example.com"}, headers=HEADERS)

        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        report = store.get(body["reportId"], "user-1")
        assert report.status == ReportStatus.FAILED
        assert usage.get_usage("user-1").used == 0

    def test_internal_error(self):
        client, store, usage = build(scheduler=FakeScheduler(error=RuntimeError("browser crashed")))
        resp = client.post("/api/keychecker/crawl", json={"url": "https://example.com"}, headers=HEADERS)

        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "An internal server error occurred during the crawl."
        assert store.get(body["reportId"], "user-1").status == ReportStatus.FAILED
        assert usage.get_usage("user-1").used == 0


# ====================================================================
# 2. Report queries
# ====================================================================

class TestReports:

    def _crawl(self, client, url="https://example.com"):
        resp = client.post("/api/keychecker/crawl", json={"url": url}, headers=HEADERS)
        assert resp.status_code == 200
        return resp.json()["reportId"]

    def test_list_and_get(self, api):
        client, _, _ = api
        report_id = self._crawl(client)

        resp = client.get("/api/keychecker/reports", headers=HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert [r["report_id"] for r in body["data"]] == [report_id]
        assert "keywords" not in body["data"][0]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

        resp = client.get(f"/api/keychecker/reports/{report_id}", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "completed"
        assert resp.json()["data"]["keywords"]

    def test_list_status_filter(self, api):
        client, _, _ = api
        self._crawl(client)

        resp = client.get("/api/keychecker/reports", params={"status": "failed"}, headers=HEADERS)
        assert resp.json()["data"] == []

        resp = client.get("/api/keychecker/reports", params={"status": "bogus"}, headers=HEADERS)
        assert resp.status_code == 400

    def test_reports_by_url(self, api):
        client, _, _ = api
        report_id = self._crawl(client, "https://example.com")

        resp = client.get("/api/keychecker/reports/by-url", params={"url": "example.com"}, headers=HEADERS)
        assert resp.status_code == 200
        assert [r["report_id"] for r in resp.json()["data"]] == [report_id]

    def test_other_owner_cannot_see_report(self, api):
        client, _, _ = api
        report_id = self._crawl(client)

        resp = client.get(f"/api/keychecker/reports/{report_id}", headers={"X-User-Id": "user-2"})
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Report not found", "reportId": report_id}

    def test_delete(self, api):
        client, store, _ = api
        report_id = self._crawl(client)

        resp = client.delete(f"/api/keychecker/reports/{report_id}", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Report deleted successfully"}
        assert len(store) == 0

        resp = client.delete(f"/api/keychecker/reports/{report_id}", headers=HEADERS)
        assert resp.status_code == 404

    def test_unknown_report(self, api):
        client, _, _ = api
        resp = client.get("/api/keychecker/reports/KW-missing", headers=HEADERS)
        assert resp.status_code == 404


# ====================================================================
# 3. Application factory
# ====================================================================

class TestCreateApp:

    def test_empty_store_is_kept(self):
        store = InMemoryReportStore()
        usage = InMemoryUsageTracker()
        app = create_app(store=store, usage=usage)
        assert app.state.store is store
        assert app.state.usage is usage
        assert app.state.pipeline.store is store

    def test_new_json_store_is_kept(self, tmp_path):
        store = JsonFileReportStore(str(tmp_path / "reports.json"))
        app = create_app(store=store)
        assert app.state.store is store
        assert app.state.pipeline.store is store
