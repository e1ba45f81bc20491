"""
Keyword Checker HTTP API
========================
FastAPI application exposing the crawl trigger and report queries.

Authentication is handled upstream; the caller's identity arrives in the
``X-User-Id`` header.

Endpoints:
- ``POST   /api/keychecker/crawl``             run a keyword check
- ``GET    /api/keychecker/reports``           list (page, limit, status)
- ``GET    /api/keychecker/reports/by-url``    reports for one site
- ``GET    /api/keychecker/reports/{id}``      full report
- ``DELETE /api/keychecker/reports/{id}``      remove a report
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .exceptions import (
    CrawlFailedError,
    LimitExceededError,
    ReportNotFoundError,
    ValidationError,
    ZeroPagesError,
)
from .lifecycle import ReportLifecycleManager
from .models import ReportStatus
from .report_store import InMemoryReportStore, JsonFileReportStore, ReportStore
from .run_config import CrawlerRunConfig
from .usage import InMemoryUsageTracker, UsageTracker
from .utils import validate_and_normalize_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/keychecker", tags=["keychecker"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CrawlRequest(BaseModel):
    """Body of a keyword check request."""
    url: Optional[str] = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id


def get_store(request: Request) -> ReportStore:
    return request.app.state.store


def get_usage(request: Request) -> UsageTracker:
    return request.app.state.usage


def get_pipeline(request: Request) -> ReportLifecycleManager:
    return request.app.state.pipeline


def _error(status_code: int, **body) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, **body})


def _require_report(store: ReportStore, report_id: str, owner_id: str):
    report = store.get(report_id, owner_id)
    if report is None:
        raise ReportNotFoundError(report_id)
    return report


async def report_not_found_handler(request: Request, exc: ReportNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, error="Report not found", reportId=exc.report_id)


# ---------------------------------------------------------------------------
# Crawl trigger
# ---------------------------------------------------------------------------

@router.post("/crawl")
async def crawl(
    body: CrawlRequest,
    owner_id: str = Depends(get_owner_id),
    usage: UsageTracker = Depends(get_usage),
    pipeline: ReportLifecycleManager = Depends(get_pipeline),
):
    """Crawl a site and return its keyword report."""
    if not body.url or not body.url.strip():
        return _error(status.HTTP_400_BAD_REQUEST, error="URL is required")
    try:
        validate_and_normalize_url(body.url)
    except ValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, error=str(e))

    try:
        usage_status = usage.reserve(owner_id)
    except LimitExceededError as e:
        return _error(status.HTTP_403_FORBIDDEN, message=str(e), usage=e.usage)

    logger.info(f"[API] Keyword check requested by {owner_id} for {body.url}")
    try:
        result = await pipeline.crawl_and_report(owner_id, body.url)
    except ZeroPagesError as e:
        usage.release(owner_id)
        return _error(status.HTTP_404_NOT_FOUND, error=str(e), reportId=e.report_id)
    except CrawlFailedError as e:
        usage.release(owner_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error=str(e), reportId=e.report_id)
    except Exception as e:
        usage.release(owner_id)
        logger.exception(f"[API] Keyword check failed before a report existed: {e}")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="An internal server error occurred during the crawl.",
        )

    return {
        'success': True,
        'data': result.report.to_dict(),
        'mainUrl': result.main_url,
        'totalScraped': result.total_scraped,
        'totalPagesAttempted': result.total_attempted,
        'reportId': result.report_id,
        'usage': usage_status.to_dict(),
        'analysis': result.analysis.to_dict(),
    }


# ---------------------------------------------------------------------------
# Report queries
# ---------------------------------------------------------------------------

@router.get("/reports")
async def list_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    owner_id: str = Depends(get_owner_id),
    store: ReportStore = Depends(get_store),
):
    """Owner's reports, newest first."""
    report_status = None
    if status_filter:
        try:
            report_status = ReportStatus(status_filter)
        except ValueError:
            return _error(status.HTTP_400_BAD_REQUEST, error=f"Invalid status: {status_filter}")

    reports, pagination = store.list(owner_id, page=page, limit=limit, status=report_status)
    return {
        'success': True,
        'data': [r.to_summary_dict() for r in reports],
        'pagination': pagination,
    }


@router.get("/reports/by-url")
async def reports_by_url(
    url: str = Query(...),
    owner_id: str = Depends(get_owner_id),
    store: ReportStore = Depends(get_store),
):
    """Owner's reports for one site, newest first."""
    try:
        main_url = validate_and_normalize_url(url)
    except ValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, error=str(e))

    reports, _ = store.list(owner_id, page=1, limit=100, main_url=main_url)
    return {
        'success': True,
        'data': [r.to_summary_dict() for r in reports],
    }


@router.get("/reports/{report_id}")
async def get_report(
    report_id: str,
    owner_id: str = Depends(get_owner_id),
    store: ReportStore = Depends(get_store),
):
    report = _require_report(store, report_id, owner_id)
    return {'success': True, 'data': report.to_dict()}


@router.delete("/reports/{report_id}")
async def delete_report(
    report_id: str,
    owner_id: str = Depends(get_owner_id),
    store: ReportStore = Depends(get_store),
):
    if not store.delete(report_id, owner_id):
        raise ReportNotFoundError(report_id)
    return {'success': True, 'message': "Report deleted successfully"}


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[CrawlerRunConfig] = None,
    store: Optional[ReportStore] = None,
    usage: Optional[UsageTracker] = None,
    pipeline: Optional[ReportLifecycleManager] = None,
) -> FastAPI:
    """
    Build the API around injected collaborators.

    Anything not supplied is built from ``config``: an in-memory report
    store, an in-memory usage tracker with the configured plan limit, and a
    lifecycle manager driving the real browser crawl.
    """
    if config is None:
        config = CrawlerRunConfig()
    if store is None:
        store = InMemoryReportStore()
    if usage is None:
        usage = InMemoryUsageTracker(default_limit=config.usage_limit)
    if pipeline is None:
        pipeline = ReportLifecycleManager(store, config=config)

    app = FastAPI(title="Keyword Crawler", version="1.0.0")
    app.state.config = config
    app.state.store = store
    app.state.usage = usage
    app.state.pipeline = pipeline
    app.include_router(router)
    app.add_exception_handler(ReportNotFoundError, report_not_found_handler)
    return app


def build_default_app() -> FastAPI:
    """ASGI factory: environment config and a JSON file report store."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    config = CrawlerRunConfig.from_env()
    return create_app(config, store=JsonFileReportStore(config.report_store_path))
