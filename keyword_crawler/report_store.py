"""
Report Store
============
Persistence for keyword reports, keyed by ``(report_id, owner_id)``.

Two implementations share the ``ReportStore`` contract:

- ``InMemoryReportStore``   lock-guarded dict (tests, the API default)
- ``JsonFileReportStore``   same, mirrored to one JSON document that is
                            rewritten atomically after every mutation
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .models import Report, ReportStatus, utc_now

logger = logging.getLogger(__name__)

_DEFAULT_STORE_PATH = "keyword_reports.json"
DEFAULT_PAGE_SIZE = 10


def generate_report_id() -> str:
    """``KW-<UTC yyyymmddHHMMSS>-<8 hex>``"""
    return f"KW-{utc_now():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8]}"


class ReportStore(ABC):
    """Contract every report backend implements."""

    @abstractmethod
    def upsert(self, report: Report) -> Report:
        """Insert or replace the report with the same (report_id, owner_id)."""
        ...

    @abstractmethod
    def get(self, report_id: str, owner_id: str) -> Optional[Report]:
        ...

    @abstractmethod
    def list(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[ReportStatus] = None,
        main_url: Optional[str] = None,
    ) -> Tuple[List[Report], Dict[str, int]]:
        """Owner's reports, newest first, plus ``{page, limit, total, pages}``."""
        ...

    @abstractmethod
    def delete(self, report_id: str, owner_id: str) -> bool:
        """Remove a report; False when it did not exist."""
        ...


class InMemoryReportStore(ReportStore):
    """Reports held in process memory."""

    def __init__(self):
        self._reports: Dict[Tuple[str, str], Report] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)

    def upsert(self, report: Report) -> Report:
        with self._lock:
            existing = self._reports.get(report.key)
            if existing is not None:
                report.created_at = existing.created_at
            report.updated_at = utc_now()
            self._reports[report.key] = report
            self._persist()
        logger.debug(f"[REPORT] Upserted {report.report_id} ({report.status.value})")
        return report

    def get(self, report_id: str, owner_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get((report_id, owner_id))

    def list(
        self,
        owner_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[ReportStatus] = None,
        main_url: Optional[str] = None,
    ) -> Tuple[List[Report], Dict[str, int]]:
        page = max(1, int(page))
        limit = max(1, int(limit))
        status = ReportStatus(status) if status else None

        with self._lock:
            matches = [
                r for r in self._reports.values()
                if r.owner_id == owner_id
                and (status is None or r.status == status)
                and (main_url is None or r.main_url == main_url)
            ]
        matches.sort(key=lambda r: r.created_at, reverse=True)

        total = len(matches)
        start = (page - 1) * limit
        pagination = {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': math.ceil(total / limit),
        }
        return matches[start:start + limit], pagination

    def delete(self, report_id: str, owner_id: str) -> bool:
        with self._lock:
            removed = self._reports.pop((report_id, owner_id), None)
            if removed is not None:
                self._persist()
        if removed is not None:
            logger.info(f"[REPORT] Deleted {report_id}")
        return removed is not None

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonFileReportStore(InMemoryReportStore):
    """
    Reports mirrored to a JSON file.

    Writes go to a temporary file in the same directory, then replace the
    store file, so a crash never leaves a half-written document.
    """

    def __init__(self, path: str = _DEFAULT_STORE_PATH):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.info(f"[REPORT] No report file at {self.path}, starting empty")
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"[REPORT] Corrupt report file {self.path}: {exc}")
            return

        entries = data.get("reports") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.warning(f"[REPORT] Unexpected layout in {self.path}, starting empty")
            return

        for item in entries:
            try:
                report = Report.from_dict(item)
            except (KeyError, ValueError, TypeError, AttributeError) as exc:
                logger.warning(f"[REPORT] Skipping malformed report entry: {exc}")
                continue
            self._reports[report.key] = report
        logger.info(f"[REPORT] Loaded {len(self._reports)} reports from {self.path}")

    def _persist(self) -> None:
        document = {'reports': [r.to_dict() for r in self._reports.values()]}
        directory = self.path.parent if str(self.path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".reports-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
