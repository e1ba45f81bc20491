#!/usr/bin/env python3
"""
Keyword Crawler CLI
===================
Crawls a site, analyzes its keywords and stores the report, then exports
it to the requested formats.

All configuration flows through ``CrawlerRunConfig``: ``KEYCHECK_*``
environment variables (or a .env file) first, then the flags below.

Run with: python -m keyword_crawler <url> [options]
"""

import argparse
import asyncio
import logging
import sys
import time
from urllib.parse import urlparse

from .exceptions import CrawlFailedError, ValidationError, ZeroPagesError
from .exporter import export_csv, export_docx, export_json
from .lifecycle import KeywordCheckResult, ReportLifecycleManager
from .report_store import JsonFileReportStore
from .run_config import CrawlerRunConfig

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

DEFAULT_OWNER = "cli"


def _base_name_from_url(url: str) -> str:
    """Derive a filesystem-safe base name from a URL."""
    parsed = urlparse(url if '://' in url else f"https://{url}")
    base = parsed.netloc.replace('.', '_').replace(':', '_')
    if parsed.path and parsed.path != '/':
        path_part = parsed.path.strip('/').replace('/', '_')[:30]
        base = f"{base}_{path_part}"
    return base


def _export(result: KeywordCheckResult, cfg: CrawlerRunConfig) -> None:
    """Export the stored report to configured formats."""
    exported = []
    if cfg.output_json:
        exported.append(export_json(result.stored, cfg.output_json))
    if cfg.output_csv:
        exported.append(export_csv(result.stored, cfg.output_csv))
    if cfg.output_docx:
        exported.append(export_docx(result.stored, cfg.output_docx))
    if exported:
        print("\n" + "-" * 40)
        for path in exported:
            print(f"  Exported: {path}")
        print("-" * 40)


def print_summary(result: KeywordCheckResult, elapsed: float) -> None:
    """Print keyword check summary."""
    report = result.report
    analysis = result.analysis
    print("\n" + "=" * 65)
    print("KEYWORD CHECK COMPLETE")
    print("=" * 65)
    print(f"  Report ID:           {result.report_id}")
    print(f"  Website:             {result.main_url}")
    print(f"  Pages scraped:       {result.total_scraped}")
    print(f"  Pages attempted:     {result.total_attempted}")
    print(f"  Failed pages:        {analysis.fail_count}")
    print(f"  Keywords:            {len(report.keywords)}")
    print(f"  Data source:         {'local extraction (fallback)' if analysis.fallback_used else 'AI analysis'}")
    if analysis.external_error:
        print(f"  AI error:            {analysis.external_error}")
    print(f"  Total time:          {elapsed:.1f}s")
    if report.summary.primary_keywords:
        print(f"  Primary keywords:    {', '.join(report.summary.primary_keywords[:10])}")
    if report.recommendations:
        print("\n  Recommendations:")
        for rec in report.recommendations:
            print(f"    - {rec}")
    print("=" * 65)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Keyword Crawler - BFS site crawl with AI keyword analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m keyword_crawler example.com
  python -m keyword_crawler https://example.com --depth 2 --pages 50
  python -m keyword_crawler example.com --output-docx report.docx --ai-url https://hooks.example/analyze
        """,
    )
    parser.add_argument('url', help='Site to crawl')
    parser.add_argument('--depth', type=int, help='Maximum crawl depth (default: 3)')
    parser.add_argument('--pages', type=int, help='Maximum pages to crawl (default: 500)')
    parser.add_argument('--timeout', type=int, help='Navigation timeout per page in seconds (default: 60)')
    parser.add_argument('--ai-url', type=str, dest='ai_url', help='Keyword analysis webhook URL')
    parser.add_argument('--store', type=str, help='Report store JSON file (default: keyword_reports.json)')
    parser.add_argument('--owner', type=str, default=DEFAULT_OWNER, help='Owner id the report is stored under')
    parser.add_argument('--output-json', type=str, help='JSON output file path')
    parser.add_argument('--output-csv', type=str, help='CSV output file path')
    parser.add_argument('--output-docx', type=str, help='DOCX output file path')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    args = parser.parse_args(argv)

    cfg = CrawlerRunConfig.from_cli_args(args)
    if not (cfg.output_json or cfg.output_csv or cfg.output_docx):
        base_name = _base_name_from_url(args.url)
        cfg.output_json = f"{base_name}_keywords.json"

    cfg.log_summary(args.url)

    manager = ReportLifecycleManager(JsonFileReportStore(cfg.report_store_path), config=cfg)

    def progress_cb(pages_visited, current_url, page):
        status = "ok" if page.ok else page.error_type
        print(f"[Page {pages_visited}/{cfg.max_pages}] {current_url[:70]} ({status})")

    manager.scheduler.set_progress_callback(progress_cb)

    start_time = time.time()
    try:
        result = asyncio.run(manager.crawl_and_report(args.owner, args.url))
    except ValidationError as e:
        print(f"Error: {e}")
        return 2
    except ZeroPagesError as e:
        print(f"Error: {e} (report {e.report_id})")
        return 1
    except CrawlFailedError as e:
        print(f"Error: {e} (report {e.report_id})")
        return 1

    try:
        _export(result, cfg)
    except OSError as exc:
        logger.error(f"Export failed: {exc}", exc_info=True)

    print_summary(result, time.time() - start_time)
    return 0


if __name__ == '__main__':
    sys.exit(main())
