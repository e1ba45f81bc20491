"""
Unified Run Configuration
=========================
Single source of truth for ALL keyword-crawl defaults and runtime limits.

The CLI, the HTTP API and the pipeline components read from this object.
Component-specific config classes are built *from* it via factory methods,
so no magic number is duplicated across modules.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_depth": 3,
    "max_pages": 500,
    "navigation_timeout_seconds": 60,   # per page.goto()
    "browser_launch_timeout_seconds": 120,
    "headless": True,
    "ignore_https_errors": False,
    "viewport_width": 1280,
    "viewport_height": 720,
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    # Content extraction
    "max_raw_snippets": 25,
    "max_snippets": 15,
    "min_snippet_length": 15,
    "max_snippet_length": 800,
    "keywords_per_page": 10,
    # External analysis service
    "ai_webhook_url": "",
    "ai_timeout_seconds": 220,
    "ai_user_agent": "RankSeo-Analyzer/1.0",
    "ai_snippet_items": 5,
    # Persistence / usage gate
    "report_store_path": "keyword_reports.json",
    "usage_limit": 10,                   # keyword checks per owner, -1 = unlimited
}

_BLOCKED_RESOURCE_TYPES = ["image", "stylesheet", "font", "media"]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CrawlerRunConfig:
    """
    Unified configuration consumed by every pipeline stage.

    Populate via:
      - ``CrawlerRunConfig()``                → all defaults
      - ``CrawlerRunConfig(max_pages=50)``    → override one value
      - ``CrawlerRunConfig.from_env()``       → ``KEYCHECK_*`` environment / .env
      - ``CrawlerRunConfig.from_cli_args(ns)`` → from argparse Namespace
    """

    # ---- Crawl limits ----
    max_depth: int = _DEFAULTS["max_depth"]
    max_pages: int = _DEFAULTS["max_pages"]
    navigation_timeout_seconds: int = _DEFAULTS["navigation_timeout_seconds"]
    browser_launch_timeout_seconds: int = _DEFAULTS["browser_launch_timeout_seconds"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    ignore_https_errors: bool = _DEFAULTS["ignore_https_errors"]
    viewport_width: int = _DEFAULTS["viewport_width"]
    viewport_height: int = _DEFAULTS["viewport_height"]
    user_agent: str = _DEFAULTS["user_agent"]
    blocked_resource_types: List[str] = field(default_factory=lambda: list(_BLOCKED_RESOURCE_TYPES))

    # ---- Content extraction ----
    max_raw_snippets: int = _DEFAULTS["max_raw_snippets"]
    max_snippets: int = _DEFAULTS["max_snippets"]
    min_snippet_length: int = _DEFAULTS["min_snippet_length"]
    max_snippet_length: int = _DEFAULTS["max_snippet_length"]
    keywords_per_page: int = _DEFAULTS["keywords_per_page"]

    # ---- External analysis service ----
    ai_webhook_url: str = _DEFAULTS["ai_webhook_url"]
    ai_timeout_seconds: int = _DEFAULTS["ai_timeout_seconds"]
    ai_user_agent: str = _DEFAULTS["ai_user_agent"]
    ai_snippet_items: int = _DEFAULTS["ai_snippet_items"]

    # ---- Persistence / usage ----
    report_store_path: str = _DEFAULTS["report_store_path"]
    usage_limit: int = _DEFAULTS["usage_limit"]

    # ---- Output paths (None = skip) ----
    output_json: Optional[str] = None
    output_csv: Optional[str] = None
    output_docx: Optional[str] = None

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "CrawlerRunConfig":
        """Build config from ``KEYCHECK_*`` variables (a .env file is loaded first)."""
        load_dotenv(env_file)
        env = os.environ

        cfg = cls()
        int_fields = {
            "KEYCHECK_MAX_DEPTH": "max_depth",
            "KEYCHECK_MAX_PAGES": "max_pages",
            "KEYCHECK_NAVIGATION_TIMEOUT": "navigation_timeout_seconds",
            "KEYCHECK_AI_TIMEOUT": "ai_timeout_seconds",
            "KEYCHECK_USAGE_LIMIT": "usage_limit",
        }
        for var, attr in int_fields.items():
            if env.get(var):
                try:
                    setattr(cfg, attr, int(env[var]))
                except ValueError:
                    logger.warning(f"[CONFIG] Ignoring non-integer {var}={env[var]!r}")

        if env.get("KEYCHECK_HEADLESS"):
            cfg.headless = _env_bool(env["KEYCHECK_HEADLESS"])
        if env.get("KEYCHECK_IGNORE_HTTPS_ERRORS"):
            cfg.ignore_https_errors = _env_bool(env["KEYCHECK_IGNORE_HTTPS_ERRORS"])
        if env.get("KEYCHECK_AI_WEBHOOK_URL"):
            cfg.ai_webhook_url = env["KEYCHECK_AI_WEBHOOK_URL"]
        if env.get("KEYCHECK_USER_AGENT"):
            cfg.user_agent = env["KEYCHECK_USER_AGENT"]
        if env.get("KEYCHECK_REPORT_STORE"):
            cfg.report_store_path = env["KEYCHECK_REPORT_STORE"]
        return cfg

    @classmethod
    def from_cli_args(cls, args) -> "CrawlerRunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        cfg = cls.from_env()
        cfg.max_depth = getattr(args, "depth", None) or cfg.max_depth
        cfg.max_pages = getattr(args, "pages", None) or cfg.max_pages
        cfg.navigation_timeout_seconds = getattr(args, "timeout", None) or cfg.navigation_timeout_seconds
        cfg.ai_webhook_url = getattr(args, "ai_url", None) or cfg.ai_webhook_url
        cfg.report_store_path = getattr(args, "store", None) or cfg.report_store_path
        cfg.output_json = getattr(args, "output_json", None)
        cfg.output_csv = getattr(args, "output_csv", None)
        cfg.output_docx = getattr(args, "output_docx", None)
        if getattr(args, "headed", False):
            cfg.headless = False
        return cfg

    # -----------------------------------------------------------------------
    # Converters to component config objects
    # -----------------------------------------------------------------------
    def to_fetcher_config(self):
        """Return a ``FetcherConfig`` populated from this run config."""
        # Import here to avoid circular dependency
        from .fetcher import FetcherConfig
        return FetcherConfig(
            navigation_timeout_ms=self.navigation_timeout_seconds * 1000,
            launch_timeout_ms=self.browser_launch_timeout_seconds * 1000,
            headless=self.headless,
            ignore_https_errors=self.ignore_https_errors,
            viewport_width=self.viewport_width,
            viewport_height=self.viewport_height,
            user_agent=self.user_agent,
            blocked_resource_types=frozenset(self.blocked_resource_types),
            max_raw_snippets=self.max_raw_snippets,
            max_snippets=self.max_snippets,
            min_snippet_length=self.min_snippet_length,
            max_snippet_length=self.max_snippet_length,
            keywords_per_page=self.keywords_per_page,
        )

    def to_ai_config(self):
        """Return an ``AIClientConfig`` populated from this run config."""
        from .ai_client import AIClientConfig
        return AIClientConfig(
            webhook_url=self.ai_webhook_url,
            timeout_seconds=self.ai_timeout_seconds,
            user_agent=self.ai_user_agent,
            snippet_items=self.ai_snippet_items,
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, url: str) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("KEYWORD CRAWL CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {url}")
        logger.info(f"  Max Depth:        {self.max_depth}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Nav Timeout:      {self.navigation_timeout_seconds}s per page")
        logger.info(f"  Blocked Types:    {', '.join(self.blocked_resource_types)}")
        if self.ai_webhook_url:
            logger.info(f"  AI Service:       {self.ai_webhook_url} ({self.ai_timeout_seconds}s timeout)")
        else:
            logger.info("  AI Service:       not configured (local extraction only)")
        logger.info(f"  Report Store:     {self.report_store_path}")
        logger.info("=" * 60)
