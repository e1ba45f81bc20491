"""
Report Exporters
================
Writes a finished keyword report to JSON, CSV (one row per keyword) or a
formatted Word document.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import List

from .models import KeywordEntry, Report

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    'keyword', 'intent', 'relevance_score', 'search_volume', 'difficulty',
    'cpc', 'competition', 'related_keywords',
]

# Keyword rows rendered in the Word table
_DOCX_KEYWORD_ROWS = 50


def _prepare(filepath: str) -> Path:
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def export_json(report: Report, filepath: str) -> str:
    """Full report as indented JSON."""
    path = _prepare(filepath)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Exported JSON to {path.absolute()}")
    return str(path.absolute())


def keyword_row(entry: KeywordEntry) -> dict:
    return {
        'keyword': entry.keyword,
        'intent': entry.intent,
        'relevance_score': entry.relevance_score,
        'search_volume': entry.search_volume,
        'difficulty': entry.difficulty,
        'cpc': entry.cpc,
        'competition': entry.competition,
        'related_keywords': "; ".join(str(k) for k in entry.related_keywords),
    }


def export_csv(report: Report, filepath: str) -> str:
    """One CSV row per keyword. An empty report still gets the header row."""
    path = _prepare(filepath)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(keyword_row(k) for k in report.keywords)
    logger.info(f"Exported CSV to {path.absolute()} ({len(report.keywords)} keywords)")
    return str(path.absolute())


def export_docx(report: Report, filepath: str) -> str:
    """
    Keyword report as a Word document.

    Layout: cover summary table, keyword table, recommendations, and the
    per-page keyword table.

    Returns:
        Absolute path to the created file
    """
    from docx import Document
    from docx.enum.table import WD_TABLE_ALIGNMENT
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.shared import Pt

    path = _prepare(filepath)
    doc = Document()

    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    style.paragraph_format.space_after = Pt(4)

    # ── Cover ──────────────────────────────────────────────────────
    title = doc.add_heading("Keyword Report", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    summary = report.summary
    breakdown = ", ".join(f"{k}: {v}" for k, v in sorted(summary.intent_breakdown.items())) or "N/A"
    summary_items = [
        ("Website", report.main_url),
        ("Report ID", report.report_id),
        ("Status", report.status.value),
        ("Pages Scraped", str(report.total_scraped)),
        ("Pages Failed", str(report.analysis.fail_count)),
        ("Total Keywords", str(summary.total_keywords)),
        ("Intent Breakdown", breakdown),
        ("Data Source", "Local extraction" if report.analysis.fallback_used else "AI analysis"),
        ("Processing Time", f"{report.processing_time_ms / 1000:.1f}s"),
    ]
    summary_table = doc.add_table(rows=len(summary_items), cols=2)
    summary_table.alignment = WD_TABLE_ALIGNMENT.CENTER
    for i, (label, value) in enumerate(summary_items):
        row = summary_table.rows[i]
        _cell_text(row.cells[0], label, bold=True, size=Pt(10))
        _cell_text(row.cells[1], value, size=Pt(10))

    if summary.primary_keywords:
        doc.add_heading("Primary Keywords", level=2)
        doc.add_paragraph(", ".join(summary.primary_keywords))

    # ── Keywords ───────────────────────────────────────────────────
    doc.add_heading("Keywords", level=1)
    _add_table(
        doc,
        ["Keyword", "Intent", "Relevance", "Volume", "Difficulty", "CPC"],
        [
            [
                k.keyword, k.intent, str(k.relevance_score), str(k.search_volume),
                str(k.difficulty), str(k.cpc),
            ]
            for k in report.keywords[:_DOCX_KEYWORD_ROWS]
        ],
    )

    # ── Recommendations ────────────────────────────────────────────
    if report.recommendations:
        doc.add_heading("Recommendations", level=1)
        for rec in report.recommendations:
            doc.add_paragraph(str(rec), style="List Bullet")

    # ── Pages ──────────────────────────────────────────────────────
    if report.pages:
        doc.add_heading("Pages", level=1)
        rows = []
        for url, info in report.pages.items():
            info = info if isinstance(info, dict) else {}
            top = info.get('top_keywords') or []
            rows.append([
                url,
                str(info.get('title', '')),
                ", ".join(str(t) for t in top),
                str(info.get('content_score', '')),
            ])
        _add_table(doc, ["URL", "Title", "Top Keywords", "Content Score"], rows)

    doc.save(str(path))
    logger.info(f"Exported DOCX to {path.absolute()}")
    return str(path.absolute())


def _add_table(doc, headers: List[str], rows: List[List[str]]) -> None:
    from docx.shared import Pt

    table = doc.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"
    for i, header in enumerate(headers):
        _cell_text(table.rows[0].cells[i], header, bold=True, size=Pt(9))
    for values in rows:
        cells = table.add_row().cells
        for i, value in enumerate(values):
            _cell_text(cells[i], value, size=Pt(9))


def _cell_text(cell, text: str, bold: bool = False, size=None) -> None:
    """Set cell text with formatting."""
    cell.text = text
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.bold = bold
            if size:
                run.font.size = size
