"""
Keyword Report Normalizer
=========================
Turns crawl output plus the analysis service's reply into one canonical,
deduplicated ``KeywordReport``.

Pipeline (first failure drops straight to the local fallback):

1. Keep pages with content and no error
2. Build the bounded payload and submit it
3. Recover JSON from the reply (``response_parser.recover``)
4. Map field synonyms onto ``KeywordEntry``
5. Deduplicate by lowercase keyword, highest relevance wins
6. Summary, recommendations, per-page attribution

The fallback report is built from the per-page local keyword counts only,
and never raises.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .ai_client import AIAnalysisClient, analyzable_pages, build_payload
from .exceptions import AIServiceError, KeywordCrawlerError, ParseError
from .keywords import aggregate_keywords, estimate_seo_metrics, infer_intent
from .models import (
    DEFAULT_INTENT,
    DEFAULT_RELEVANCE,
    KEYWORD_SOURCES,
    NOT_AVAILABLE,
    KeywordEntry,
    KeywordReport,
    KeywordSummary,
    PageResult,
)
from .response_parser import recover

logger = logging.getLogger(__name__)

PRIMARY_COUNT = 10
SECONDARY_COUNT = 20
FALLBACK_KEYWORD_LIMIT = 50
PAGE_TOP_KEYWORDS = 5
CONTENT_SCORE_LENGTH = 500
COVERAGE_MIN_LENGTH = 100
COVERAGE_MIN_RATIO = 0.7
LONG_TAIL_MIN = 5

FALLBACK_NOTICES = (
    "AI analysis service unavailable - using on-site extraction.",
    "Run again when AI service is available for richer metrics (volume, difficulty, CPC).",
)
GENERAL_RECOMMENDATIONS = (
    "Focus on creating high-quality content around your primary keywords",
    "Build internal links between pages targeting related keywords",
)

_SUMMARY_LISTS = {
    'primary_keywords': ("primary_keywords", "primaryKeywords"),
    'secondary_keywords': ("secondary_keywords", "secondaryKeywords"),
    'long_tail_keywords': ("long_tail_keywords", "longTailKeywords"),
}
_BREAKDOWN_KEYS = (
    "intent_breakdown", "intentBreakdown",
    "keyword_intent_breakdown", "keywordIntentBreakdown",
)

# Intents the service uses to mean "I don't know"
_BLANK_INTENTS = {"", "unknown", "to be determined", "n/a", "none"}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _first(raw: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return None


def _metric(raw: Dict[str, Any], *names: str) -> Any:
    value = _first(raw, *names)
    return NOT_AVAILABLE if value is None else value


def _relevance(raw: Dict[str, Any]) -> float:
    value = _first(raw, "relevance_score", "relevanceScore", "score")
    if isinstance(value, bool):
        return DEFAULT_RELEVANCE
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return DEFAULT_RELEVANCE
    if not isinstance(value, (int, float)) or math.isnan(value):
        return DEFAULT_RELEVANCE
    return max(0, min(100, value))


def _trend(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict) and isinstance(value.get("monthly"), list):
        return value
    if isinstance(value, list):
        return {'monthly': value}
    return {'monthly': []}


def _list_of(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def _keyword_text(item: Any) -> str:
    if isinstance(item, dict):
        item = _first(item, "keyword", "text", "word")
    return str(item).strip() if item is not None else ""


def normalize_entry(raw: Any, default_intent: Optional[str] = None) -> Optional[KeywordEntry]:
    """Map one raw keyword object (or bare string) onto ``KeywordEntry``."""
    if isinstance(raw, str):
        raw = {'keyword': raw}
    if not isinstance(raw, dict):
        return None

    keyword = _keyword_text(raw)
    if not keyword:
        return None

    intent = str(_first(raw, "intent", "search_intent", "searchIntent") or "").strip().lower()
    if intent in _BLANK_INTENTS:
        intent = default_intent or DEFAULT_INTENT

    return KeywordEntry(
        keyword=keyword,
        intent=intent,
        difficulty=_metric(raw, "difficulty", "keyword_difficulty", "keywordDifficulty"),
        search_volume=_metric(raw, "search_volume", "searchVolume", "volume"),
        cpc=_metric(raw, "cpc", "cost_per_click", "costPerClick"),
        competition=_metric(raw, "competition", "competitiveness"),
        relevance_score=_relevance(raw),
        trend=_trend(raw.get("trend")),
        related_keywords=_list_of(_first(raw, "related_keywords", "relatedKeywords", "related")),
        serps=_list_of(_first(raw, "serps", "top_results", "topResults")),
    )


# ---------------------------------------------------------------------------
# Dedup / summary
# ---------------------------------------------------------------------------

def deduplicate(entries: Iterable[KeywordEntry]) -> List[KeywordEntry]:
    """One entry per lowercase keyword, keeping the higher relevance score."""
    best: Dict[str, KeywordEntry] = {}
    for entry in entries:
        current = best.get(entry.dedup_key)
        if current is None or entry.relevance_score > current.relevance_score:
            best[entry.dedup_key] = entry
    return list(best.values())


def intent_histogram(entries: Iterable[KeywordEntry]) -> Dict[str, int]:
    return dict(Counter(entry.intent or DEFAULT_INTENT for entry in entries))


def derive_summary(entries: Sequence[KeywordEntry]) -> KeywordSummary:
    """Positional summary: first 10 primary, next 20 secondary, long-tail by intent."""
    texts = [e.keyword for e in entries]
    return KeywordSummary(
        primary_keywords=texts[:PRIMARY_COUNT],
        secondary_keywords=texts[PRIMARY_COUNT:PRIMARY_COUNT + SECONDARY_COUNT],
        long_tail_keywords=[e.keyword for e in entries if e.intent == "long-tail"],
        total_keywords=len(entries),
        intent_breakdown=intent_histogram(entries),
    )


def _explicit_list(sources: Iterable[Dict[str, Any]], names: Sequence[str]) -> Optional[List[str]]:
    for source in sources:
        for name in names:
            value = source.get(name)
            if isinstance(value, list) and value:
                return [t for t in (_keyword_text(v) for v in value) if t]
    return None


def build_summary(reply: Dict[str, Any], entries: Sequence[KeywordEntry]) -> KeywordSummary:
    """Honor lists and breakdown the service supplied, derive the rest."""
    summary = derive_summary(entries)
    raw_summary = reply.get("summary")
    sources = [raw_summary, reply] if isinstance(raw_summary, dict) else [reply]

    for attr, names in _SUMMARY_LISTS.items():
        explicit = _explicit_list(sources, names)
        if explicit is not None:
            setattr(summary, attr, explicit)

    for source in sources:
        breakdown = next(
            (source[k] for k in _BREAKDOWN_KEYS if isinstance(source.get(k), dict) and source[k]),
            None,
        )
        if breakdown:
            summary.intent_breakdown = dict(breakdown)
            break
    return summary


# ---------------------------------------------------------------------------
# Recommendations / page attribution
# ---------------------------------------------------------------------------

def generate_recommendations(entries: Sequence[KeywordEntry], pages: Sequence[PageResult]) -> List[str]:
    """Heuristic SEO advice from intent balance, long-tail and content coverage."""
    if not entries:
        return []

    recommendations = []
    intents = intent_histogram(entries)
    if intents.get("commercial", 0) > intents.get("informational", 0) * 2:
        recommendations.append(
            "Consider adding more informational content to attract users in the research phase"
        )

    if intents.get("long-tail", 0) < LONG_TAIL_MIN:
        recommendations.append(
            "Expand your long-tail keyword strategy to capture more specific search queries"
        )

    if pages:
        covered = sum(1 for p in pages if p.content_length > COVERAGE_MIN_LENGTH)
        if covered / len(pages) < COVERAGE_MIN_RATIO:
            recommendations.append(
                "Improve content coverage across more pages to target additional keywords"
            )

    recommendations.extend(GENERAL_RECOMMENDATIONS)
    return recommendations


def content_score(content_length: int) -> int:
    return min(100, math.floor(content_length / CONTENT_SCORE_LENGTH * 100))


def attribute_pages(pages: Sequence[PageResult], entries: Sequence[KeywordEntry]) -> Dict[str, Dict[str, Any]]:
    """Up to five report keywords found in each successful page's snippets."""
    attributed: Dict[str, Dict[str, Any]] = {}
    for page in pages:
        if not page.ok:
            continue
        snippets = [s.lower() for s in page.content_snippets]
        found = [
            e.keyword for e in entries
            if any(e.keyword.lower() in s for s in snippets)
        ][:PAGE_TOP_KEYWORDS]
        attributed[page.url] = {
            'title': page.title,
            'keyword_count': len(found),
            'top_keywords': found,
            'content_score': content_score(page.content_length),
        }
    return attributed


# ---------------------------------------------------------------------------
# Reply -> report
# ---------------------------------------------------------------------------

def _reply_object(decoded: Any) -> Dict[str, Any]:
    """Pick the object that carries the analysis out of a decoded reply."""
    if isinstance(decoded, dict):
        return decoded
    if isinstance(decoded, list):
        first = decoded[0] if decoded else None
        if isinstance(first, dict) and any(k in first for k, _ in KEYWORD_SOURCES):
            return first
        return {'keywords': decoded}
    raise ParseError(preview=repr(decoded)[:200])


def normalize_reply(decoded: Any, pages: Sequence[PageResult]) -> KeywordReport:
    """Build a report from a decoded service reply. May return zero keywords."""
    reply = _reply_object(decoded)

    entries: List[KeywordEntry] = []
    for key, group_intent in KEYWORD_SOURCES:
        for raw in _list_of(reply.get(key)):
            entry = normalize_entry(raw, group_intent)
            if entry is not None:
                entries.append(entry)
    entries = deduplicate(entries)

    recommendations = [str(r) for r in _list_of(reply.get("recommendations")) if r]
    if not recommendations:
        recommendations = generate_recommendations(entries, pages)

    ai_pages = reply.get("pages")
    if isinstance(ai_pages, dict) and ai_pages:
        page_map = ai_pages
    else:
        page_map = attribute_pages(pages, entries)

    error = reply.get("error")
    return KeywordReport(
        keywords=entries,
        summary=build_summary(reply, entries),
        recommendations=recommendations,
        pages=page_map,
        error=str(error) if error else None,
    )


def build_fallback_report(pages: Sequence[PageResult], reason: str) -> KeywordReport:
    """
    Report built only from local per-page keyword counts.

    Relevance scales the aggregate count (five occurrences = 10 points),
    bounded to [1, 100]. Never raises.
    """
    aggregate = aggregate_keywords(
        (p.keywords for p in pages if p.ok),
        limit=FALLBACK_KEYWORD_LIMIT,
    )

    entries = []
    for item in aggregate:
        word, count = item['word'], item['count']
        intent = infer_intent(word)
        estimates = estimate_seo_metrics(word, intent)
        entries.append(KeywordEntry(
            keyword=word,
            intent=intent,
            difficulty=estimates['difficulty'],
            search_volume=estimates['search_volume'],
            cpc=estimates['cpc'],
            competition=estimates['competition'],
            relevance_score=max(1, min(100, math.floor(count / 5 * 10))),
            trend=estimates['trend'],
        ))

    return KeywordReport(
        keywords=entries,
        summary=derive_summary(entries),
        recommendations=list(FALLBACK_NOTICES) + generate_recommendations(entries, pages),
        pages=attribute_pages(pages, entries),
        error=f"AI analysis failed: {reason}",
    )


def submit_and_normalize(
    pages: Sequence[PageResult],
    client: Optional[AIAnalysisClient],
) -> Tuple[KeywordReport, bool]:
    """
    Analyze crawl output through the service, falling back to local data.

    Returns:
        ``(report, used_fallback)``
    """
    valid = analyzable_pages(pages)
    if not valid:
        logger.warning("[AI] No valid content found to analyze, using local extraction")
        return build_fallback_report(pages, "No valid content found to analyze"), True

    if client is None:
        return build_fallback_report(pages, "AI webhook URL is not configured"), True

    try:
        payload = build_payload(valid, client.config.snippet_items)
        decoded = recover(client.submit(payload))
        report = normalize_reply(decoded, pages)
    except (AIServiceError, ParseError) as e:
        logger.warning(f"[AI] Analysis unavailable, using local extraction: {e}")
        return build_fallback_report(pages, str(e)), True
    except (KeywordCrawlerError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"[AI] Unexpected reply shape, using local extraction: {e}")
        return build_fallback_report(pages, f"Unexpected response: {e}"), True

    if not report.keywords:
        logger.warning("[AI] Reply contained no keywords, using local extraction")
        return build_fallback_report(pages, "AI response contained no keywords"), True

    logger.info(f"[AI] Normalized {len(report.keywords)} keywords from analysis service")
    return report, False
