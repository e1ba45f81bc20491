"""
Local Keyword Heuristics
========================
Frequency-based keyword extraction plus the intent and metric estimates
used when the external analysis service cannot be trusted.

Everything here is pure and deterministic.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date
from typing import Dict, List, Optional

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

STOPWORDS = frozenset([
    "i", "me", "my", "myself", "we", "our", "ours", "ourselves", "you", "your",
    "yours", "yourself", "yourselves", "he", "him", "his", "himself", "she",
    "her", "hers", "herself", "it", "its", "itself", "they", "them", "their",
    "theirs", "themselves", "what", "which", "who", "whom", "this", "that",
    "these", "those", "am", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "having", "do", "does", "did", "doing", "a", "an",
    "the", "and", "but", "if", "or", "because", "as", "until", "while", "of",
    "at", "by", "for", "with", "about", "against", "between", "into",
    "through", "during", "before", "after", "above", "below", "to", "from",
    "up", "down", "in", "out", "on", "off", "over", "under", "again",
    "further", "then", "once", "here", "there", "when", "where", "why", "how",
    "all", "any", "both", "each", "few", "more", "most", "other", "some",
    "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too",
    "very", "s", "t", "can", "will", "just", "don", "should", "now", "also",
    "get", "like", "use",
])

MIN_WORD_LENGTH = 4
MIN_ACRONYM_LENGTH = 2

# Anything that is not a word character, whitespace or hyphen becomes a space
_NON_WORD_RE = re.compile(r"[^\w\s-]")


def _is_acronym(token: str) -> bool:
    """All-caps spelling in the source (SEO, CRM, B2B)."""
    return len(token) >= MIN_ACRONYM_LENGTH and token.isupper()


def extract_keywords(text: str, max_keywords: int = 10) -> List[Dict[str, int]]:
    """
    Rank the most frequent meaningful words of ``text``.

    Words shorter than four characters are dropped unless that occurrence
    is spelled as an acronym; stopwords are always dropped.

    Args:
        text: Page text (any case, any punctuation)
        max_keywords: Maximum number of entries to return

    Returns:
        ``[{"word": str, "count": int}, ...]`` sorted by descending count;
        ties keep first-occurrence order.
    """
    if not text:
        return []

    tokens = _NON_WORD_RE.sub(" ", text).split()

    # the acronym exception applies per occurrence
    counts = Counter(
        token.lower() for token in tokens
        if token.lower() not in STOPWORDS
        and (len(token) >= MIN_WORD_LENGTH or _is_acronym(token))
    )
    return [
        {"word": word, "count": count}
        for word, count in counts.most_common(max_keywords)
    ]


def aggregate_keywords(keyword_lists, limit: Optional[int] = None) -> List[Dict[str, int]]:
    """Sum ``{word, count}`` lists from many pages into one ranking."""
    totals: Counter = Counter()
    for keywords in keyword_lists:
        for item in keywords:
            word = item.get("word")
            if word:
                totals[word] += int(item.get("count", 0))
    return [{"word": w, "count": c} for w, c in totals.most_common(limit)]


# ---------------------------------------------------------------------------
# Intent inference
# ---------------------------------------------------------------------------

_COMMERCIAL_CUES = (
    "buy", "price", "cost", "deal", "discount", "cheap", "purchase", "order",
    "sale", "best", "top", "review", "comparison", "vs ", " versus",
)
_TRANSACTIONAL_CUES = (
    "near me", "today", "online", "shop", "store", "for sale", "coupon",
    "discount code",
)
_INFORMATIONAL_CUES = (
    "what", "how", "why", "guide", "tips", "tutorial", "examples",
    "definition", "meaning", "benefits", "advantages", "disadvantages",
    "pros and cons",
)
_LOCAL_CUES = ("near", "city", "area", "location", "find")
_NAVIGATIONAL_CUES = (".com", ".org", ".net")


def infer_intent(keyword: str) -> str:
    """Guess a search intent for ``keyword`` from substring cues."""
    if not keyword:
        return "unknown"
    kw = keyword.lower().strip()
    words = kw.split()

    if any(cue in kw for cue in _COMMERCIAL_CUES):
        return "commercial"
    if any(cue in kw for cue in _TRANSACTIONAL_CUES):
        return "transactional"
    if any(cue in kw for cue in _INFORMATIONAL_CUES):
        return "informational"
    if any(cue in kw for cue in _LOCAL_CUES) or " in " in f" {kw} ":
        return "local"
    if len(words) >= 3:
        return "long-tail"
    if any(cue in kw for cue in _NAVIGATIONAL_CUES) or (len(words) == 1 and len(kw) > 2):
        return "navigational"
    return "unknown"


# ---------------------------------------------------------------------------
# Metric estimates
# ---------------------------------------------------------------------------

# intent -> (volume, difficulty, cpc, competition) for 1 / 2 / 3+ words
_BASELINES = {
    "commercial": ((5000, 85, 12.50, "High"), (2000, 65, 8.75, "Medium"), (500, 45, 5.25, "Low")),
    "transactional": ((3000, 80, 15.00, "High"), (1500, 60, 10.50, "Medium"), (400, 40, 6.75, "Low")),
    "informational": ((8000, 75, 3.25, "Medium"), (3000, 55, 2.10, "Low"), (800, 35, 1.25, "Low")),
    "local": ((1000, 60, 8.50, "Medium"), (500, 40, 6.25, "Low"), (200, 25, 4.00, "Low")),
    "long-tail": ((300, 35, 6.75, "Medium"), (300, 35, 6.75, "Medium"), (150, 25, 4.50, "Low")),
    "navigational": ((10000, 90, 2.50, "High"), (5000, 70, 1.75, "Medium"), (1000, 50, 1.00, "Low")),
    "unknown": ((2000, 70, 7.50, "Medium"), (800, 50, 5.25, "Low"), (200, 30, 3.00, "Low")),
}

# Calendar month -> seasonal volume multiplier
_SEASONALITY = {11: 1.25, 12: 1.25, 1: 1.25, 7: 0.9, 8: 0.9}


def _trailing_months(today: date, count: int = 12) -> List[date]:
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def estimate_seo_metrics(keyword: str, intent: str = "unknown", today: Optional[date] = None) -> dict:
    """
    Baseline SEO metrics for a keyword with no external data.

    Values come from an intent by word-count table, so the same keyword and
    intent always yield the same estimate.
    """
    word_count = len(keyword.split()) or 1
    rows = _BASELINES.get(intent, _BASELINES["unknown"])
    volume, difficulty, cpc, competition = rows[min(word_count, 3) - 1]

    today = today or date.today()
    monthly = [
        {
            "month": m.strftime("%Y-%m"),
            "volume": int(round(volume * _SEASONALITY.get(m.month, 1.0))),
        }
        for m in _trailing_months(today)
    ]
    return {
        "search_volume": volume,
        "difficulty": difficulty,
        "cpc": cpc,
        "competition": competition,
        "trend": {"monthly": monthly},
    }
