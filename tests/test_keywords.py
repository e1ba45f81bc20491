"""
Tests for the local keyword heuristics.

Covers frequency extraction, per-page aggregation, intent cues and the
deterministic metric estimates used on the fallback path.
"""

from datetime import date

import pytest

from keyword_crawler.keywords import (
    STOPWORDS,
    aggregate_keywords,
    estimate_seo_metrics,
    extract_keywords,
    infer_intent,
)


# ====================================================================
# 1. extract_keywords
# ====================================================================

class TestExtractKeywords:

    def test_most_frequent_word_ranks_first(self):
        result = extract_keywords("SEO tools help SEO teams rank better, SEO matters", 5)
        assert result[0] == {"word": "seo", "count": 3}
        assert all(item["count"] == 1 for item in result[1:])
        assert len(result) == 5

    def test_ties_keep_first_occurrence_order(self):
        result = extract_keywords("SEO tools help SEO teams rank better, SEO matters", 5)
        assert [r["word"] for r in result] == ["seo", "tools", "help", "teams", "rank"]

    def test_short_lowercase_words_dropped(self):
        assert extract_keywords("the cat sat on a mat") == []

    def test_acronym_needs_uppercase_in_source(self):
        result = extract_keywords("seo and CRM and crm")
        assert result == [{"word": "crm", "count": 1}]

    def test_acronym_exception_is_per_occurrence(self):
        text = "CONTACT US today. Let us help us grow with us."
        counts = {r["word"]: r["count"] for r in extract_keywords(text)}
        assert counts["us"] == 1
        assert counts["contact"] == 1

    def test_stopwords_dropped(self):
        text = "about against between through during before after"
        assert extract_keywords(text) == []
        assert "about" in STOPWORDS

    def test_hyphenated_words_kept_whole(self):
        result = extract_keywords("long-tail keywords and long-tail phrases")
        assert result[0] == {"word": "long-tail", "count": 2}

    def test_punctuation_stripped_and_lowercased(self):
        result = extract_keywords("Marketing! marketing? MARKETING.")
        assert result == [{"word": "marketing", "count": 3}]

    def test_max_keywords_caps_output(self):
        text = " ".join(f"word{i}" for i in range(30))
        assert len(extract_keywords(text, max_keywords=10)) == 10

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text(self, text):
        assert extract_keywords(text) == []

    def test_deterministic(self):
        text = "content strategy drives organic growth and content quality"
        assert extract_keywords(text) == extract_keywords(text)


# ====================================================================
# 2. aggregate_keywords
# ====================================================================

class TestAggregateKeywords:

    def test_counts_summed_across_pages(self):
        lists = [
            [{"word": "seo", "count": 2}],
            [{"word": "seo", "count": 3}, {"word": "audit", "count": 1}],
        ]
        assert aggregate_keywords(lists) == [
            {"word": "seo", "count": 5},
            {"word": "audit", "count": 1},
        ]

    def test_limit(self):
        lists = [[{"word": f"w{i}", "count": i + 1} for i in range(10)]]
        result = aggregate_keywords(lists, limit=3)
        assert [r["word"] for r in result] == ["w9", "w8", "w7"]


# ====================================================================
# 3. infer_intent
# ====================================================================

class TestInferIntent:

    @pytest.mark.parametrize("keyword,intent", [
        ("buy running shoes", "commercial"),
        ("best crm software", "commercial"),
        ("plumber near me", "transactional"),
        ("how to write meta descriptions", "informational"),
        ("seo guide", "informational"),
        ("plumber in boston", "local"),
        ("custom software development services", "long-tail"),
        ("hubspot", "navigational"),
        ("ab", "unknown"),
        ("", "unknown"),
    ])
    def test_cues(self, keyword, intent):
        assert infer_intent(keyword) == intent


# ====================================================================
# 4. estimate_seo_metrics
# ====================================================================

class TestEstimateSeoMetrics:

    def test_baseline_by_intent_and_length(self):
        one = estimate_seo_metrics("crm", "commercial", today=date(2024, 6, 1))
        three = estimate_seo_metrics("best crm tools", "commercial", today=date(2024, 6, 1))
        assert one["search_volume"] == 5000
        assert one["competition"] == "High"
        assert three["search_volume"] == 500
        assert three["difficulty"] < one["difficulty"]

    def test_trend_covers_trailing_twelve_months(self):
        metrics = estimate_seo_metrics("seo", "navigational", today=date(2024, 12, 15))
        monthly = metrics["trend"]["monthly"]
        assert len(monthly) == 12
        assert monthly[0]["month"] == "2024-01"
        assert monthly[-1]["month"] == "2024-12"

    def test_seasonality(self):
        metrics = estimate_seo_metrics("seo", "navigational", today=date(2024, 12, 15))
        by_month = {m["month"]: m["volume"] for m in metrics["trend"]["monthly"]}
        assert by_month["2024-12"] == 12500
        assert by_month["2024-07"] == 9000
        assert by_month["2024-03"] == 10000

    def test_unknown_intent_uses_default_row(self):
        metrics = estimate_seo_metrics("widget", "made-up", today=date(2024, 1, 1))
        assert metrics["search_volume"] == 2000

    def test_deterministic(self):
        today = date(2024, 5, 1)
        assert estimate_seo_metrics("seo audit", "informational", today) == \
            estimate_seo_metrics("seo audit", "informational", today)
