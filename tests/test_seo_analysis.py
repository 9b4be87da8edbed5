"""
Test SEO and readability analytics.
"""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.services.seo_analysis import (
    analyze_article,
    count_syllables,
    count_words,
    keyword_density,
    readability_score,
    seo_recommendations,
)


def _article(**overrides):
    fields = dict(
        keywords=[],
        draft=None,
        content=None,
        meta_description=None,
        seo_score=None,
        fact_check_report={},
        sources=[],
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        updated_at=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestCounting:
    def test_words(self):
        assert count_words(None) == 0
        assert count_words("  one two\nthree  ") == 3

    @pytest.mark.parametrize("word,expected", [("cat", 1), ("table", 2), ("reading", 2), ("python", 2)])
    def test_syllables(self, word, expected):
        assert count_syllables(word) == expected


class TestReadability:
    def test_empty_text(self):
        assert readability_score("") == 0
        assert readability_score(None) == 0

    def test_short_sentences_are_clamped(self):
        assert readability_score("The cat sat. The dog ran.") == 100

    def test_long_words_score_lower(self):
        easy = readability_score("The cat sat on the mat.")
        hard = readability_score("Institutional considerations necessitate comprehensive organizational restructuring.")
        assert hard < easy
        assert 0 <= hard <= 100


class TestKeywordDensity:
    def test_case_insensitive(self):
        density = keyword_density("Python rocks. I like python.", ["Python"])
        assert density["Python"] == pytest.approx(2 / 5 * 100)

    def test_regex_characters_are_literal(self):
        density = keyword_density("c++ is not c", ["c++"])
        assert density["c++"] == pytest.approx(1 / 4 * 100)

    def test_empty_keyword(self):
        assert keyword_density("some text", [""]) == {"": 0.0}

    def test_no_text(self):
        assert keyword_density(None, ["x"]) == {}


class TestRecommendations:
    def test_bare_article(self):
        recommendations = seo_recommendations(_article())
        assert recommendations == [
            "Add a meta description for better search visibility",
            "Add target keywords to improve SEO ranking",
            "Generate content to analyze SEO performance",
        ]

    def test_complete_article(self):
        article = _article(meta_description="desc", keywords=["a"], draft="text", seo_score=85)
        assert seo_recommendations(article) == []


class TestAnalyzeArticle:
    def test_idea_has_no_analysis(self):
        result = analyze_article(_article())
        assert result["seo_analysis"] is None
        assert result["word_count"] == 0
        assert result["generation_logs"] == []
        assert result["target_keywords"] == []

    def test_word_count_falls_back_to_content(self):
        result = analyze_article(_article(content="published body text"))
        assert result["word_count"] == 3

    def test_scored_article(self):
        article = _article(
            keywords=["seo"],
            draft="SEO matters. Good SEO helps.",
            seo_score=50,
            fact_check_report={"verified": True},
            sources=[{"url": "https://example.com"}],
        )
        result = analyze_article(article)
        analysis = result["seo_analysis"]
        assert analysis.score == 50
        assert analysis.keyword_density["seo"] == pytest.approx(2 / 5 * 100)
        assert [log.phase for log in result["generation_logs"]] == ["writing", "validation", "optimization"]
        assert result["research_sources"] == [{"url": "https://example.com"}]
