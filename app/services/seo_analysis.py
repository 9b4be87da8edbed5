"""
SEO and readability analytics derived from an article's stored fields.

Nothing here is persisted; the article detail endpoint recomputes the
analysis on every read.
"""
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.schemas.article import GenerationLog, SEOAnalysis
from app.utils.dates import ensure_aware

SEO_SCORE_THRESHOLD = 70

_TRAILING_SILENT = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
_LEADING_Y = re.compile(r"^y")
_VOWEL_GROUP = re.compile(r"[aeiouy]{1,2}")
_SENTENCE_END = re.compile(r"[.!?]+")


def count_words(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def count_syllables(word: str) -> int:
    """Rough English syllable count: vowel groups after dropping silent endings."""
    word = word.lower()
    if len(word) <= 3:
        return 1
    word = _TRAILING_SILENT.sub("", word, count=1)
    word = _LEADING_Y.sub("", word, count=1)
    groups = _VOWEL_GROUP.findall(word)
    return len(groups) if groups else 1


def readability_score(text: Optional[str]) -> int:
    """
    Simplified Flesch reading ease.

    ``206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word``,
    rounded and clamped to 0..100. Empty text scores 0.
    """
    if not text:
        return 0

    sentences = [s for s in _SENTENCE_END.split(text) if s.strip()]
    words = text.split()
    if not sentences or not words:
        return 0

    words_per_sentence = len(words) / len(sentences)
    syllables_per_word = sum(count_syllables(w) for w in words) / len(words)
    score = 206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word
    return max(0, min(100, round(score)))


def keyword_density(text: Optional[str], keywords: Iterable[str]) -> Dict[str, float]:
    """Occurrences of each keyword per hundred words, case-insensitive."""
    keywords = list(keywords or [])
    if not text or not keywords:
        return {}

    lowered = text.lower()
    total_words = len(lowered.split())
    density: Dict[str, float] = {}
    for keyword in keywords:
        needle = keyword.lower()
        if not needle or total_words == 0:
            density[keyword] = 0.0
            continue
        matches = len(re.findall(re.escape(needle), lowered))
        density[keyword] = matches / total_words * 100
    return density


def seo_recommendations(article: Any) -> List[str]:
    recommendations = []

    if not article.meta_description:
        recommendations.append("Add a meta description for better search visibility")
    if not article.keywords:
        recommendations.append("Add target keywords to improve SEO ranking")
    if not article.draft:
        recommendations.append("Generate content to analyze SEO performance")
    if article.seo_score and article.seo_score < SEO_SCORE_THRESHOLD:
        recommendations.append("Improve content optimization to increase SEO score")

    return recommendations


def generation_logs(article: Any) -> List[GenerationLog]:
    """Coarse pipeline history inferred from which outputs are present."""
    timestamp: datetime = ensure_aware(article.updated_at or article.created_at)
    logs = []

    if article.draft:
        logs.append(GenerationLog(
            phase="writing", status="completed", timestamp=timestamp,
            details="Draft content generated",
        ))
    if article.fact_check_report:
        logs.append(GenerationLog(
            phase="validation", status="completed", timestamp=timestamp,
            details="Content validated and fact-checked",
        ))
    if article.draft:
        logs.append(GenerationLog(
            phase="optimization", status="completed", timestamp=timestamp,
            details="Content optimized for SEO",
        ))

    return sorted(logs, key=lambda log: log.timestamp)


def analyze_article(article: Any) -> Dict[str, Any]:
    """
    Bundle every derived field shown on the article detail page.

    ``seo_analysis`` is only present when the article has an SEO score.
    Word count reads the draft and falls back to the published content.
    """
    keywords = list(article.keywords or [])
    analysis: Optional[SEOAnalysis] = None
    if article.seo_score:
        analysis = SEOAnalysis(
            score=article.seo_score,
            recommendations=seo_recommendations(article),
            keyword_density=keyword_density(article.draft, keywords),
            readability_score=readability_score(article.draft),
        )

    return {
        "seo_analysis": analysis,
        "generation_logs": generation_logs(article),
        "word_count": count_words(article.draft or article.content),
        "target_keywords": keywords,
        "research_sources": list(article.sources or []),
    }
