"""
Presentation helpers for generation progress.
"""
from typing import NamedTuple, Optional

from app.core.statuses import ArticleStatus, GenerationPhase, phase_label
from app.workflow.models import WorkflowArticle


class ProgressView(NamedTuple):
    percent: int
    label: Optional[str]


def progress_view(article: WorkflowArticle) -> ProgressView:
    """Progress bar state for an article card."""
    percent = max(0, min(100, article.generation_progress or 0))

    if article.generation_error:
        return ProgressView(percent, "Failed")
    if article.status == ArticleStatus.GENERATING.value:
        label = phase_label(article.generation_phase)
        return ProgressView(percent, label or "Starting")
    if article.generation_phase is not None:
        return ProgressView(percent, phase_label(GenerationPhase(article.generation_phase)))
    if percent == 100:
        return ProgressView(percent, "Complete")
    return ProgressView(percent, None)
