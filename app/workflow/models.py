"""
Client-side view models for the editorial workflow.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator

from app.core.statuses import (
    GenerationPhase,
    derive_generation_phase,
    reconcile_article_status,
)
from app.schemas.common import CamelModel
from app.core.logging import get_logger

logger = get_logger(__name__)


class WorkflowArticle(CamelModel):
    """
    One article as the dashboard sees it.

    ``status`` stays a plain string so rows written by newer servers with
    unknown statuses still load; unknown statuses land in no partition.
    """
    id: int
    title: str
    status: str
    project_id: Optional[int] = None
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    notes: Optional[str] = None
    slug: Optional[str] = None
    draft: Optional[str] = None
    content: Optional[str] = None
    kanban_position: int = 0
    estimated_read_time: Optional[int] = None
    publish_scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    generation_status: Optional[str] = None
    generation_progress: int = 0
    generation_phase: Optional[GenerationPhase] = None
    generation_error: Optional[str] = None
    generation_scheduled_at: Optional[datetime] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def default_keywords(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @field_validator("generation_progress", mode="before")
    @classmethod
    def clamp_progress(cls, value: Any) -> int:
        if value is None:
            return 0
        return max(0, min(100, int(value)))


class QueueEntry(CamelModel):
    """A generation-queue row as returned by the queue listing."""
    id: int
    article_id: int
    title: str
    scheduled_for_date: datetime
    added_to_queue_at: Optional[datetime] = None
    status: str
    queue_position: Optional[int] = None
    attempts: int = 0
    error_message: Optional[str] = None


def normalize_article(raw: Dict[str, Any]) -> WorkflowArticle:
    """
    Build a WorkflowArticle from a board row.

    Applies the finished-snapshot status correction and derives the
    generation phase from the snapshot status.
    """
    data = dict(raw)
    status = data.get("status")
    corrected = reconcile_article_status(
        status, data.get("generationStatus"), data.get("generationProgress")
    )
    if corrected != status:
        logger.info(
            "Auto-correcting article status",
            article_id=data.get("id"),
            from_status=status,
            to_status=corrected,
        )
        data["status"] = corrected

    data["generationPhase"] = derive_generation_phase(data.get("generationStatus"))
    return WorkflowArticle.model_validate(data)
