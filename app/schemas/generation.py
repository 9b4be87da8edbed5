"""
Generation queue and generation-status schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from app.core.statuses import ArticleStatus, GenerationPhase, QueueStatus
from .common import CamelModel


class GenerateArticleRequest(CamelModel):
    article_id: int
    force_regenerate: bool = False


class GenerationStatusResponse(CamelModel):
    """Latest snapshot for one article, as polled by the dashboard."""
    article_id: int
    status: str
    progress: int = Field(..., ge=0, le=100)
    phase: Optional[GenerationPhase] = None
    phase_label: Optional[str] = None
    error: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScheduleGenerationRequest(CamelModel):
    article_id: int
    scheduled_for_date: datetime


class QueueItemResponse(CamelModel):
    id: int
    article_id: int
    title: str
    article_status: ArticleStatus
    added_to_queue_at: datetime
    scheduled_for_date: datetime
    queue_position: int
    scheduling_type: str
    status: QueueStatus
    attempts: int = 0
    error_message: Optional[str] = None


class QueueListResponse(CamelModel):
    articles: List[QueueItemResponse] = Field(default_factory=list)


class RetryResponse(CamelModel):
    article_id: int
    status: ArticleStatus
    failed_phase: str
    restart_phase: str
    reasoning: str
    available_artifacts: List[str] = Field(default_factory=list)


class RegenerateSectionRequest(CamelModel):
    section_heading: Optional[str] = None
    section_id: Optional[str] = None
    notes: Optional[str] = None


class RegenerateSectionResponse(CamelModel):
    draft: str
    updated_section_heading: Optional[str] = None
