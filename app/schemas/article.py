"""
Article schemas that match the dashboard's TypeScript interfaces.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator

from app.core.statuses import ArticleStatus
from .common import CamelModel


class ArticleCreate(CamelModel):
    """Create-idea request."""
    title: str = Field(..., min_length=1, max_length=255, description="Article title")
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list, description="Target keywords")
    target_audience: Optional[str] = None
    notes: Optional[str] = None
    project_id: Optional[int] = Field(None, description="Owning project; falls back to the X-Project-Id header")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value


class ArticleUpdate(CamelModel):
    """Partial update; only fields present in the request body are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    keywords: Optional[List[str]] = None
    target_audience: Optional[str] = None
    notes: Optional[str] = None
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[List[str]] = None
    draft: Optional[str] = None
    content: Optional[str] = None
    cover_image_url: Optional[str] = None
    cover_image_alt: Optional[str] = None
    # Older clients send scheduledAt for the publish date
    scheduled_at: Optional[datetime] = None
    publish_scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    status: Optional[ArticleStatus] = None

    @field_validator("title", "keywords", "status", mode="before")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        # Omit the field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class ArticleResponse(CamelModel):
    """Article as stored."""
    id: int
    user_id: Optional[str] = None
    project_id: int
    title: str
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None
    notes: Optional[str] = None
    status: ArticleStatus
    publish_scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    estimated_read_time: Optional[int] = None
    kanban_position: int = 0
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: List[str] = Field(default_factory=list)
    draft: Optional[str] = None
    content: Optional[str] = None
    seo_score: Optional[int] = None
    sources: List[Any] = Field(default_factory=list)
    fact_check_report: Dict[str, Any] = Field(default_factory=dict)
    cover_image_url: Optional[str] = None
    cover_image_alt: Optional[str] = None
    views: int = 0
    clicks: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("keywords", "meta_keywords", "sources", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> Any:
        return value if value is not None else []

    @field_validator("fact_check_report", mode="before")
    @classmethod
    def default_dict(cls, value: Any) -> Any:
        return value if value is not None else {}


class BoardArticle(ArticleResponse):
    """Board row: the article plus its latest generation snapshot."""
    generation_scheduled_at: Optional[datetime] = None
    generation_status: Optional[str] = None
    generation_progress: Optional[int] = None
    generation_error: Optional[str] = None


class KanbanColumn(CamelModel):
    id: str
    title: str
    status: ArticleStatus
    color: str
    articles: List[BoardArticle] = Field(default_factory=list)


class SEOAnalysis(CamelModel):
    score: int
    recommendations: List[str]
    keyword_density: Dict[str, float]
    readability_score: int


class GenerationLog(CamelModel):
    phase: str
    status: str
    timestamp: datetime
    details: Optional[str] = None


class ArticleDetail(ArticleResponse):
    """Article with analytics derived on read."""
    seo_analysis: Optional[SEOAnalysis] = None
    generation_logs: List[GenerationLog] = Field(default_factory=list)
    word_count: int = 0
    target_keywords: List[str] = Field(default_factory=list)
    research_sources: List[Any] = Field(default_factory=list)


class MoveArticleRequest(CamelModel):
    """Kanban drag-and-drop."""
    article_id: int
    new_status: ArticleStatus
    new_position: Optional[int] = Field(None, ge=0)


class SchedulePublishingRequest(CamelModel):
    article_id: int
    publish_at: datetime


class PublishRequest(CamelModel):
    # Defaults to the article's draft when omitted
    content: Optional[str] = None
