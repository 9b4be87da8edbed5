"""
Pydantic schemas package.
"""
from .common import ApiResponse, CamelModel, MessageResponse, HealthCheck, DetailedHealthCheck
from .project import ProjectCreate, ProjectResponse
from .article import (
    ArticleCreate,
    ArticleUpdate,
    ArticleResponse,
    ArticleDetail,
    BoardArticle,
    KanbanColumn,
    SEOAnalysis,
    GenerationLog,
    MoveArticleRequest,
    SchedulePublishingRequest,
    PublishRequest,
)
from .generation import (
    GenerateArticleRequest,
    GenerationStatusResponse,
    ScheduleGenerationRequest,
    QueueItemResponse,
    QueueListResponse,
    RetryResponse,
    RegenerateSectionRequest,
    RegenerateSectionResponse,
)

__all__ = [
    # Common
    "ApiResponse",
    "CamelModel",
    "MessageResponse",
    "HealthCheck",
    "DetailedHealthCheck",

    # Project
    "ProjectCreate",
    "ProjectResponse",

    # Article
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleResponse",
    "ArticleDetail",
    "BoardArticle",
    "KanbanColumn",
    "SEOAnalysis",
    "GenerationLog",
    "MoveArticleRequest",
    "SchedulePublishingRequest",
    "PublishRequest",

    # Generation
    "GenerateArticleRequest",
    "GenerationStatusResponse",
    "ScheduleGenerationRequest",
    "QueueItemResponse",
    "QueueListResponse",
    "RetryResponse",
    "RegenerateSectionRequest",
    "RegenerateSectionResponse",
]
