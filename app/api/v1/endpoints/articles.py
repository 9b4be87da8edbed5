"""
Article management and workflow API endpoints.
"""
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_current_user, get_project_header
from app.core.database import get_db, get_session_factory
from app.core.exceptions import NotFoundException
from app.core.logging import get_logger
from app.core.statuses import GenerationPhase, derive_generation_phase, phase_label
from app.models.article import Article
from app.models.user import User
from app.schemas.article import (
    ArticleCreate,
    ArticleDetail,
    ArticleResponse,
    ArticleUpdate,
    KanbanColumn,
    MoveArticleRequest,
    PublishRequest,
    SchedulePublishingRequest,
)
from app.schemas.common import ApiResponse
from app.schemas.generation import (
    GenerateArticleRequest,
    GenerationStatusResponse,
    RegenerateSectionRequest,
    RegenerateSectionResponse,
    RetryResponse,
)
from app.services.article_service import (
    article_service,
    dispatch_continuation,
    dispatch_generation,
)
from app.services.generation_client import GenerationServiceClient, get_generation_client
from app.services.seo_analysis import analyze_article
from app.tasks.workflow_tasks import enqueue_webhook

logger = get_logger(__name__)

router = APIRouter()


def _article_response(article: Article, message: Optional[str] = None) -> ApiResponse[ArticleResponse]:
    return ApiResponse(success=True, data=ArticleResponse.model_validate(article), message=message)


@router.post("", response_model=ApiResponse[ArticleResponse], status_code=status.HTTP_201_CREATED)
async def create_article(
    request: ArticleCreate,
    current_user: User = Depends(get_current_user),
    project_id: Optional[int] = Depends(get_project_header),
    session: AsyncSession = Depends(get_db)
):
    """Create a new article idea in the selected project."""
    article = await article_service.create_article(session, current_user, request, project_id)
    await session.commit()
    return _article_response(article)


@router.get("", response_model=ApiResponse[List[ArticleResponse]])
async def list_articles(
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    articles = await article_service.list_articles(session, current_user.id, project_id)
    return ApiResponse(success=True, data=[ArticleResponse.model_validate(a) for a in articles])


@router.get("/board", response_model=ApiResponse[List[KanbanColumn]])
async def get_board(
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """
    Kanban board for the dashboard.

    Every row carries its latest generation snapshot, and articles whose
    snapshot finished are shown as waiting for publish.
    """
    columns = await article_service.board(session, current_user.id, project_id)
    return ApiResponse(success=True, data=columns)


@router.post("/generate", response_model=ApiResponse[ArticleResponse])
async def generate_article(
    request: GenerateArticleRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: GenerationServiceClient = Depends(get_generation_client)
):
    """Start generating an article immediately."""
    article = await article_service.get_owned_article(session, request.article_id, current_user.id)
    generation = await article_service.begin_generation(session, article, force=request.force_regenerate)
    await session.commit()

    background_tasks.add_task(dispatch_generation, session_factory, client, generation.id)
    return _article_response(article, message="Article generation started")


@router.post("/schedule-publishing", response_model=ApiResponse[ArticleResponse])
async def schedule_publishing(
    request: SchedulePublishingRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(session, request.article_id, current_user.id)
    await article_service.schedule_publishing(session, article, request.publish_at)
    await session.commit()
    return _article_response(article)


@router.post("/move", response_model=ApiResponse[ArticleResponse])
async def move_article(
    request: MoveArticleRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """Drag-and-drop between kanban columns; only flow-approved moves are accepted."""
    article = await article_service.get_owned_article(session, request.article_id, current_user.id)
    await article_service.move_article(session, article, request.new_status, request.new_position)
    await session.commit()
    return _article_response(article)


@router.get("/{article_id}", response_model=ApiResponse[ArticleDetail])
async def get_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """Get an article with SEO analysis, generation logs and word count."""
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    base = ArticleResponse.model_validate(article).model_dump()
    return ApiResponse(success=True, data=ArticleDetail(**base, **analyze_article(article)))


@router.put("/{article_id}", response_model=ApiResponse[ArticleResponse])
async def update_article(
    article_id: int,
    request: ArticleUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(
        session, article_id, current_user.id, include_deleted=True
    )
    await article_service.update_article(session, article, request)
    return _article_response(article)


@router.delete("/{article_id}", response_model=ApiResponse[dict])
async def delete_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(
        session, article_id, current_user.id, include_deleted=True
    )
    await article_service.delete_article(session, article)
    await session.commit()
    return ApiResponse(success=True, data={"id": article_id}, message="Article deleted")


@router.get("/{article_id}/generation-status", response_model=ApiResponse[GenerationStatusResponse])
async def get_generation_status(
    article_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """Latest generation snapshot, polled while an article is generating."""
    await article_service.get_owned_article(session, article_id, current_user.id)
    generation = await article_service.latest_generation(session, article_id)
    if generation is None:
        raise NotFoundException("No generation found for this article")

    phase = derive_generation_phase(generation.status)
    if phase is None and generation.current_phase in {p.value for p in GenerationPhase}:
        phase = GenerationPhase(generation.current_phase)

    return ApiResponse(
        success=True,
        data=GenerationStatusResponse(
            article_id=article_id,
            status=generation.status,
            progress=max(0, min(100, generation.progress or 0)),
            phase=phase,
            phase_label=phase_label(phase),
            error=generation.error,
            scheduled_at=generation.scheduled_at,
            started_at=generation.started_at,
            completed_at=generation.completed_at,
            updated_at=generation.updated_at,
        ),
    )


@router.post("/{article_id}/run-now", response_model=ApiResponse[ArticleResponse])
async def run_now(
    article_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: GenerationServiceClient = Depends(get_generation_client)
):
    """Start a scheduled article's generation without waiting for its date."""
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    article_service.ensure_runnable_now(article)
    generation = await article_service.begin_generation(session, article)
    await session.commit()

    background_tasks.add_task(dispatch_generation, session_factory, client, generation.id)
    return _article_response(article, message="Article generation started")


@router.post("/{article_id}/cancel-schedule", response_model=ApiResponse[ArticleResponse])
async def cancel_schedule(
    article_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    await article_service.cancel_schedule(session, article)
    await session.commit()
    return _article_response(article)


@router.post("/{article_id}/retry", response_model=ApiResponse[RetryResponse])
async def retry_generation(
    article_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: GenerationServiceClient = Depends(get_generation_client)
):
    """Retry a failed generation from the last phase whose output survived."""
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    generation, decision, failed_status = await article_service.retry_generation(session, article)
    await session.commit()

    background_tasks.add_task(
        dispatch_continuation, session_factory, client, generation.id, decision.phase
    )
    return ApiResponse(
        success=True,
        data=RetryResponse(
            article_id=article.id,
            status=article.status,
            failed_phase=failed_status,
            restart_phase=decision.phase,
            reasoning=decision.reasoning,
            available_artifacts=decision.available_artifacts,
        ),
        message=f"Article generation retry started from {decision.phase} phase",
    )


@router.post("/{article_id}/publish", response_model=ApiResponse[ArticleResponse])
async def publish_article(
    article_id: int,
    request: Optional[PublishRequest] = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    _, delivery = await article_service.publish(
        session, article, request.content if request else None
    )
    await session.commit()

    if delivery is not None:
        enqueue_webhook(delivery.id)
    return _article_response(article, message="Article published")


@router.post("/{article_id}/cancel-publish-schedule", response_model=ApiResponse[ArticleResponse])
async def cancel_publish_schedule(
    article_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    await article_service.cancel_publish_schedule(session, article)
    await session.commit()
    return _article_response(article)


@router.post("/{article_id}/regenerate-section", response_model=ApiResponse[RegenerateSectionResponse])
async def regenerate_section(
    article_id: int,
    request: RegenerateSectionRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    client: GenerationServiceClient = Depends(get_generation_client)
):
    """Rewrite one section of the draft and save it to the article and its snapshot."""
    article = await article_service.get_owned_article(session, article_id, current_user.id)
    draft, heading = await article_service.regenerate_section(
        session,
        article,
        current_user,
        client,
        section_heading=request.section_heading,
        section_id=request.section_id,
        notes=request.notes,
    )
    await session.commit()
    return ApiResponse(
        success=True,
        data=RegenerateSectionResponse(draft=draft, updated_section_heading=heading),
    )
