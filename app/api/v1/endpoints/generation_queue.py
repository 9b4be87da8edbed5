"""
Generation queue API endpoints.

Mounted under ``/articles`` ahead of the article router so that
``/articles/generation-queue`` is not captured by ``/articles/{article_id}``.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.statuses import derive_queue_status
from app.models.article import Article
from app.models.generation import ArticleGeneration, QueueItem
from app.models.user import User
from app.schemas.article import ArticleResponse
from app.schemas.common import ApiResponse
from app.schemas.generation import QueueItemResponse, QueueListResponse, ScheduleGenerationRequest
from app.services.article_service import article_service

logger = get_logger(__name__)

router = APIRouter()


def _queue_item_response(
    item: QueueItem, article: Article, generation: Optional[ArticleGeneration], position: Optional[int] = None
) -> QueueItemResponse:
    return QueueItemResponse(
        id=item.id,
        article_id=article.id,
        title=article.title,
        article_status=article.status,
        added_to_queue_at=item.added_to_queue_at,
        scheduled_for_date=item.scheduled_for_date,
        queue_position=position if position is not None else (item.queue_position or 1),
        scheduling_type=item.scheduling_type,
        status=derive_queue_status(
            article.status, generation.status if generation else None, item.status
        ),
        attempts=item.attempts or 0,
        error_message=item.error_message or (generation.error if generation else None),
    )


@router.get("/generation-queue", response_model=ApiResponse[QueueListResponse])
async def list_generation_queue(
    project_id: Optional[int] = Query(None, description="Restrict to one project"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """Queue entries ordered by scheduled date, with a status derived from the latest snapshot."""
    rows = await article_service.list_queue(session, current_user.id, project_id)
    items = [
        _queue_item_response(item, article, generation, position=index)
        for index, (item, article, generation) in enumerate(rows, start=1)
    ]
    return ApiResponse(success=True, data=QueueListResponse(articles=items))


@router.post(
    "/generation-queue",
    response_model=ApiResponse[QueueItemResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_to_generation_queue(
    request: ScheduleGenerationRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    """Schedule an article for generation; an existing entry for it is replaced."""
    article = await article_service.get_owned_article(session, request.article_id, current_user.id)
    item = await article_service.schedule_generation(session, article, request.scheduled_for_date)
    await session.commit()

    generation = await article_service.latest_generation(session, article.id)
    return ApiResponse(success=True, data=_queue_item_response(item, article, generation))


@router.delete("/generation-queue", response_model=ApiResponse[ArticleResponse])
async def remove_from_generation_queue(
    queue_item_id: int = Query(..., alias="queueItemId"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    article = await article_service.remove_queue_item(session, queue_item_id, current_user.id)
    await session.commit()
    logger.info("Removed article from generation queue", article_id=article.id, queue_item_id=queue_item_id)
    return ApiResponse(success=True, data=ArticleResponse.model_validate(article))
