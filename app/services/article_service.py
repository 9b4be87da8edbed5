"""
Article workflow service.

Owns every state change in the article lifecycle:
idea -> scheduled -> generating -> wait_for_publish -> published.
Request-path methods flush and leave the commit to the route. The
exceptions are update_article, the periodic helpers and the dispatch
functions, which commit themselves; the dispatch functions run outside
a request and open their own sessions.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.exceptions import (
    ConflictException,
    ExternalServiceException,
    GoneException,
    NotFoundException,
    ValidationException,
)
from app.core.logging import get_logger
from app.core.monitoring import metrics_collector
from app.core.statuses import (
    ArticleStatus,
    GenerationStatus,
    QueueStatus,
    SCHEDULED_STATUSES,
    is_valid_transition,
    reconcile_article_status,
)
from app.models.article import Article
from app.models.generation import ArticleGeneration, QueueItem
from app.models.project import Project
from app.models.user import User
from app.models.webhook import WebhookDelivery
from app.schemas.article import ArticleCreate, ArticleResponse, ArticleUpdate, BoardArticle, KanbanColumn
from app.services.generation_client import (
    GenerationServiceClient,
    SectionRegenerationRequest,
)
from app.utils.dates import ensure_aware, is_in_past, utcnow

logger = get_logger(__name__)

KANBAN_COLUMNS: List[Tuple[ArticleStatus, str, str]] = [
    (ArticleStatus.IDEA, "Ideas", "#6B7280"),
    (ArticleStatus.SCHEDULED, "Scheduled", "#6366F1"),
    (ArticleStatus.TO_GENERATE, "To Generate", "#F59E0B"),
    (ArticleStatus.GENERATING, "Generating", "#3B82F6"),
    (ArticleStatus.WAIT_FOR_PUBLISH, "Wait for Publish", "#8B5CF6"),
    (ArticleStatus.PUBLISHED, "Published", "#10B981"),
    (ArticleStatus.FAILED, "Failed", "#EF4444"),
]


class RestartDecision(NamedTuple):
    phase: str
    reasoning: str
    available_artifacts: List[str]


def available_artifacts(artifacts: Optional[Dict[str, Any]]) -> List[str]:
    """Pipeline phases whose output survived in the snapshot artifacts."""
    artifacts = artifacts or {}
    found = []
    research = artifacts.get("research") or {}
    if research.get("researchData") or research.get("sources"):
        found.append("research")
    if (artifacts.get("coverImage") or {}).get("imageUrl"):
        found.append("image")
    if (artifacts.get("write") or {}).get("content"):
        found.append("writing")
    if (artifacts.get("qualityControl") or {}).get("report"):
        found.append("quality-control")
    if (artifacts.get("validation") or {}).get("rawValidationText"):
        found.append("validation")
    return found


def determine_restart_phase(failed_status: str, artifacts: Optional[Dict[str, Any]]) -> RestartDecision:
    """
    Pick the earliest phase a failed run has to repeat.

    Phases are resumed only when everything they depend on is present in
    the artifacts; otherwise the run falls back to the first missing phase.
    """
    artifacts = artifacts or {}
    found = available_artifacts(artifacts)

    if failed_status == "research" or "research" not in found:
        return RestartDecision("research", "Research failed or no research data available", found)
    if failed_status == "image" or "image" not in found:
        return RestartDecision("image", "Image selection failed or no cover image; research preserved", found)
    if failed_status == "writing" or "writing" not in found:
        return RestartDecision("writing", "Writing failed or no written content; research and image preserved", found)
    if failed_status == "quality-control":
        return RestartDecision("quality-control", "Quality control failed; reassessing existing content", found)
    if failed_status == "validating":
        return RestartDecision("validating", "Validation failed; revalidating existing content", found)
    if failed_status == "updating":
        return RestartDecision("quality-control", "Content update failed; reassessing from quality control", found)

    if failed_status in (GenerationStatus.FAILED.value, GenerationStatus.COMPLETED.value):
        if (artifacts.get("qualityControl") or {}).get("report") and "validation" not in found:
            return RestartDecision("validating", "Failed after quality control but before validation", found)
        # research and writing are both present at this point
        return RestartDecision("quality-control", "Content and research available; reassessing quality", found)

    return RestartDecision(failed_status, f"Restarting from the failed phase: {failed_status}", found)


def _section_heading_from_outline(outline: Any, section_id: str) -> Optional[str]:
    if not isinstance(outline, dict):
        return None
    sections = outline.get("sections")
    if not isinstance(sections, list):
        return None
    for section in sections:
        if not isinstance(section, dict) or section.get("id") != section_id:
            continue
        kind = section.get("type")
        if kind == "tldr":
            return "TL;DR"
        if kind == "faq":
            return "FAQ"
        if kind == "section":
            return section.get("label") or section.get("id")
    return None


class ArticleService:
    """Queries and state transitions for articles, snapshots and the generation queue."""

    # Lookups

    async def get_owned_project(self, session: AsyncSession, project_id: int, user_id: str) -> Project:
        result = await session.execute(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundException("Project not found")
        return project

    async def get_owned_article(
        self,
        session: AsyncSession,
        article_id: int,
        user_id: str,
        include_deleted: bool = False,
    ) -> Article:
        """Load an article through its project; missing and foreign articles look the same."""
        result = await session.execute(
            select(Article)
            .join(Project, Article.project_id == Project.id)
            .where(Article.id == article_id, Project.user_id == user_id)
        )
        article = result.scalar_one_or_none()
        if not article:
            raise NotFoundException("Article not found")
        if article.status == ArticleStatus.DELETED.value and not include_deleted:
            raise NotFoundException("Article not found")
        return article

    async def latest_generation(self, session: AsyncSession, article_id: int) -> Optional[ArticleGeneration]:
        result = await session.execute(
            select(ArticleGeneration)
            .where(ArticleGeneration.article_id == article_id)
            .order_by(ArticleGeneration.created_at.desc(), ArticleGeneration.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_generations(
        self, session: AsyncSession, article_ids: Iterable[int]
    ) -> Dict[int, ArticleGeneration]:
        ids = list(article_ids)
        if not ids:
            return {}
        result = await session.execute(
            select(ArticleGeneration)
            .where(ArticleGeneration.article_id.in_(ids))
            .order_by(ArticleGeneration.created_at.desc(), ArticleGeneration.id.desc())
        )
        latest: Dict[int, ArticleGeneration] = {}
        for generation in result.scalars():
            latest.setdefault(generation.article_id, generation)
        return latest

    async def list_articles(
        self, session: AsyncSession, user_id: str, project_id: Optional[int] = None
    ) -> List[Article]:
        query = (
            select(Article)
            .join(Project, Article.project_id == Project.id)
            .where(Project.user_id == user_id, Article.status != ArticleStatus.DELETED.value)
        )
        if project_id is not None:
            query = query.where(Article.project_id == project_id)
        query = query.order_by(Article.kanban_position, Article.created_at)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def board(
        self, session: AsyncSession, user_id: str, project_id: Optional[int] = None
    ) -> List[KanbanColumn]:
        """Kanban columns with each article's status reconciled against its latest snapshot."""
        articles = await self.list_articles(session, user_id, project_id)
        generations = await self.latest_generations(session, (a.id for a in articles))

        columns = {
            status: KanbanColumn(id=status.value, title=title, status=status, color=color)
            for status, title, color in KANBAN_COLUMNS
        }
        for article in articles:
            generation = generations.get(article.id)
            row = ArticleResponse.model_validate(article).model_dump()
            row.update(
                generation_scheduled_at=generation.scheduled_at if generation else None,
                generation_status=generation.status if generation else None,
                generation_progress=generation.progress if generation else None,
                generation_error=generation.error if generation else None,
            )
            row["status"] = reconcile_article_status(
                article.status, row["generation_status"], row["generation_progress"]
            )
            column = columns.get(ArticleStatus(row["status"]))
            if column is not None:
                column.articles.append(BoardArticle(**row))
        return list(columns.values())

    # Article CRUD

    async def create_article(
        self,
        session: AsyncSession,
        user: User,
        data: ArticleCreate,
        header_project_id: Optional[int] = None,
    ) -> Article:
        project_id = data.project_id if data.project_id is not None else header_project_id
        if project_id is None:
            raise ValidationException("Project ID is required")
        await self.get_owned_project(session, project_id, user.id)

        max_position = await session.scalar(
            select(func.max(Article.kanban_position)).where(Article.project_id == project_id)
        )
        article = Article(
            user_id=user.id,
            project_id=project_id,
            title=data.title.strip(),
            description=data.description,
            keywords=list(data.keywords),
            target_audience=data.target_audience,
            notes=data.notes,
            status=ArticleStatus.IDEA.value,
            kanban_position=0 if max_position is None else max_position + 1,
        )
        session.add(article)
        await session.flush()
        metrics_collector.record_workflow_event("created")
        logger.info("Article created", article_id=article.id, project_id=project_id)
        return article

    async def update_article(self, session: AsyncSession, article: Article, data: ArticleUpdate) -> Article:
        """
        Apply a partial update and commit.

        When the draft or content changes, the latest snapshot is brought in
        line afterwards; a failure there is logged and does not undo the
        article update.
        """
        if article.status == ArticleStatus.DELETED.value:
            raise GoneException("Cannot update deleted article")

        changes = data.model_dump(exclude_unset=True)
        legacy_schedule = changes.pop("scheduled_at", None)
        if legacy_schedule is not None and "publish_scheduled_at" not in changes:
            changes["publish_scheduled_at"] = legacy_schedule

        for field, value in changes.items():
            if isinstance(value, datetime):
                value = ensure_aware(value)
            elif isinstance(value, ArticleStatus):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            setattr(article, field, value)

        await session.commit()

        if "draft" in changes or "content" in changes:
            new_text = changes["draft"] if "draft" in changes else changes["content"]
            await self._sync_snapshot_content(session, article.id, new_text)
        return article

    async def _sync_snapshot_content(self, session: AsyncSession, article_id: int, text: Optional[str]) -> None:
        try:
            generation = await self.latest_generation(session, article_id)
            if generation is None:
                return
            artifacts = dict(generation.artifacts or {})
            artifacts["write"] = {**(artifacts.get("write") or {}), "content": text}
            generation.artifacts = artifacts
            generation.draft_content = text
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Failed to sync generation snapshot", article_id=article_id, error=str(e))

    async def delete_article(self, session: AsyncSession, article: Article) -> None:
        """Remove the article and everything hanging off it."""
        if article.status == ArticleStatus.DELETED.value:
            raise GoneException("Article is already deleted")
        if article.status == ArticleStatus.GENERATING.value:
            raise ConflictException("Cannot delete an article while it is generating")

        await session.execute(delete(QueueItem).where(QueueItem.article_id == article.id))
        await session.execute(delete(ArticleGeneration).where(ArticleGeneration.article_id == article.id))
        await session.execute(delete(WebhookDelivery).where(WebhookDelivery.article_id == article.id))
        await session.delete(article)
        await session.flush()
        metrics_collector.record_workflow_event("deleted")
        logger.info("Article deleted", article_id=article.id)

    async def move_article(
        self,
        session: AsyncSession,
        article: Article,
        new_status: ArticleStatus,
        new_position: Optional[int] = None,
    ) -> Article:
        if new_status.value != article.status and not is_valid_transition(article.status, new_status):
            raise ConflictException(
                f"Cannot move article from {article.status} to {new_status.value}",
                details={"from": article.status, "to": new_status.value},
            )
        if new_position is None:
            max_position = await session.scalar(
                select(func.max(Article.kanban_position)).where(
                    Article.project_id == article.project_id,
                    Article.status == new_status.value,
                    Article.id != article.id,
                )
            )
            new_position = 0 if max_position is None else max_position + 1
        article.status = new_status.value
        article.kanban_position = new_position
        await session.flush()
        return article

    # Generation

    async def begin_generation(
        self, session: AsyncSession, article: Article, force: bool = False
    ) -> ArticleGeneration:
        """
        Mark the article as generating and reset its snapshot.

        Queued entries for the article are consumed. The caller dispatches
        the run once the transaction is committed.
        """
        if article.status == ArticleStatus.GENERATING.value and not force:
            raise ConflictException("Article is already being generated")
        if article.status == ArticleStatus.PUBLISHED.value and not force:
            raise ConflictException("Article is already published")

        now = utcnow()
        article.status = ArticleStatus.GENERATING.value

        queued = await session.execute(
            select(QueueItem).where(
                QueueItem.article_id == article.id,
                QueueItem.status == QueueStatus.QUEUED.value,
            )
        )
        for item in queued.scalars():
            item.status = QueueStatus.PROCESSING.value
            item.processed_at = now

        generation = await self.latest_generation(session, article.id)
        if generation is None:
            generation = ArticleGeneration(
                article_id=article.id,
                user_id=article.user_id,
                project_id=article.project_id,
            )
            session.add(generation)
        generation.status = GenerationStatus.PENDING.value
        generation.progress = 0
        generation.current_phase = None
        generation.started_at = now
        generation.completed_at = None
        generation.error = None
        generation.error_details = None
        generation.draft_content = None
        generation.validation_report = None
        generation.research_data = {}
        generation.artifacts = {}
        await session.flush()

        metrics_collector.record_workflow_event("generation_started")
        logger.info("Generation started", article_id=article.id, generation_id=generation.id)
        return generation

    async def retry_generation(
        self, session: AsyncSession, article: Article
    ) -> Tuple[ArticleGeneration, RestartDecision, str]:
        if article.status != ArticleStatus.FAILED.value:
            raise ConflictException("Article is not in failed state and cannot be retried")

        generation = await self.latest_generation(session, article.id)
        if generation is None:
            raise NotFoundException("No generation record found for this article")

        failed_status = generation.status
        decision = determine_restart_phase(failed_status, generation.artifacts)

        article.status = ArticleStatus.GENERATING.value
        generation.status = decision.phase
        generation.progress = 0
        generation.error = None
        generation.error_details = None
        await session.flush()

        metrics_collector.record_workflow_event("generation_retried")
        logger.info(
            "Generation retry scheduled",
            article_id=article.id,
            failed_phase=failed_status,
            restart_phase=decision.phase,
        )
        return generation, decision, failed_status

    async def regenerate_section(
        self,
        session: AsyncSession,
        article: Article,
        user: User,
        client: GenerationServiceClient,
        section_heading: Optional[str] = None,
        section_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Tuple[str, Optional[str]]:
        """Rewrite one H2 section of the draft through the write service."""
        generation = await self.latest_generation(session, article.id)
        if generation is None:
            raise NotFoundException("No generation found for this article")

        current_draft = article.draft or generation.draft_content or ""
        if not current_draft:
            raise ValidationException("No draft content available to regenerate")

        heading = (section_heading or "").strip()
        if not heading and section_id:
            heading = _section_heading_from_outline(generation.outline, section_id) or ""
            if not heading:
                raise ValidationException(
                    "Unable to map sectionId to a heading; provide sectionHeading explicitly"
                )
        if not heading:
            raise ValidationException("sectionHeading or sectionId is required")

        result = await client.regenerate_section(SectionRegenerationRequest(
            article_markdown=current_draft,
            section_heading=heading,
            research_data=generation.research_data,
            title=article.title,
            keywords=list(article.keywords or []),
            notes=notes,
            user_id=user.id,
            project_id=article.project_id,
            generation_id=generation.id,
        ))

        article.draft = result.updated_content
        generation.draft_content = result.updated_content
        await session.flush()
        logger.info("Section regenerated", article_id=article.id, section=heading)
        return result.updated_content, result.updated_section_heading

    # Generation queue

    async def schedule_generation(
        self,
        session: AsyncSession,
        article: Article,
        scheduled_for: datetime,
        scheduling_type: str = "manual",
    ) -> QueueItem:
        """Queue the article for generation at ``scheduled_for``, replacing any earlier entry."""
        scheduled_for = ensure_aware(scheduled_for)
        if is_in_past(scheduled_for):
            raise ValidationException("Cannot schedule in the past")
        if article.status == ArticleStatus.GENERATING.value:
            raise ConflictException("Article is already being generated")

        await session.execute(delete(QueueItem).where(QueueItem.article_id == article.id))

        queued_count = await session.scalar(
            select(func.count(QueueItem.id)).where(
                QueueItem.project_id == article.project_id,
                QueueItem.status == QueueStatus.QUEUED.value,
            )
        )
        item = QueueItem(
            article_id=article.id,
            user_id=article.user_id,
            project_id=article.project_id,
            scheduled_for_date=scheduled_for,
            queue_position=(queued_count or 0) + 1,
            scheduling_type=scheduling_type,
            status=QueueStatus.QUEUED.value,
            max_attempts=settings.queue_max_attempts,
        )
        session.add(item)

        if article.status != ArticleStatus.PUBLISHED.value:
            article.status = ArticleStatus.SCHEDULED.value

        generation = await self.latest_generation(session, article.id)
        if generation is None:
            generation = ArticleGeneration(
                article_id=article.id,
                user_id=article.user_id,
                project_id=article.project_id,
                progress=0,
                artifacts={},
            )
            session.add(generation)
        generation.status = GenerationStatus.SCHEDULED.value
        generation.scheduled_at = scheduled_for
        await session.flush()

        metrics_collector.record_workflow_event("generation_scheduled")
        logger.info("Generation scheduled", article_id=article.id, scheduled_for=scheduled_for.isoformat())
        return item

    async def list_queue(
        self, session: AsyncSession, user_id: str, project_id: Optional[int] = None
    ) -> List[Tuple[QueueItem, Article, Optional[ArticleGeneration]]]:
        query = (
            select(QueueItem, Article)
            .join(Article, QueueItem.article_id == Article.id)
            .join(Project, QueueItem.project_id == Project.id)
            .where(Project.user_id == user_id)
        )
        if project_id is not None:
            query = query.where(QueueItem.project_id == project_id)
        query = query.order_by(QueueItem.scheduled_for_date, QueueItem.id)
        rows = (await session.execute(query)).all()
        generations = await self.latest_generations(session, (article.id for _, article in rows))
        return [(item, article, generations.get(article.id)) for item, article in rows]

    async def _clear_schedule(self, session: AsyncSession, article: Article) -> None:
        await session.execute(delete(QueueItem).where(QueueItem.article_id == article.id))
        await session.execute(
            delete(ArticleGeneration).where(
                ArticleGeneration.article_id == article.id,
                ArticleGeneration.status == GenerationStatus.SCHEDULED.value,
            )
        )
        if article.status in {s.value for s in SCHEDULED_STATUSES}:
            article.status = ArticleStatus.IDEA.value

    async def remove_queue_item(self, session: AsyncSession, queue_item_id: int, user_id: str) -> Article:
        result = await session.execute(
            select(QueueItem)
            .join(Project, QueueItem.project_id == Project.id)
            .where(QueueItem.id == queue_item_id, Project.user_id == user_id)
        )
        item = result.scalar_one_or_none()
        if not item:
            raise NotFoundException("Queue item not found")
        article = await session.get(Article, item.article_id)
        await self._clear_schedule(session, article)
        await session.flush()
        metrics_collector.record_workflow_event("generation_unscheduled")
        return article

    async def cancel_schedule(self, session: AsyncSession, article: Article) -> Article:
        if article.status not in {s.value for s in SCHEDULED_STATUSES}:
            raise ConflictException("Only scheduled articles can be unscheduled")
        await self._clear_schedule(session, article)
        await session.flush()
        metrics_collector.record_workflow_event("generation_unscheduled")
        return article

    def ensure_runnable_now(self, article: Article) -> None:
        if article.status not in {s.value for s in SCHEDULED_STATUSES}:
            raise ConflictException("Only scheduled articles can be run now")

    # Publishing

    async def publish(
        self, session: AsyncSession, article: Article, content: Optional[str] = None
    ) -> Tuple[Article, Optional[WebhookDelivery]]:
        if article.status != ArticleStatus.WAIT_FOR_PUBLISH.value:
            raise ConflictException("Only articles waiting for publish can be published")
        delivery = await self._mark_published(session, article, content)
        await session.flush()
        return article, delivery

    async def _mark_published(
        self, session: AsyncSession, article: Article, content: Optional[str] = None
    ) -> Optional[WebhookDelivery]:
        now = utcnow()
        article.status = ArticleStatus.PUBLISHED.value
        article.published_at = now
        article.publish_scheduled_at = None
        if content:
            article.content = content
        elif not article.content:
            article.content = article.draft
        metrics_collector.record_workflow_event("published")
        logger.info("Article published", article_id=article.id)

        project = await session.get(Project, article.project_id)
        return self.record_webhook(session, project, article)

    def record_webhook(
        self, session: AsyncSession, project: Optional[Project], article: Article
    ) -> Optional[WebhookDelivery]:
        if project is None or not project.webhook_enabled or not project.webhook_url:
            return None
        delivery = WebhookDelivery(
            article_id=article.id,
            project_id=project.id,
            webhook_url=project.webhook_url,
            event_type="article.published",
            status="pending",
            attempts=0,
            request_payload={
                "event": "article.published",
                "projectId": project.id,
                "article": {
                    "id": article.id,
                    "title": article.title,
                    "slug": article.slug,
                    "metaDescription": article.meta_description,
                    "content": article.content,
                    "coverImageUrl": article.cover_image_url,
                    "publishedAt": ensure_aware(article.published_at).isoformat()
                    if article.published_at else None,
                },
            },
        )
        session.add(delivery)
        return delivery

    async def schedule_publishing(self, session: AsyncSession, article: Article, publish_at: datetime) -> Article:
        publish_at = ensure_aware(publish_at)
        if article.status != ArticleStatus.WAIT_FOR_PUBLISH.value:
            raise ConflictException("Only articles waiting for publish can be scheduled for publishing")
        if is_in_past(publish_at):
            raise ValidationException("Publish date must be in the future")
        article.publish_scheduled_at = publish_at
        await session.flush()
        metrics_collector.record_workflow_event("publish_scheduled")
        return article

    async def cancel_publish_schedule(self, session: AsyncSession, article: Article) -> Article:
        if article.publish_scheduled_at is None:
            raise ValidationException("Article has no scheduled publish date")
        article.publish_scheduled_at = None
        await session.flush()
        metrics_collector.record_workflow_event("publish_unscheduled")
        return article

    # Periodic work

    async def publish_due_articles(
        self, session: AsyncSession, now: Optional[datetime] = None
    ) -> Tuple[List[int], List[int]]:
        """Publish every article whose publish date has passed; returns (article ids, webhook delivery ids)."""
        now = now or utcnow()
        result = await session.execute(
            select(Article).where(
                Article.status == ArticleStatus.WAIT_FOR_PUBLISH.value,
                Article.publish_scheduled_at.is_not(None),
                Article.publish_scheduled_at <= now,
            )
        )
        published, deliveries = [], []
        for article in result.scalars().all():
            delivery = await self._mark_published(session, article)
            await session.flush()
            published.append(article.id)
            if delivery is not None:
                deliveries.append(delivery.id)
        await session.commit()
        return published, deliveries

    async def claim_due_queue_items(
        self, session: AsyncSession, now: Optional[datetime] = None
    ) -> List[Tuple[int, int]]:
        """
        Move due queue entries to processing and reset their snapshots.

        Returns ``(queue item id, generation id)`` pairs ready for dispatch.
        """
        now = now or utcnow()
        result = await session.execute(
            select(QueueItem)
            .where(
                QueueItem.status == QueueStatus.QUEUED.value,
                QueueItem.scheduled_for_date <= now,
            )
            .order_by(QueueItem.scheduled_for_date, QueueItem.id)
        )
        claimed = []
        for item in result.scalars().all():
            article = await session.get(Article, item.article_id)
            if article is None:
                item.status = QueueStatus.FAILED.value
                item.error_message = "Article not found"
                item.processed_at = now
                continue
            if article.status == ArticleStatus.GENERATING.value:
                # A manual run already started; the entry is consumed by it
                item.status = QueueStatus.PROCESSING.value
                item.processed_at = now
                logger.info("Queue item skipped, article already generating", queue_item_id=item.id)
                continue
            generation = await self.begin_generation(session, article, force=True)
            item.status = QueueStatus.PROCESSING.value
            item.attempts = (item.attempts or 0) + 1
            item.processed_at = now
            claimed.append((item.id, generation.id))
        await session.commit()
        return claimed


article_service = ArticleService()


async def _load_run(session: AsyncSession, generation_id: int) -> Tuple[ArticleGeneration, Article]:
    generation = await session.get(ArticleGeneration, generation_id)
    if generation is None:
        raise NotFoundException("Generation not found")
    article = await session.get(Article, generation.article_id)
    if article is None:
        raise NotFoundException("Article not found")
    return generation, article


async def _mark_run_failed(
    session: AsyncSession, generation: ArticleGeneration, article: Article, error: str
) -> None:
    generation.status = GenerationStatus.FAILED.value
    generation.error = error
    generation.error_details = {
        "timestamp": utcnow().isoformat(),
        "articleId": article.id,
        "originalStatus": article.status,
    }
    if article.status == ArticleStatus.GENERATING.value:
        article.status = ArticleStatus.FAILED.value
    metrics_collector.record_workflow_event("generation_failed")


async def dispatch_generation(
    session_factory: async_sessionmaker,
    client: GenerationServiceClient,
    generation_id: int,
    queue_item_id: Optional[int] = None,
) -> bool:
    """
    Hand a prepared run to the generation service.

    Runs after the request (or task) that prepared it has committed. A
    failed call marks the run failed; queued runs instead go back to the
    queue until they exhaust their attempts.
    """
    async with session_factory() as session:
        generation, article = await _load_run(session, generation_id)
        keywords = list(article.keywords or []) or [article.title]
        try:
            response = await client.start_generation(
                generation_id=generation.id,
                article_id=article.id,
                user_id=article.user_id,
                project_id=article.project_id,
                title=article.title,
                keywords=keywords,
                description=article.description,
                notes=article.notes,
                target_audience=article.target_audience,
            )
        except ExternalServiceException as e:
            metrics_collector.record_generation_dispatch("start", "failed")
            item = await session.get(QueueItem, queue_item_id) if queue_item_id else None
            if item is not None and item.attempts < item.max_attempts:
                item.status = QueueStatus.QUEUED.value
                item.error_message = e.message
                article.status = ArticleStatus.SCHEDULED.value
                generation.status = GenerationStatus.SCHEDULED.value
                logger.warning(
                    "Queued generation failed; will retry",
                    article_id=article.id,
                    attempts=item.attempts,
                )
            else:
                if item is not None:
                    item.status = QueueStatus.FAILED.value
                    item.error_message = e.message
                await _mark_run_failed(session, generation, article, e.message)
                logger.error("Generation dispatch failed", article_id=article.id, error=e.message)
            await session.commit()
            return False

        generation.task_id = str(response.get("taskId") or response.get("id") or "") or None
        await session.commit()
        metrics_collector.record_generation_dispatch("start", "success")
        return True


async def dispatch_continuation(
    session_factory: async_sessionmaker,
    client: GenerationServiceClient,
    generation_id: int,
    phase: str,
) -> bool:
    """Resume a retried run from ``phase``."""
    async with session_factory() as session:
        generation, article = await _load_run(session, generation_id)
        try:
            await client.continue_generation(generation_id, phase)
        except ExternalServiceException as e:
            metrics_collector.record_generation_dispatch("continue", "failed")
            await _mark_run_failed(session, generation, article, e.message)
            await session.commit()
            logger.error("Generation retry dispatch failed", article_id=article.id, error=e.message)
            return False
        metrics_collector.record_generation_dispatch("continue", "success")
        return True
