"""
Local state of the workflow dashboard.

WorkflowArticles keeps the list of articles for the selected project,
exposes the dashboard partitions and wraps every workflow action: one API
call, then a local patch on success, or a notification and a refetch on
failure. Failed actions are never retried automatically.
"""
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

from pydantic.alias_generators import to_camel

from app.core.logging import get_logger
from app.core.statuses import ArticleStatus
from app.utils.dates import ensure_aware, utcnow
from app.workflow.api_client import WorkflowApiClient, WorkflowApiError
from app.workflow.models import WorkflowArticle, normalize_article

logger = get_logger(__name__)

# Written by any dashboard instance after a status change so the others refetch
STORAGE_SYNC_KEY = "articleStatusChanged"

_SCHEDULE_STATUSES = (ArticleStatus.SCHEDULED.value, ArticleStatus.TO_GENERATE.value)


class Notifier(Protocol):
    def success(self, title: str, description: Optional[str] = None) -> None: ...

    def error(self, title: str, description: Optional[str] = None) -> None: ...


class LogNotifier:
    """Notifier that writes user-facing messages to the structured log."""

    def success(self, title: str, description: Optional[str] = None) -> None:
        logger.info(title, description=description, notification="success")

    def error(self, title: str, description: Optional[str] = None) -> None:
        logger.warning(title, description=description, notification="error")


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


class WorkflowArticles:
    """Article list, partitions and actions for one project."""

    def __init__(
        self,
        client: WorkflowApiClient,
        notifier: Optional[Notifier] = None,
        project_id: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.notifier = notifier or LogNotifier()
        self.project_id = project_id if project_id is not None else client.project_id
        self.clock = clock
        self.articles: List[WorkflowArticle] = []
        self.loading = False
        self.error: Optional[str] = None

    # State

    async def fetch(self) -> None:
        """Reload the board. On failure the previous list is kept and ``error`` is set."""
        if self.project_id is None:
            self.articles = []
            self.loading = False
            return

        self.loading = True
        try:
            columns = await self.client.get_board(self.project_id)
            articles = []
            for column in columns or []:
                for row in column.get("articles", []):
                    articles.append(normalize_article(row))
            self.articles = articles
            self.error = None
        except WorkflowApiError as e:
            logger.warning("Failed to load articles", status_code=e.status_code, error=e.message)
            self.error = "Failed to load articles"
        finally:
            self.loading = False

    refetch = fetch

    def get(self, article_id: int) -> Optional[WorkflowArticle]:
        for article in self.articles:
            if article.id == article_id:
                return article
        return None

    def _patch(self, article_id: int, **changes: Any) -> None:
        changes = {k: v for k, v in changes.items() if k in WorkflowArticle.model_fields}
        self.articles = [
            a.model_copy(update=changes) if a.id == article_id else a
            for a in self.articles
        ]

    def _remove(self, article_id: int) -> None:
        self.articles = [a for a in self.articles if a.id != article_id]

    def apply_progress(self, article_id: int, progress: int, phase: Any) -> None:
        """Merge a polled progress update into local state."""
        self._patch(
            article_id,
            generation_progress=max(0, min(100, int(progress or 0))),
            generation_phase=phase,
        )

    # Partitions

    @property
    def planning(self) -> List[WorkflowArticle]:
        return [
            a for a in self.articles
            if a.status == ArticleStatus.IDEA.value
            or (a.status in _SCHEDULE_STATUSES and a.generation_scheduled_at is None)
        ]

    @property
    def generations(self) -> List[WorkflowArticle]:
        return [
            a for a in self.articles
            if a.status == ArticleStatus.GENERATING.value
            or (a.status in _SCHEDULE_STATUSES and a.generation_scheduled_at is not None)
            or bool(a.generation_error)
        ]

    @property
    def publishing(self) -> List[WorkflowArticle]:
        return [
            a for a in self.articles
            if a.status in (ArticleStatus.WAIT_FOR_PUBLISH.value, ArticleStatus.PUBLISHED.value)
            or (
                a.generation_progress == 100
                and a.generation_phase is None
                and not a.generation_error
            )
        ]

    @property
    def generating(self) -> List[WorkflowArticle]:
        return [a for a in self.articles if a.status == ArticleStatus.GENERATING.value]

    # Cross-instance sync

    async def handle_storage_event(self, key: Optional[str], new_value: Optional[str]) -> bool:
        """Refetch when another dashboard instance signalled a status change."""
        if key == STORAGE_SYNC_KEY and new_value:
            await self.fetch()
            return True
        return False

    # Actions

    def _require_project(self) -> bool:
        if self.project_id is None:
            self.notifier.error("No project selected", "Please select a project first.")
            return False
        return True

    def _reject_past(self, when: datetime) -> bool:
        if ensure_aware(when) < self.clock():
            self.notifier.error("Cannot schedule in the past")
            return True
        return False

    async def _act(
        self,
        failure_title: str,
        call: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], None],
    ) -> bool:
        if not self._require_project():
            return False
        try:
            result = await call()
        except WorkflowApiError as e:
            logger.warning(failure_title, status_code=e.status_code, error=e.message)
            self.notifier.error(failure_title, e.message or "Please try again or check your connection.")
            self.error = failure_title
            await self.fetch()
            return False
        on_success(result)
        return True

    def _title(self, article_id: int) -> Optional[str]:
        article = self.get(article_id)
        return article.title if article else None

    async def create(
        self,
        title: str,
        keywords: Optional[List[str]] = None,
        description: Optional[str] = None,
        target_audience: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        payload = {
            "title": title,
            "projectId": self.project_id,
            "keywords": keywords or [],
            "description": description,
            "targetAudience": target_audience,
            "notes": notes,
        }

        def added(data: Dict[str, Any]) -> None:
            self.articles = self.articles + [normalize_article(data)]
            self.notifier.success(
                "Article idea created successfully!",
                f'"{title}" has been added to your planning phase.',
            )

        return await self._act("Failed to create article", lambda: self.client.create_article(payload), added)

    async def update(self, article_id: int, **updates: Any) -> bool:
        body = {
            to_camel(key): (ensure_aware(value).isoformat() if isinstance(value, datetime) else value)
            for key, value in updates.items()
        }
        return await self._act(
            "Failed to update article",
            lambda: self.client.update_article(article_id, body),
            lambda _: self._patch(article_id, **updates),
        )

    async def delete(self, article_id: int) -> bool:
        title = self._title(article_id)

        def removed(_: Any) -> None:
            self._remove(article_id)
            self.notifier.success(
                "Article deleted successfully!",
                f'"{title}" has been removed.' if title else None,
            )

        return await self._act("Failed to delete article", lambda: self.client.delete_article(article_id), removed)

    async def generate(self, article_id: int) -> bool:
        title = self._title(article_id)

        def started(_: Any) -> None:
            self._patch(
                article_id,
                status=ArticleStatus.GENERATING.value,
                generation_progress=0,
                generation_error=None,
            )
            self.notifier.success(
                "Article generation started!",
                f'Generating "{title}"...' if title else "Your article is being generated.",
            )

        return await self._act("Failed to start article generation", lambda: self.client.generate(article_id), started)

    async def run_now(self, article_id: int) -> bool:
        return await self._act(
            "Failed to start article generation",
            lambda: self.client.run_now(article_id),
            lambda _: self._patch(
                article_id,
                status=ArticleStatus.GENERATING.value,
                generation_progress=0,
                generation_scheduled_at=None,
            ),
        )

    async def retry(self, article_id: int) -> bool:
        return await self._act(
            "Failed to retry article generation",
            lambda: self.client.retry(article_id),
            lambda _: self._patch(
                article_id,
                status=ArticleStatus.GENERATING.value,
                generation_progress=0,
                generation_error=None,
            ),
        )

    async def schedule_generation(self, article_id: int, when: datetime) -> bool:
        if self._reject_past(when):
            return False
        return await self._act(
            "Failed to schedule generation",
            lambda: self.client.schedule_generation(article_id, when),
            lambda _: self._patch(
                article_id,
                status=ArticleStatus.SCHEDULED.value,
                generation_scheduled_at=ensure_aware(when),
            ),
        )

    async def cancel_schedule(self, article_id: int) -> bool:
        return await self._act(
            "Failed to cancel schedule",
            lambda: self.client.cancel_schedule(article_id),
            lambda _: self._patch(
                article_id,
                status=ArticleStatus.IDEA.value,
                generation_scheduled_at=None,
            ),
        )

    async def publish(self, article_id: int) -> bool:
        title = self._title(article_id)

        def published(_: Any) -> None:
            self._patch(
                article_id,
                status=ArticleStatus.PUBLISHED.value,
                published_at=self.clock(),
                publish_scheduled_at=None,
            )
            self.notifier.success(
                "Article published successfully!",
                f'"{title}" is now live.' if title else "Your article is now live.",
            )

        return await self._act("Failed to publish article", lambda: self.client.publish(article_id), published)

    async def schedule_publishing(self, article_id: int, when: datetime) -> bool:
        if self._reject_past(when):
            return False
        return await self._act(
            "Failed to schedule publishing",
            lambda: self.client.schedule_publishing(article_id, when),
            lambda _: self._patch(article_id, publish_scheduled_at=ensure_aware(when)),
        )

    async def cancel_publish_schedule(self, article_id: int) -> bool:
        return await self._act(
            "Failed to cancel publishing schedule",
            lambda: self.client.cancel_publish_schedule(article_id),
            lambda _: self._patch(
                article_id,
                publish_scheduled_at=None,
                status=ArticleStatus.WAIT_FOR_PUBLISH.value,
            ),
        )

    # Bulk actions run sequentially and report the number requested

    async def bulk_generate(self, article_ids: Iterable[int]) -> int:
        ids = list(article_ids)
        succeeded = sum([await self.generate(i) for i in ids])
        self.notifier.success(
            f"Started generating {len(ids)} article{_plural(len(ids))}!",
            "Check the Generations tab to monitor progress.",
        )
        return succeeded

    async def bulk_publish(self, article_ids: Iterable[int]) -> int:
        ids = list(article_ids)
        succeeded = sum([await self.publish(i) for i in ids])
        self.notifier.success(
            f"Published {len(ids)} article{_plural(len(ids))}!",
            "All selected articles are now live.",
        )
        return succeeded

    async def bulk_schedule_publishing(self, article_ids: Iterable[int], when: datetime) -> int:
        ids = list(article_ids)
        if self._reject_past(when):
            return 0
        succeeded = sum([await self.schedule_publishing(i, when) for i in ids])
        self.notifier.success(f"Scheduled {len(ids)} article{_plural(len(ids))} for publishing!")
        return succeeded
