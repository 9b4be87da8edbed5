"""
Week board reconciliation.

Queue items and articles both produce events on the week board. An article
appears at most once per day: when several events exist for it, the one
with the lowest priority number wins.
"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Union

from pydantic import Field

from app.core.statuses import (
    ArticleStatus,
    BoardEventConfig,
    QueueStatus,
    board_event_config,
)
from app.schemas.common import CamelModel
from app.utils.dates import ensure_aware, utcnow
from app.workflow.models import QueueEntry, WorkflowArticle

QueueItem = QueueEntry

QUEUE_EVENT_PRIORITY = 1

# Articles in these statuses are drawn through their queue item while it is queued
_QUEUE_OWNED_STATUSES = (ArticleStatus.IDEA.value, ArticleStatus.SCHEDULED.value)


class BoardEvent(CamelModel):
    kind: str
    key: str
    date: datetime
    article_id: int
    title: str
    priority: int
    overdue: bool = False
    config: Optional[BoardEventConfig] = None
    queue_item_id: Optional[int] = None


class BoardDay(CamelModel):
    day: date
    events: List[BoardEvent] = Field(default_factory=list)


def resolve_display_date(
    article: WorkflowArticle, queue_item: Optional[QueueItem] = None
) -> Optional[datetime]:
    """Column date for an article: publish schedule, then publish date, then queue date, then creation."""
    for candidate in (
        article.publish_scheduled_at,
        article.published_at,
        queue_item.scheduled_for_date if queue_item else None,
        article.created_at,
    ):
        if candidate is not None:
            return ensure_aware(candidate)
    return None


def _by_id(articles: Iterable[WorkflowArticle]) -> Dict[int, WorkflowArticle]:
    return {a.id: a for a in articles}


def build_queue_events(
    queue_items: Iterable[QueueItem],
    articles: Iterable[WorkflowArticle],
    now: Optional[datetime] = None,
) -> List[BoardEvent]:
    now = ensure_aware(now) if now else utcnow()
    articles_by_id = _by_id(articles)
    events = []
    for item in queue_items:
        if item.status != QueueStatus.QUEUED.value:
            continue
        article = articles_by_id.get(item.article_id)
        if article is None:
            continue
        when = resolve_display_date(article, item)
        if when is None:
            continue
        events.append(
            BoardEvent(
                kind="queued",
                key=f"q-{item.id}",
                date=when,
                article_id=article.id,
                title=article.title,
                priority=QUEUE_EVENT_PRIORITY,
                overdue=when < now,
                queue_item_id=item.id,
            )
        )
    return events


def build_article_events(
    articles: Iterable[WorkflowArticle],
    queue_items: Iterable[QueueItem] = (),
) -> List[BoardEvent]:
    queue_by_article = {q.article_id: q for q in queue_items}
    events = []
    for article in articles:
        queue_item = queue_by_article.get(article.id)
        if (
            queue_item is not None
            and queue_item.status == QueueStatus.QUEUED.value
            and article.status in _QUEUE_OWNED_STATUSES
        ):
            continue

        when = resolve_display_date(article, queue_item)
        if when is None:
            continue

        config = board_event_config(article.status, article.publish_scheduled_at is not None)
        events.append(
            BoardEvent(
                kind="article",
                key=f"art-{article.id}",
                date=when,
                article_id=article.id,
                title=article.title,
                priority=config.priority,
                config=config,
            )
        )
    return events


def events_for_day(
    day: Union[date, datetime],
    articles: List[WorkflowArticle],
    queue_items: List[QueueItem],
    now: Optional[datetime] = None,
) -> List[BoardEvent]:
    """Events drawn in one day column, one per article, ordered by time."""
    if isinstance(day, datetime):
        day = ensure_aware(day).date()

    candidates = build_queue_events(queue_items, articles, now) + build_article_events(articles, queue_items)
    best: Dict[int, BoardEvent] = {}
    for event in candidates:
        if event.date.date() != day:
            continue
        current = best.get(event.article_id)
        if current is None or event.priority < current.priority:
            best[event.article_id] = event

    return sorted(best.values(), key=lambda e: e.date)


def week_days(anchor: Union[date, datetime]) -> List[date]:
    """Monday to Sunday of the week containing ``anchor``."""
    if isinstance(anchor, datetime):
        anchor = ensure_aware(anchor).date()
    monday = anchor - timedelta(days=anchor.weekday())
    return [monday + timedelta(days=offset) for offset in range(7)]


def build_week(
    anchor: Union[date, datetime],
    articles: List[WorkflowArticle],
    queue_items: List[QueueItem],
    now: Optional[datetime] = None,
) -> List[BoardDay]:
    now = ensure_aware(now) if now else utcnow()
    return [
        BoardDay(day=day, events=events_for_day(day, articles, queue_items, now))
        for day in week_days(anchor)
    ]
