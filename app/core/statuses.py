"""
Article, generation and queue status types.

All status strings used across the API, the background tasks and the
workflow client come from the enums in this module.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class ArticleStatus(str, Enum):
    IDEA = "idea"
    SCHEDULED = "scheduled"
    TO_GENERATE = "to_generate"
    GENERATING = "generating"
    WAIT_FOR_PUBLISH = "wait_for_publish"
    PUBLISHED = "published"
    FAILED = "failed"
    DELETED = "deleted"


class GenerationStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    RESEARCH = "research"
    IMAGE = "image"
    WRITING = "writing"
    QUALITY_CONTROL = "quality-control"
    VALIDATING = "validating"
    UPDATING = "updating"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationPhase(str, Enum):
    RESEARCH = "research"
    WRITING = "writing"
    QUALITY_CONTROL = "quality-control"
    VALIDATION = "validation"
    OPTIMIZATION = "optimization"


class DisplayStatus(str, Enum):
    IDEA = "idea"
    GENERATED = "generated"
    PUBLISHED = "published"


# Statuses that mean "waiting for generation to start"
SCHEDULED_STATUSES: FrozenSet[ArticleStatus] = frozenset(
    {ArticleStatus.SCHEDULED, ArticleStatus.TO_GENERATE}
)

TERMINAL_GENERATION_STATUSES: FrozenSet[GenerationStatus] = frozenset(
    {GenerationStatus.COMPLETED, GenerationStatus.FAILED}
)

IN_PROGRESS_GENERATION_STATUSES: FrozenSet[GenerationStatus] = frozenset(
    {
        GenerationStatus.RESEARCH,
        GenerationStatus.IMAGE,
        GenerationStatus.WRITING,
        GenerationStatus.QUALITY_CONTROL,
        GenerationStatus.VALIDATING,
        GenerationStatus.UPDATING,
    }
)

PHASE_LABELS: Dict[GenerationPhase, str] = {
    GenerationPhase.RESEARCH: "Research",
    GenerationPhase.WRITING: "Writing",
    GenerationPhase.QUALITY_CONTROL: "Quality control",
    GenerationPhase.VALIDATION: "Validation",
    GenerationPhase.OPTIMIZATION: "Optimization",
}

_PHASE_BY_GENERATION_STATUS: Dict[GenerationStatus, Optional[GenerationPhase]] = {
    GenerationStatus.PENDING: None,
    GenerationStatus.SCHEDULED: None,
    GenerationStatus.RESEARCH: GenerationPhase.RESEARCH,
    GenerationStatus.IMAGE: GenerationPhase.OPTIMIZATION,
    GenerationStatus.WRITING: GenerationPhase.WRITING,
    GenerationStatus.QUALITY_CONTROL: GenerationPhase.QUALITY_CONTROL,
    GenerationStatus.VALIDATING: GenerationPhase.VALIDATION,
    GenerationStatus.UPDATING: GenerationPhase.OPTIMIZATION,
    GenerationStatus.COMPLETED: None,
    GenerationStatus.FAILED: None,
}

_DISPLAY_STATUS: Dict[ArticleStatus, DisplayStatus] = {
    ArticleStatus.IDEA: DisplayStatus.IDEA,
    ArticleStatus.SCHEDULED: DisplayStatus.IDEA,
    ArticleStatus.TO_GENERATE: DisplayStatus.IDEA,
    ArticleStatus.GENERATING: DisplayStatus.IDEA,
    ArticleStatus.FAILED: DisplayStatus.IDEA,
    ArticleStatus.DELETED: DisplayStatus.IDEA,
    ArticleStatus.WAIT_FOR_PUBLISH: DisplayStatus.GENERATED,
    ArticleStatus.PUBLISHED: DisplayStatus.PUBLISHED,
}

# Kanban drag-and-drop flow; everything else happens through dedicated actions
STATUS_FLOW: Dict[ArticleStatus, FrozenSet[ArticleStatus]] = {
    ArticleStatus.IDEA: frozenset({ArticleStatus.TO_GENERATE, ArticleStatus.SCHEDULED}),
    ArticleStatus.SCHEDULED: frozenset({ArticleStatus.IDEA, ArticleStatus.GENERATING}),
    ArticleStatus.TO_GENERATE: frozenset({ArticleStatus.IDEA, ArticleStatus.GENERATING}),
    ArticleStatus.GENERATING: frozenset({ArticleStatus.WAIT_FOR_PUBLISH, ArticleStatus.FAILED}),
    ArticleStatus.WAIT_FOR_PUBLISH: frozenset({ArticleStatus.PUBLISHED}),
    ArticleStatus.PUBLISHED: frozenset(),
    ArticleStatus.FAILED: frozenset({ArticleStatus.IDEA}),
    ArticleStatus.DELETED: frozenset(),
}


def parse_article_status(value: Optional[str]) -> Optional[ArticleStatus]:
    """Return the enum member for ``value``, or None for unknown strings."""
    if value is None:
        return None
    try:
        return ArticleStatus(value)
    except ValueError:
        return None


def parse_generation_status(value: Optional[str]) -> Optional[GenerationStatus]:
    if value is None:
        return None
    try:
        return GenerationStatus(value)
    except ValueError:
        return None


def derive_generation_phase(generation_status: Optional[str]) -> Optional[GenerationPhase]:
    """Map a pipeline status onto the phase shown to users."""
    status = parse_generation_status(generation_status)
    if status is None:
        return None
    return _PHASE_BY_GENERATION_STATUS[status]


def phase_label(phase: Optional[GenerationPhase]) -> Optional[str]:
    if phase is None:
        return None
    return PHASE_LABELS[GenerationPhase(phase)]


def display_status(status: ArticleStatus) -> DisplayStatus:
    return _DISPLAY_STATUS[ArticleStatus(status)]


def is_valid_transition(current: ArticleStatus, target: ArticleStatus) -> bool:
    return ArticleStatus(target) in STATUS_FLOW[ArticleStatus(current)]


def is_draggable(status: ArticleStatus) -> bool:
    return ArticleStatus(status) in (ArticleStatus.IDEA, ArticleStatus.WAIT_FOR_PUBLISH)


@dataclass(frozen=True)
class BoardEventConfig:
    """How an article in a given status is drawn on the week board."""

    kind: str
    label: str
    color: str
    priority: int


_UNKNOWN_EVENT = BoardEventConfig(kind="unknown", label="Unknown", color="gray", priority=10)


def board_event_config(status: Optional[str], has_schedule: bool = False) -> BoardEventConfig:
    """
    Visual config for an article-derived board event.

    Lower priority numbers win when several events exist for one article on
    the same day.
    """
    parsed = parse_article_status(status)
    if parsed is None:
        return _UNKNOWN_EVENT

    if parsed in (ArticleStatus.IDEA, ArticleStatus.SCHEDULED, ArticleStatus.TO_GENERATE):
        return BoardEventConfig(kind="queued", label="Idea", color="blue", priority=1)
    if parsed == ArticleStatus.FAILED:
        return BoardEventConfig(kind="failed", label="Failed", color="red", priority=1)
    if parsed == ArticleStatus.GENERATING:
        return BoardEventConfig(kind="generating", label="Generating", color="card", priority=2)
    if parsed == ArticleStatus.WAIT_FOR_PUBLISH:
        if has_schedule:
            return BoardEventConfig(
                kind="publishScheduled", label="Publish scheduled", color="yellow", priority=3
            )
        return BoardEventConfig(kind="readyToPublish", label="Ready to publish", color="green", priority=3)
    if parsed == ArticleStatus.PUBLISHED:
        return BoardEventConfig(kind="published", label="Published", color="purple", priority=4)
    return _UNKNOWN_EVENT


def derive_queue_status(
    article_status: Optional[str],
    generation_status: Optional[str],
    stored: Optional[str] = None,
) -> QueueStatus:
    """
    Status shown for a queue entry.

    The article and its latest snapshot move on after the queue row is
    written, so they take precedence over the stored queue status.
    """
    generation = parse_generation_status(generation_status)
    if generation in IN_PROGRESS_GENERATION_STATUSES:
        return QueueStatus.PROCESSING
    if generation == GenerationStatus.FAILED or article_status == ArticleStatus.FAILED.value:
        return QueueStatus.FAILED
    if article_status == ArticleStatus.PUBLISHED.value or generation == GenerationStatus.COMPLETED:
        return QueueStatus.COMPLETED
    if stored in (QueueStatus.PROCESSING.value, QueueStatus.FAILED.value):
        return QueueStatus(stored)
    return QueueStatus.QUEUED


def reconcile_article_status(
    status: Optional[str],
    generation_status: Optional[str],
    generation_progress: Optional[int],
) -> Optional[str]:
    """
    Correct a stale article status against its latest snapshot.

    A finished snapshot (completed at 100%) means the article is waiting for
    publication even if the status column still says it is queued or running.
    """
    stale = (
        ArticleStatus.SCHEDULED.value,
        ArticleStatus.TO_GENERATE.value,
        ArticleStatus.GENERATING.value,
    )
    if (
        generation_status == GenerationStatus.COMPLETED.value
        and generation_progress == 100
        and status in stale
    ):
        return ArticleStatus.WAIT_FOR_PUBLISH.value
    return status
