"""
Test status parsing, derivation and transition rules.
"""
import pytest

from app.core.statuses import (
    ArticleStatus,
    DisplayStatus,
    GenerationPhase,
    QueueStatus,
    board_event_config,
    derive_generation_phase,
    derive_queue_status,
    display_status,
    is_draggable,
    is_valid_transition,
    parse_article_status,
    parse_generation_status,
    phase_label,
    reconcile_article_status,
)


class TestParsing:
    def test_known_values(self):
        assert parse_article_status("wait_for_publish") == ArticleStatus.WAIT_FOR_PUBLISH
        assert parse_generation_status("quality-control").value == "quality-control"

    def test_unknown_values(self):
        assert parse_article_status("archived") is None
        assert parse_article_status(None) is None
        assert parse_generation_status("thinking") is None


class TestGenerationPhase:
    @pytest.mark.parametrize(
        "status,phase",
        [
            ("research", GenerationPhase.RESEARCH),
            ("writing", GenerationPhase.WRITING),
            ("quality-control", GenerationPhase.QUALITY_CONTROL),
            ("validating", GenerationPhase.VALIDATION),
            ("updating", GenerationPhase.OPTIMIZATION),
            ("completed", None),
            ("pending", None),
            (None, None),
        ],
    )
    def test_phase_from_snapshot_status(self, status, phase):
        assert derive_generation_phase(status) == phase

    def test_labels(self):
        assert phase_label(GenerationPhase.WRITING) == "Writing"
        assert phase_label(None) is None


class TestDisplay:
    def test_display_status(self):
        assert display_status(ArticleStatus.SCHEDULED) == DisplayStatus.IDEA
        assert display_status(ArticleStatus.WAIT_FOR_PUBLISH) == DisplayStatus.GENERATED
        assert display_status(ArticleStatus.PUBLISHED) == DisplayStatus.PUBLISHED

    def test_draggable(self):
        assert is_draggable(ArticleStatus.IDEA)
        assert not is_draggable(ArticleStatus.GENERATING)


class TestTransitions:
    def test_allowed(self):
        assert is_valid_transition(ArticleStatus.IDEA, ArticleStatus.SCHEDULED)
        assert is_valid_transition(ArticleStatus.WAIT_FOR_PUBLISH, ArticleStatus.PUBLISHED)

    def test_rejected(self):
        assert not is_valid_transition(ArticleStatus.IDEA, ArticleStatus.PUBLISHED)
        assert not is_valid_transition(ArticleStatus.PUBLISHED, ArticleStatus.IDEA)


class TestBoardEventConfig:
    def test_ideas_are_queued(self):
        config = board_event_config("scheduled")
        assert config.kind == "queued"
        assert config.priority == 1

    def test_publish_schedule_changes_kind(self):
        assert board_event_config("wait_for_publish", has_schedule=True).kind == "publishScheduled"
        assert board_event_config("wait_for_publish").kind == "readyToPublish"

    def test_unknown_status(self):
        config = board_event_config("archived")
        assert config.kind == "unknown"
        assert config.priority == 10


class TestReconcile:
    def test_finished_snapshot_corrects_status(self):
        assert reconcile_article_status("generating", "completed", 100) == "wait_for_publish"
        assert reconcile_article_status("scheduled", "completed", 100) == "wait_for_publish"

    def test_partial_progress_is_left_alone(self):
        assert reconcile_article_status("generating", "completed", 90) == "generating"
        assert reconcile_article_status("generating", "writing", 100) == "generating"

    def test_published_is_never_downgraded(self):
        assert reconcile_article_status("published", "completed", 100) == "published"


class TestQueueStatus:
    def test_snapshot_wins_over_stored(self):
        assert derive_queue_status("generating", "writing", "queued") == QueueStatus.PROCESSING
        assert derive_queue_status("failed", "failed", "processing") == QueueStatus.FAILED
        assert derive_queue_status("published", None, "processing") == QueueStatus.COMPLETED

    def test_falls_back_to_stored(self):
        assert derive_queue_status("scheduled", "scheduled", "queued") == QueueStatus.QUEUED
        assert derive_queue_status("generating", "pending", "processing") == QueueStatus.PROCESSING
