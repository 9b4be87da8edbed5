"""
Tests for database models and schemas.
"""
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from app.models import Article, ArticleGeneration, Project, QueueItem
from app.schemas import (
    ArticleCreate,
    ArticleResponse,
    ArticleUpdate,
    MoveArticleRequest,
    ScheduleGenerationRequest,
)


class TestModelInstantiation:
    """Test that models can be instantiated correctly."""

    def test_article_model_creation(self):
        """Test Article model instantiation."""
        article = Article(project_id=1, title="Hello", status="idea", keywords=["a"])

        assert article.title == "Hello"
        assert article.article_status.value == "idea"
        assert article.keywords == ["a"]

    def test_queue_item_model_creation(self):
        """Test QueueItem model instantiation."""
        when = datetime(2030, 1, 1, tzinfo=timezone.utc)
        item = QueueItem(article_id=1, project_id=1, scheduled_for_date=when, status="queued")

        assert item.scheduled_for_date == when
        assert item.status == "queued"


class TestModelDefaults:
    """Column defaults applied on insert."""

    @pytest.mark.asyncio
    async def test_article_defaults(self, session, project):
        article = Article(project_id=project.id, user_id=project.user_id, title="Defaults")
        session.add(article)
        await session.commit()

        assert article.status == "idea"
        assert article.keywords == []
        assert article.kanban_position == 0
        assert article.views == 0
        assert article.created_at is not None

    @pytest.mark.asyncio
    async def test_generation_defaults(self, session, project):
        article = Article(project_id=project.id, user_id=project.user_id, title="Snap")
        session.add(article)
        await session.flush()
        generation = ArticleGeneration(article_id=article.id, project_id=project.id)
        session.add(generation)
        await session.commit()

        assert generation.status == "pending"
        assert generation.progress == 0
        assert generation.artifacts == {}

    @pytest.mark.asyncio
    async def test_project_webhook_disabled_by_default(self, session, user):
        project = Project(user_id=user.id, name="Site")
        session.add(project)
        await session.commit()

        assert project.webhook_enabled is False


class TestSchemaValidation:
    """Test Pydantic schema validation."""

    def test_article_create_camel_case(self):
        request = ArticleCreate.model_validate({"title": "T", "targetAudience": "devs", "projectId": 2})
        assert request.target_audience == "devs"
        assert request.project_id == 2
        assert request.keywords == []

    def test_article_create_title_required(self):
        with pytest.raises(ValidationError):
            ArticleCreate(title="")
        with pytest.raises(ValidationError):
            ArticleCreate(title="x" * 256)

    def test_article_update_tracks_set_fields(self):
        update = ArticleUpdate.model_validate({"draft": None})
        assert update.model_dump(exclude_unset=True) == {"draft": None}

    def test_article_response_normalizes_naive_datetimes(self):
        article = Article(
            id=1,
            project_id=1,
            title="T",
            status="published",
            keywords=None,
            kanban_position=0,
            views=0,
            clicks=0,
            created_at=datetime(2024, 1, 1, 12, 0),
        )
        response = ArticleResponse.model_validate(article)
        assert response.created_at.tzinfo is not None
        assert response.keywords == []
        assert response.model_dump(by_alias=True)["createdAt"] == response.created_at

    def test_move_request_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            MoveArticleRequest(article_id=1, new_status="archived")

    def test_schedule_request_aliases(self):
        request = ScheduleGenerationRequest.model_validate(
            {"articleId": 3, "scheduledForDate": "2030-05-01T10:00:00Z"}
        )
        assert request.article_id == 3
        assert request.scheduled_for_date.tzinfo is not None
