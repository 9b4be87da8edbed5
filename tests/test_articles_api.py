"""
Test the article endpoints.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models import Article, ArticleGeneration, QueueItem, WebhookDelivery
from app.utils.dates import utcnow
from tests.helpers import make_token


class TestAuthentication:
    """Bearer token handling."""

    async def test_missing_token_is_rejected(self, client):
        response = await client.get("/v1/articles")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "unauthorized"

    async def test_expired_token_is_rejected(self, client):
        token = make_token(exp=utcnow() - timedelta(minutes=5))
        response = await client.get("/v1/articles", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    async def test_first_request_provisions_user(self, client, session):
        token = make_token(sub="new-user", email="new@example.com")
        response = await client.get("/v1/articles", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"] == []

        from app.models import User
        user = await session.get(User, "new-user")
        assert user is not None
        assert user.email == "new@example.com"


class TestCreateArticle:
    """POST /v1/articles"""

    async def test_create_idea_with_defaults(self, client, auth_headers, project):
        """A bare title becomes an idea with no keywords and no content."""
        response = await client.post(
            "/v1/articles",
            json={"title": "10 Tips for X", "projectId": project.id},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "10 Tips for X"
        assert data["keywords"] == []
        assert data["status"] == "idea"
        assert data["projectId"] == project.id

        detail = await client.get(f"/v1/articles/{data['id']}", headers=auth_headers)
        assert detail.status_code == 200
        assert detail.json()["data"]["wordCount"] == 0

    async def test_project_from_header(self, client, auth_headers, project):
        headers = dict(auth_headers, **{"X-Project-Id": str(project.id)})
        response = await client.post("/v1/articles", json={"title": "From header"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["data"]["projectId"] == project.id

    async def test_project_required(self, client, auth_headers, user):
        response = await client.post("/v1/articles", json={"title": "Orphan"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Project ID is required"

    async def test_blank_title_rejected(self, client, auth_headers, project):
        response = await client.post(
            "/v1/articles",
            json={"title": "   ", "projectId": project.id},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    async def test_foreign_project_not_found(self, client, project):
        token = make_token(sub="someone-else")
        response = await client.post(
            "/v1/articles",
            json={"title": "Sneaky", "projectId": project.id},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 404

    async def test_kanban_position_increments(self, client, auth_headers, project):
        first = await client.post("/v1/articles", json={"title": "One", "projectId": project.id}, headers=auth_headers)
        second = await client.post("/v1/articles", json={"title": "Two", "projectId": project.id}, headers=auth_headers)
        assert first.json()["data"]["kanbanPosition"] == 0
        assert second.json()["data"]["kanbanPosition"] == 1


class TestReadArticles:
    """GET /v1/articles, /board and /{id}"""

    async def test_board_groups_by_status(self, client, auth_headers, make_article):
        await make_article(title="Idea", status="idea")
        await make_article(title="Live", status="published")

        response = await client.get("/v1/articles/board", headers=auth_headers)
        assert response.status_code == 200
        columns = {c["status"]: c for c in response.json()["data"]}
        assert [a["title"] for a in columns["idea"]["articles"]] == ["Idea"]
        assert [a["title"] for a in columns["published"]["articles"]] == ["Live"]
        assert columns["generating"]["articles"] == []

    async def test_board_corrects_finished_generation(self, client, auth_headers, make_article):
        """A generating article whose snapshot finished shows as waiting for publish."""
        await make_article(
            title="Done",
            status="generating",
            generation={"status": "completed", "progress": 100},
        )

        response = await client.get("/v1/articles/board", headers=auth_headers)
        columns = {c["status"]: c for c in response.json()["data"]}
        assert columns["generating"]["articles"] == []
        row = columns["wait_for_publish"]["articles"][0]
        assert row["title"] == "Done"
        assert row["status"] == "wait_for_publish"
        assert row["generationStatus"] == "completed"
        assert row["generationProgress"] == 100

    async def test_detail_includes_seo_analysis(self, client, auth_headers, make_article):
        article = await make_article(
            title="SEO",
            status="wait_for_publish",
            keywords=["python"],
            draft="Python is great. Python is simple.",
            seo_score=60,
        )

        response = await client.get(f"/v1/articles/{article.id}", headers=auth_headers)
        data = response.json()["data"]
        assert data["wordCount"] == 6
        assert data["targetKeywords"] == ["python"]
        analysis = data["seoAnalysis"]
        assert analysis["score"] == 60
        assert analysis["keywordDensity"]["python"] == pytest.approx(2 / 6 * 100)
        assert "Improve content optimization to increase SEO score" in analysis["recommendations"]
        assert [log["phase"] for log in data["generationLogs"]] == ["writing", "optimization"]

    async def test_unknown_article_not_found(self, client, auth_headers, user):
        response = await client.get("/v1/articles/999", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_list_filters_by_project(self, client, auth_headers, make_article, project):
        await make_article(title="Mine")
        response = await client.get(f"/v1/articles?project_id={project.id + 1}", headers=auth_headers)
        assert response.json()["data"] == []


class TestUpdateArticle:
    """PUT /v1/articles/{id}"""

    async def test_draft_round_trip_syncs_snapshot(self, client, auth_headers, make_article, session):
        article = await make_article(
            status="wait_for_publish",
            draft="Old draft",
            generation={"status": "completed", "progress": 100, "artifacts": {"write": {"content": "Old draft"}}},
        )

        response = await client.put(
            f"/v1/articles/{article.id}",
            json={"draft": "New draft text"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["draft"] == "New draft text"

        fetched = await client.get(f"/v1/articles/{article.id}", headers=auth_headers)
        assert fetched.json()["data"]["draft"] == "New draft text"

        generation = (await session.execute(
            select(ArticleGeneration).where(ArticleGeneration.article_id == article.id)
        )).scalar_one()
        await session.refresh(generation)
        assert generation.draft_content == "New draft text"
        assert generation.artifacts["write"]["content"] == "New draft text"

    async def test_legacy_scheduled_at_sets_publish_date(self, client, auth_headers, make_article):
        article = await make_article(status="wait_for_publish")
        when = (utcnow() + timedelta(days=2)).replace(microsecond=0)

        response = await client.put(
            f"/v1/articles/{article.id}",
            json={"scheduledAt": when.isoformat()},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["publishScheduledAt"].startswith(when.strftime("%Y-%m-%dT%H:%M:%S"))

    async def test_deleted_article_is_gone(self, client, auth_headers, make_article):
        article = await make_article(status="deleted")

        assert (await client.get(f"/v1/articles/{article.id}", headers=auth_headers)).status_code == 404
        response = await client.put(f"/v1/articles/{article.id}", json={"title": "Back"}, headers=auth_headers)
        assert response.status_code == 410

    @pytest.mark.parametrize("field", ["title", "status", "keywords"])
    async def test_null_for_required_field_rejected(self, client, auth_headers, make_article, field):
        article = await make_article(title="Keep me", status="idea")

        response = await client.put(f"/v1/articles/{article.id}", json={field: None}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

        detail = await client.get(f"/v1/articles/{article.id}", headers=auth_headers)
        assert detail.json()["data"]["title"] == "Keep me"
        assert detail.json()["data"]["status"] == "idea"


class TestDeleteArticle:
    """DELETE /v1/articles/{id}"""

    async def test_delete_removes_article_and_queue(self, client, auth_headers, make_article, session):
        article = await make_article(status="idea")
        when = (utcnow() + timedelta(days=1)).isoformat()
        await client.post(
            "/v1/articles/generation-queue",
            json={"articleId": article.id, "scheduledForDate": when},
            headers=auth_headers,
        )

        response = await client.delete(f"/v1/articles/{article.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"id": article.id}

        assert (await session.execute(select(QueueItem))).scalars().all() == []
        assert (await client.get(f"/v1/articles/{article.id}", headers=auth_headers)).status_code == 404

    async def test_cannot_delete_while_generating(self, client, auth_headers, make_article):
        article = await make_article(status="generating")

        response = await client.delete(f"/v1/articles/{article.id}", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    async def test_already_deleted_article_is_gone(self, client, auth_headers, make_article):
        article = await make_article(status="deleted")

        response = await client.delete(f"/v1/articles/{article.id}", headers=auth_headers)
        assert response.status_code == 410
        assert response.json()["error"] == "Article is already deleted"


class TestGeneration:
    """Generate, poll and retry."""

    async def test_generate_dispatches_and_reports_status(
        self, client, auth_headers, make_article, generation_client
    ):
        article = await make_article(title="Write me", keywords=["x"])

        response = await client.post(
            "/v1/articles/generate", json={"articleId": article.id}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "generating"
        assert len(generation_client.started) == 1
        assert generation_client.started[0]["title"] == "Write me"

        status = await client.get(f"/v1/articles/{article.id}/generation-status", headers=auth_headers)
        data = status.json()["data"]
        assert data["status"] == "pending"
        assert data["progress"] == 0

    async def test_generate_twice_conflicts(self, client, auth_headers, make_article):
        article = await make_article(status="generating")
        response = await client.post(
            "/v1/articles/generate", json={"articleId": article.id}, headers=auth_headers
        )
        assert response.status_code == 409

    async def test_dispatch_failure_marks_article_failed(
        self, client, auth_headers, make_article, generation_client
    ):
        generation_client.fail = True
        article = await make_article()

        await client.post("/v1/articles/generate", json={"articleId": article.id}, headers=auth_headers)

        fetched = await client.get(f"/v1/articles/{article.id}", headers=auth_headers)
        assert fetched.json()["data"]["status"] == "failed"
        status = await client.get(f"/v1/articles/{article.id}/generation-status", headers=auth_headers)
        assert status.json()["data"]["status"] == "failed"
        assert status.json()["data"]["error"] == "Generation service unavailable"

    async def test_generation_status_reports_phase(self, client, auth_headers, make_article):
        article = await make_article(status="generating", generation={"status": "writing", "progress": 45})

        response = await client.get(f"/v1/articles/{article.id}/generation-status", headers=auth_headers)
        data = response.json()["data"]
        assert data["progress"] == 45
        assert data["phase"] == "writing"
        assert data["phaseLabel"] == "Writing"

    async def test_generation_status_without_snapshot(self, client, auth_headers, make_article):
        article = await make_article()
        response = await client.get(f"/v1/articles/{article.id}/generation-status", headers=auth_headers)
        assert response.status_code == 404

    async def test_retry_resumes_from_missing_phase(
        self, client, auth_headers, make_article, generation_client
    ):
        article = await make_article(
            status="failed",
            generation={
                "status": "writing",
                "progress": 40,
                "error": "timeout",
                "artifacts": {
                    "research": {"sources": ["https://example.com"]},
                    "coverImage": {"imageUrl": "https://img.example.com/a.png"},
                },
            },
        )

        response = await client.post(f"/v1/articles/{article.id}/retry", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "generating"
        assert data["failedPhase"] == "writing"
        assert data["restartPhase"] == "writing"
        assert data["availableArtifacts"] == ["research", "image"]
        assert generation_client.continued == [{"generation_id": 1, "phase": "writing"}]

    async def test_retry_requires_failed_article(self, client, auth_headers, make_article):
        article = await make_article(status="idea")
        response = await client.post(f"/v1/articles/{article.id}/retry", headers=auth_headers)
        assert response.status_code == 409

    async def test_regenerate_section(self, client, auth_headers, make_article, generation_client):
        article = await make_article(
            status="wait_for_publish",
            draft="## Intro\nOld body",
            generation={"status": "completed", "progress": 100},
        )

        response = await client.post(
            f"/v1/articles/{article.id}/regenerate-section",
            json={"sectionHeading": "Intro"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["draft"] == "## Intro\nNew body"
        assert data["updatedSectionHeading"] == "Intro"
        assert generation_client.sections[0].section_heading == "Intro"


class TestPublishing:
    """Publish now, schedule and unschedule."""

    async def test_publish_copies_draft_to_content(self, client, auth_headers, make_article):
        article = await make_article(status="wait_for_publish", draft="Final words")

        response = await client.post(f"/v1/articles/{article.id}/publish", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "published"
        assert data["content"] == "Final words"
        assert data["publishedAt"] is not None

    async def test_publish_records_webhook(
        self, client, auth_headers, make_article, project, session, monkeypatch
    ):
        queued = []
        monkeypatch.setattr("app.api.v1.endpoints.articles.enqueue_webhook", queued.append)
        project.webhook_url = "https://hooks.example.com/publish"
        project.webhook_enabled = True
        await session.commit()
        article = await make_article(status="wait_for_publish", draft="Body")

        await client.post(f"/v1/articles/{article.id}/publish", headers=auth_headers)

        delivery = (await session.execute(select(WebhookDelivery))).scalar_one()
        assert queued == [delivery.id]
        assert delivery.event_type == "article.published"
        assert delivery.request_payload["article"]["id"] == article.id

    async def test_publish_requires_wait_for_publish(self, client, auth_headers, make_article):
        article = await make_article(status="idea")
        response = await client.post(f"/v1/articles/{article.id}/publish", headers=auth_headers)
        assert response.status_code == 409

    async def test_schedule_and_cancel_publishing(self, client, auth_headers, make_article):
        article = await make_article(status="wait_for_publish")
        when = utcnow() + timedelta(days=3)

        scheduled = await client.post(
            "/v1/articles/schedule-publishing",
            json={"articleId": article.id, "publishAt": when.isoformat()},
            headers=auth_headers,
        )
        assert scheduled.status_code == 200
        assert scheduled.json()["data"]["publishScheduledAt"] is not None

        cancelled = await client.post(f"/v1/articles/{article.id}/cancel-publish-schedule", headers=auth_headers)
        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["publishScheduledAt"] is None
        assert cancelled.json()["data"]["status"] == "wait_for_publish"

    async def test_schedule_publishing_in_past_rejected(self, client, auth_headers, make_article):
        article = await make_article(status="wait_for_publish")
        response = await client.post(
            "/v1/articles/schedule-publishing",
            json={"articleId": article.id, "publishAt": (utcnow() - timedelta(hours=1)).isoformat()},
            headers=auth_headers,
        )
        assert response.status_code == 400


class TestMoveArticle:
    """POST /v1/articles/move"""

    async def test_allowed_move(self, client, auth_headers, make_article):
        article = await make_article(status="wait_for_publish")
        response = await client.post(
            "/v1/articles/move",
            json={"articleId": article.id, "newStatus": "published"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "published"

    async def test_disallowed_move(self, client, auth_headers, make_article):
        article = await make_article(status="idea")
        response = await client.post(
            "/v1/articles/move",
            json={"articleId": article.id, "newStatus": "published"},
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["details"] == {"from": "idea", "to": "published"}
