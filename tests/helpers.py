"""
Test doubles and token helpers shared across the suite.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from jose import jwt

from app.core.config import settings
from app.core.exceptions import ExternalServiceException
from app.services.generation_client import SectionRegenerationResult
from app.utils.dates import utcnow
from app.workflow.api_client import WorkflowApiError

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER_ID = "user-123"


def make_token(sub: str = TEST_USER_ID, email: str = "writer@example.com", **claims: Any) -> str:
    payload = {
        "sub": sub,
        "email": email,
        "aud": settings.auth_jwt_audience,
        "exp": utcnow() + timedelta(hours=1),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


class FakeGenerationClient:
    """Records calls instead of talking to the pipeline service."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.started: List[Dict[str, Any]] = []
        self.continued: List[Dict[str, Any]] = []
        self.sections: List[Any] = []

    async def start_generation(self, **kwargs: Any) -> Dict[str, Any]:
        if self.fail:
            raise ExternalServiceException("Generation service unavailable")
        self.started.append(kwargs)
        return {"taskId": f"task-{kwargs['generation_id']}"}

    async def continue_generation(self, generation_id: int, phase: str) -> Dict[str, Any]:
        if self.fail:
            raise ExternalServiceException("Generation service unavailable")
        self.continued.append({"generation_id": generation_id, "phase": phase})
        return {}

    async def regenerate_section(self, request: Any) -> SectionRegenerationResult:
        self.sections.append(request)
        return SectionRegenerationResult(
            updated_content=request.article_markdown.replace("Old body", "New body"),
            updated_section_heading=request.section_heading,
        )


class RecordingNotifier:
    def __init__(self):
        self.successes: List[str] = []
        self.errors: List[str] = []

    def success(self, title: str, description: Optional[str] = None) -> None:
        self.successes.append(title)

    def error(self, title: str, description: Optional[str] = None) -> None:
        self.errors.append(title)


class FakeWorkflowApi:
    """
    In-memory stand-in for WorkflowApiClient.

    ``board`` is returned by get_board; ``statuses`` maps article ids to
    generation-status payloads (or exceptions to raise). Methods listed in
    ``failing`` raise WorkflowApiError.
    """

    def __init__(self, board: Optional[List[Dict[str, Any]]] = None, project_id: Optional[int] = 1):
        self.project_id = project_id
        self.board = board or []
        self.statuses: Dict[int, Any] = {}
        self.failing: set = set()
        self.calls: List[tuple] = []
        self.board_fetches = 0

    async def _call(self, name: str, *args: Any) -> Any:
        self.calls.append((name,) + args)
        if name in self.failing:
            raise WorkflowApiError(500, f"{name} failed")
        return {}

    async def get_board(self, project_id=None):
        self.board_fetches += 1
        await self._call("get_board", project_id)
        return self.board

    async def get_generation_status(self, article_id: int):
        await self._call("get_generation_status", article_id)
        result = self.statuses.get(article_id, {})
        if isinstance(result, Exception):
            raise result
        return result

    async def create_article(self, payload):
        await self._call("create_article", payload)
        return {"id": 100, "status": "idea", **payload}

    async def update_article(self, article_id, updates):
        return await self._call("update_article", article_id, updates)

    async def delete_article(self, article_id):
        return await self._call("delete_article", article_id)

    async def generate(self, article_id, force=False):
        return await self._call("generate", article_id)

    async def run_now(self, article_id):
        return await self._call("run_now", article_id)

    async def retry(self, article_id):
        return await self._call("retry", article_id)

    async def schedule_generation(self, article_id, scheduled_for):
        return await self._call("schedule_generation", article_id, scheduled_for)

    async def cancel_schedule(self, article_id):
        return await self._call("cancel_schedule", article_id)

    async def publish(self, article_id):
        return await self._call("publish", article_id)

    async def schedule_publishing(self, article_id, publish_at):
        return await self._call("schedule_publishing", article_id, publish_at)

    async def cancel_publish_schedule(self, article_id):
        return await self._call("cancel_publish_schedule", article_id)


def board_column(status: str, *rows: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": status, "title": status, "status": status, "color": "#000", "articles": list(rows)}
