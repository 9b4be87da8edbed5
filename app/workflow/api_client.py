"""
Async HTTP client for the article workflow API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.utils.dates import ensure_aware

logger = get_logger(__name__)


class WorkflowApiError(Exception):
    """Non-success response from the workflow API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


def _iso(value: datetime) -> str:
    return ensure_aware(value).isoformat()


class WorkflowApiClient:
    """
    Thin wrapper over the ``/v1/articles`` endpoints.

    Unwraps the ``{success, data, error}`` envelope and raises
    WorkflowApiError for anything that is not a success.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        project_id: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.workflow_api_url).rstrip("/")
        self.token = token
        self.project_id = project_id
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "WorkflowApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.project_id is not None:
            headers["X-Project-Id"] = str(self.project_id)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.warning("Workflow API unreachable", method=method, path=path, error=str(e))
            raise WorkflowApiError(0, "Network error") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success or not isinstance(body, dict) or not body.get("success", False):
            message = body.get("error") if isinstance(body, dict) else None
            raise WorkflowApiError(response.status_code, message or f"Request failed ({response.status_code})")
        return body.get("data")

    def _project_params(self, project_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        project_id = project_id if project_id is not None else self.project_id
        return {"project_id": project_id} if project_id is not None else None

    # Reads

    async def get_board(self, project_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return await self._request("GET", "/articles/board", params=self._project_params(project_id))

    async def get_article(self, article_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/articles/{article_id}")

    async def get_generation_status(self, article_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/articles/{article_id}/generation-status")

    async def list_queue(self, project_id: Optional[int] = None) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/articles/generation-queue", params=self._project_params(project_id))
        return (data or {}).get("articles", [])

    # Writes

    async def create_article(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload)
        if self.project_id is not None:
            body.setdefault("projectId", self.project_id)
        return await self._request("POST", "/articles", json=body)

    async def update_article(self, article_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/articles/{article_id}", json=updates)

    async def delete_article(self, article_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/articles/{article_id}")

    async def generate(self, article_id: int, force: bool = False) -> Dict[str, Any]:
        return await self._request(
            "POST", "/articles/generate", json={"articleId": article_id, "forceRegenerate": force}
        )

    async def schedule_generation(self, article_id: int, scheduled_for: datetime) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/articles/generation-queue",
            json={"articleId": article_id, "scheduledForDate": _iso(scheduled_for)},
        )

    async def remove_queue_item(self, queue_item_id: int) -> Dict[str, Any]:
        return await self._request(
            "DELETE", "/articles/generation-queue", params={"queueItemId": queue_item_id}
        )

    async def run_now(self, article_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/articles/{article_id}/run-now")

    async def cancel_schedule(self, article_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/articles/{article_id}/cancel-schedule")

    async def retry(self, article_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/articles/{article_id}/retry")

    async def publish(self, article_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/articles/{article_id}/publish")

    async def schedule_publishing(self, article_id: int, publish_at: datetime) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/articles/schedule-publishing",
            json={"articleId": article_id, "publishAt": _iso(publish_at)},
        )

    async def cancel_publish_schedule(self, article_id: int) -> Dict[str, Any]:
        return await self._request("POST", f"/articles/{article_id}/cancel-publish-schedule")
