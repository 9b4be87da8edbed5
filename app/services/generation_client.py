"""
HTTP client for the external generation pipeline and section write service.
"""
from typing import Any, Dict, List, Optional
import httpx

from app.core.config import settings
from app.core.exceptions import ExternalServiceException
from app.core.logging import get_logger
from app.schemas.common import CamelModel

logger = get_logger(__name__)


class SectionRegenerationRequest(CamelModel):
    article_markdown: str
    section_heading: str
    research_data: Optional[Dict[str, Any]] = None
    title: str
    keywords: List[str] = []
    notes: Optional[str] = None
    user_id: str
    project_id: int
    generation_id: int


class SectionRegenerationResult(CamelModel):
    updated_content: str
    updated_section_heading: Optional[str] = None


class GenerationServiceClient:
    """Starts, resumes and edits generation runs on the pipeline service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        write_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.generation_service_url).rstrip("/")
        self.write_url = (write_url or settings.write_service_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.generation_service_api_key
        self.timeout = timeout or settings.generation_service_timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": "Inkflow/1.0"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._headers(),
                transport=self.transport,
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.TimeoutException as e:
            logger.error("Generation service timed out", url=url)
            raise ExternalServiceException("Generation service timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Generation service returned an error",
                url=url,
                status_code=e.response.status_code,
            )
            raise ExternalServiceException(
                f"Generation service error {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Generation service unreachable", url=url, error=str(e))
            raise ExternalServiceException("Generation service unavailable") from e
        except ValueError as e:
            raise ExternalServiceException("Generation service returned invalid JSON") from e

    async def start_generation(
        self,
        *,
        generation_id: int,
        article_id: int,
        user_id: str,
        project_id: int,
        title: str,
        keywords: List[str],
        description: Optional[str] = None,
        notes: Optional[str] = None,
        target_audience: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Kick off a full pipeline run for one article."""
        payload = {
            "generationId": generation_id,
            "articleId": article_id,
            "userId": user_id,
            "projectId": project_id,
            "title": title,
            "keywords": keywords,
            "description": description,
            "notes": notes,
            "targetAudience": target_audience,
        }
        logger.info("Starting generation", article_id=article_id, generation_id=generation_id)
        return await self._post(f"{self.base_url}/generations", payload)

    async def continue_generation(self, generation_id: int, phase: str) -> Dict[str, Any]:
        """Resume a failed run from ``phase`` reusing its stored artifacts."""
        logger.info("Continuing generation", generation_id=generation_id, phase=phase)
        return await self._post(
            f"{self.base_url}/generations/{generation_id}/continue",
            {"phase": phase},
        )

    async def regenerate_section(self, request: SectionRegenerationRequest) -> SectionRegenerationResult:
        data = await self._post(
            f"{self.write_url}/sections/regenerate",
            request.model_dump(by_alias=True),
        )
        if isinstance(data.get("data"), dict):
            data = data["data"]
        if not data.get("updatedContent"):
            raise ExternalServiceException("Write service returned no content")
        return SectionRegenerationResult.model_validate(data)


def get_generation_client() -> GenerationServiceClient:
    """FastAPI dependency; overridden in tests."""
    return GenerationServiceClient()
