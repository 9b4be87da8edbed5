"""
Background polling of generation progress for the workflow dashboard.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.core.statuses import (
    TERMINAL_GENERATION_STATUSES,
    GenerationPhase,
    derive_generation_phase,
    parse_generation_status,
)
from app.workflow.api_client import WorkflowApiError
from app.workflow.models import WorkflowArticle
from app.workflow.store import WorkflowArticles

logger = get_logger(__name__)


class GenerationPoller:
    """
    Polls generation status for every article in the store's ``generating``
    partition.

    Progress and phase are merged into the store on each tick. When any
    polled article reaches a terminal status the store is refetched once
    after the tick. Articles whose detail page is open (``current_path``)
    are skipped; that page polls on its own.
    """

    def __init__(
        self,
        store: WorkflowArticles,
        interval: Optional[float] = None,
        current_path: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.store = store
        self.interval = interval if interval is not None else settings.generation_poll_interval
        self.current_path = current_path or (lambda: None)
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._epoch = 0

    @property
    def running(self) -> bool:
        return self._running

    def _viewing(self, article: WorkflowArticle) -> bool:
        path = self.current_path() or ""
        prefix = f"/articles/{article.id}"
        return path == prefix or path.startswith(prefix + "/")

    def _targets(self) -> List[WorkflowArticle]:
        return [a for a in self.store.generating if not self._viewing(a)]

    async def poll_once(self) -> bool:
        """Run one tick. Returns True when a terminal status triggered a refetch."""
        targets = self._targets()
        if not targets:
            return False
        epoch = self._epoch

        results = await asyncio.gather(
            *(self.store.client.get_generation_status(a.id) for a in targets),
            return_exceptions=True,
        )

        if epoch != self._epoch:
            # Stopped while requests were in flight
            return False

        needs_refetch = False
        for article, result in zip(targets, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(
                    "Failed to poll generation status",
                    article_id=article.id,
                    error=str(result),
                )
                continue
            if self._apply(article, result or {}):
                needs_refetch = True

        if needs_refetch:
            await self.store.refetch()
        return needs_refetch

    def _apply(self, article: WorkflowArticle, data: Dict[str, Any]) -> bool:
        status = parse_generation_status(data.get("status"))
        if status in TERMINAL_GENERATION_STATUSES:
            logger.info("Generation finished", article_id=article.id, status=status.value)
            return True

        try:
            phase = GenerationPhase(data["phase"]) if data.get("phase") else None
        except ValueError:
            phase = None
        if phase is None:
            phase = derive_generation_phase(data.get("status"))
        self.store.apply_progress(article.id, data.get("progress") or 0, phase)
        return False

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            if not self._running:
                break
            try:
                await self.poll_once()
            except WorkflowApiError as e:
                logger.warning("Generation poll tick failed", error=e.message)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("Generation poller started", interval=self.interval)

    async def stop(self) -> None:
        self._running = False
        self._epoch += 1
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Generation poller stopped")
