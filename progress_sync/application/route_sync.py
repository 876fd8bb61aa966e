import structlog

from ..domain.entities import SyncReport
from .sync_scheduler import SyncScheduler

logger = structlog.get_logger(__name__)


class RouteBoundarySync:
    """Синхронизирует прогресс при уходе из классной комнаты."""

    def __init__(self, scheduler: SyncScheduler, marker: str = "/classroom/", initial_path: str = "/"):
        self.scheduler = scheduler
        self.marker = marker
        self.previous_path = initial_path

    def _in_classroom(self, path: str) -> bool:
        return self.marker in path

    async def on_navigate(self, path: str) -> SyncReport | None:
        previous, self.previous_path = self.previous_path, path
        if not (self._in_classroom(previous) and not self._in_classroom(path)):
            return None
        logger.info("navigation_left_classroom", previous=previous, current=path)
        # sync_all_pending_courses не бросает исключений, сбои уже в отчёте
        return await self.scheduler.sync_all_pending_courses()
