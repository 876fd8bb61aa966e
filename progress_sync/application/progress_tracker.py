import structlog

from ..domain.entities import SyncReport
from .progress_store import ProgressStore
from .route_sync import RouteBoundarySync
from .sync_scheduler import SyncScheduler
from .teardown_flush import TeardownFlush

logger = structlog.get_logger(__name__)


class ProgressTracker:
    """Точка входа для UI: мутации, чтение прогресса, триггеры синхронизации.

    Серверный процент курса (если пришёл) показывается вместо локального,
    пока этот курс не изменят локально.
    """

    def __init__(self, store: ProgressStore, scheduler: SyncScheduler,
                 teardown: TeardownFlush, route_sync: RouteBoundarySync, catalog=None):
        self.store = store
        self.scheduler = scheduler
        self.teardown = teardown
        self.route_sync = route_sync
        self.catalog = catalog
        self._server_progress: dict[int, int] = {}

    def initialize(self) -> None:
        self.store.initialize()

    # --- Мутации:

    def mark_complete(self, course_id: int, video_id: int, total_videos: int | None = None) -> None:
        self.store.mark_complete(course_id, video_id)
        self._after_mutation(course_id, total_videos)

    def mark_incomplete(self, course_id: int, video_id: int, total_videos: int | None = None) -> None:
        self.store.mark_incomplete(course_id, video_id)
        self._after_mutation(course_id, total_videos)

    def _after_mutation(self, course_id: int, total_videos: int | None) -> None:
        self._server_progress.pop(course_id, None)
        if total_videos is not None:
            self.store.record_total_videos(course_id, total_videos)
        total = self.store.total_videos(course_id)
        if not total:
            logger.info("progress_sync_not_scheduled", course_id=course_id, reason="unknown_total_videos")
            return
        self.scheduler.schedule_single_course_sync(course_id, total)

    # --- Чтение:

    def is_completed(self, course_id: int, video_id: int) -> bool:
        return self.store.is_completed(course_id, video_id)

    def completed_count(self, course_id: int) -> int:
        return self.store.completed_count(course_id)

    def course_progress(self, course_id: int, total_videos: int) -> int:
        return self.store.course_progress(course_id, total_videos)

    def apply_server_progress(self, course_id: int, progress: int | None) -> None:
        if progress is None:
            self._server_progress.pop(course_id, None)
        else:
            self._server_progress[course_id] = max(0, min(100, int(progress)))

    def server_progress(self, course_id: int) -> int | None:
        return self._server_progress.get(course_id)

    def display_progress(self, course_id: int, total_videos: int | None = None) -> int:
        override = self._server_progress.get(course_id)
        if override is not None:
            return override
        if total_videos is None:
            total_videos = self.store.total_videos(course_id) or 0
        return self.store.course_progress(course_id, total_videos)

    def ingest_enrolled_courses(self, courses: list[dict]) -> None:
        """Применить серверный прогресс и число видео из списка записанных курсов."""
        for course in courses or []:
            course_id = course.get("id", course.get("courseId"))
            if course_id is None:
                continue
            course_id = int(course_id)
            server_key = "serverProgress" if "serverProgress" in course else "progress"
            if server_key in course:
                server = course[server_key]
                # null от сервера снимает прежний override
                if server is None:
                    self.apply_server_progress(course_id, None)
                elif isinstance(server, (int, float)):
                    self.apply_server_progress(course_id, int(server))
            total = course.get("totalVideos")
            if total is None and isinstance(course.get("videos"), list):
                total = len(course["videos"])
            if isinstance(total, int) and total >= 0:
                self.store.record_total_videos(course_id, total)

    # --- Синхронизация:

    def is_syncing(self) -> bool:
        return self.scheduler.is_syncing()

    async def sync_now(self) -> SyncReport:
        return await self.scheduler.sync_all_pending_courses()

    async def on_navigate(self, path: str) -> SyncReport | None:
        return await self.route_sync.on_navigate(path)

    def flush_on_teardown(self) -> bool:
        self.scheduler.shutdown()
        return self.teardown.flush()

    async def refresh_enrolled_courses(self):
        if self.catalog is None:
            return []
        courses = await self.catalog.get_enrolled_courses()
        self.ingest_enrolled_courses(courses if isinstance(courses, list) else [])
        return courses
