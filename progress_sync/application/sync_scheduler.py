"""Синхронизация локального прогресса с сервером.

Два состояния: Idle -> Syncing -> Idle. Запрос синхронизации во время
Syncing отбрасывается (не ставится в очередь): следующий триггер прочитает
актуальную карту прогресса, проценты - снимки, а не дельты.
"""

from datetime import datetime, timezone

import structlog

from ..domain.entities import ProgressUpdate, SyncReport
from ..infrastructure.metrics import (
    progress_sync_total,
    progress_sync_skipped_courses_total,
    progress_sync_in_flight,
)
from ..infrastructure.scheduling import Debouncer
from ..infrastructure.storage import IKeyValueStore
from .progress_store import ProgressStore

logger = structlog.get_logger(__name__)


class SyncScheduler:
    def __init__(self, store: ProgressStore, remote, storage: IKeyValueStore,
                 debounce_seconds: float = 0.5, last_sync_key: str = "lastProgressSync"):
        self.store = store
        self.remote = remote
        self.storage = storage
        self.last_sync_key = last_sync_key
        self.debouncer = Debouncer(debounce_seconds)
        self._syncing = False

    def is_syncing(self) -> bool:
        return self._syncing

    def schedule_single_course_sync(self, course_id: int, total_videos: int) -> None:
        """Отложить отправку прогресса курса; повторный вызов перезапускает окно."""
        if total_videos > 0 and self.store.total_videos(course_id) != total_videos:
            self.store.record_total_videos(course_id, total_videos)

        async def fire():
            # число видео тоже берём на момент срабатывания: его могла обновить загрузка контента
            await self.sync_course(course_id, self.store.total_videos(course_id) or total_videos)

        self.debouncer.schedule(course_id, fire)

    async def sync_course(self, course_id: int, total_videos: int | None = None) -> SyncReport:
        total = total_videos or self.store.total_videos(course_id) or 0
        if total <= 0:
            logger.info("progress_sync_skipped_no_total", course_id=course_id)
            progress_sync_skipped_courses_total.inc()
            return self._finish("single", "empty", skipped=[course_id])
        # процент считается в момент отправки: уходит итоговое состояние
        update = ProgressUpdate(course_id=course_id, progress=self.store.course_progress(course_id, total))
        return await self._run("single", [update], [], lambda: self.remote.update_one(course_id, update.progress))

    async def sync_all_pending_courses(self) -> SyncReport:
        if self._syncing:
            return self._busy("batch")
        updates, skipped = self.store.pending_updates()
        if skipped:
            logger.info("progress_sync_courses_skipped", count=len(skipped), course_ids=skipped)
            progress_sync_skipped_courses_total.inc(len(skipped))
        if not updates:
            return self._finish("batch", "empty", skipped=skipped)
        return await self._run("batch", updates, skipped, lambda: self.remote.update_many(updates))

    async def _run(self, kind: str, updates: list[ProgressUpdate], skipped: list[int], call) -> SyncReport:
        if self._syncing:
            return self._busy(kind)

        self._syncing = True
        progress_sync_in_flight.set(1)
        logger.info("progress_sync_started", kind=kind, courses=[u.course_id for u in updates])
        try:
            await call()
        except Exception as e:
            # локальное состояние не откатываем: следующий триггер отправит актуальный снимок
            logger.error("progress_sync_failed", kind=kind, error=str(e), status=getattr(e, "status", None))
            return self._finish(kind, "failure", updates, skipped, error=str(e))
        finally:
            self._syncing = False
            progress_sync_in_flight.set(0)

        self.storage.store(self.last_sync_key, datetime.now(timezone.utc).isoformat())
        logger.info("progress_sync_succeeded", kind=kind, courses=len(updates))
        return self._finish(kind, "success", updates, skipped)

    def _busy(self, kind: str) -> SyncReport:
        logger.debug("progress_sync_skipped_in_flight", kind=kind)
        return self._finish(kind, "busy")

    def _finish(self, kind: str, outcome: str, updates=None, skipped=None, error: str | None = None) -> SyncReport:
        progress_sync_total.labels(kind=kind, outcome=outcome).inc()
        return SyncReport(kind=kind, outcome=outcome, updates=list(updates or []),
                          skipped_course_ids=list(skipped or []), error=error)

    def last_synced_at(self) -> datetime | None:
        raw = self.storage.load(self.last_sync_key)
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None

    def shutdown(self) -> int:
        """Отменить ожидающие таймеры (вызывается перед TeardownFlush)."""
        return self.debouncer.cancel_all()
