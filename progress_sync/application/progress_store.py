"""Локальное хранилище прогресса: courseId -> (videoId -> completed).

Каждая мутация сразу пишет всю карту в хранилище ключ-значение
(write-through). Отсутствие записи означает "не пройдено", поэтому
mark_incomplete удаляет видео, но оставляет курс: его 0% тоже нужно
отправить на сервер.
"""

import json
import math

import structlog

from ..domain.entities import ProgressUpdate
from ..infrastructure.storage import IKeyValueStore

logger = structlog.get_logger(__name__)


def percent(completed: int, total_videos: int) -> int:
    if total_videos <= 0:
        return 0
    # округление половины вверх, как Math.round на клиенте
    return min(100, int(math.floor(100 * completed / total_videos + 0.5)))


def _parse_progress(raw: str) -> dict[int, dict[int, bool]]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("progress payload must be an object")
    result: dict[int, dict[int, bool]] = {}
    for course_id, lessons in data.items():
        if not isinstance(lessons, dict):
            raise ValueError(f"lessons of course {course_id!r} must be an object")
        result[int(course_id)] = {int(v): True for v, done in lessons.items() if done is True}
    return result


def _parse_totals(raw: str) -> dict[int, int]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("totals payload must be an object")
    return {int(k): int(v) for k, v in data.items() if int(v) >= 0}


class ProgressStore:
    def __init__(self, storage: IKeyValueStore, progress_key: str = "courseProgress",
                 totals_key: str = "courseTotalVideos"):
        self.storage = storage
        self.progress_key = progress_key
        self.totals_key = totals_key
        self._progress: dict[int, dict[int, bool]] = {}
        self._totals: dict[int, int] = {}

    def initialize(self) -> None:
        """Загрузить сохранённое состояние; битые или отсутствующие данные - пустая карта."""
        self._progress = self._load(self.progress_key, _parse_progress)
        self._totals = self._load(self.totals_key, _parse_totals)
        logger.info("progress_store_loaded", courses=len(self._progress), totals=len(self._totals))

    def _load(self, key: str, parse):
        raw = self.storage.load(key)
        if raw is None:
            return {}
        try:
            return parse(raw)
        except (ValueError, TypeError) as e:
            logger.warning("progress_store_corrupt", key=key, error=str(e))
            return {}

    def _persist(self) -> None:
        raw = json.dumps({str(c): {str(v): True for v in lessons} for c, lessons in self._progress.items()})
        self.storage.store(self.progress_key, raw)

    # --- Мутации:

    def mark_complete(self, course_id: int, video_id: int) -> None:
        self._progress.setdefault(course_id, {})[video_id] = True
        self._persist()

    def mark_incomplete(self, course_id: int, video_id: int) -> None:
        self._progress.setdefault(course_id, {}).pop(video_id, None)
        self._persist()

    def record_total_videos(self, course_id: int, total_videos: int) -> None:
        if total_videos < 0:
            raise ValueError("total_videos must be non-negative")
        if self._totals.get(course_id) == total_videos:
            return
        self._totals[course_id] = total_videos
        self.storage.store(self.totals_key, json.dumps({str(c): t for c, t in self._totals.items()}))

    # --- Чтение:

    def is_completed(self, course_id: int, video_id: int) -> bool:
        return self._progress.get(course_id, {}).get(video_id, False)

    def completed_count(self, course_id: int) -> int:
        return sum(1 for done in self._progress.get(course_id, {}).values() if done)

    def course_progress(self, course_id: int, total_videos: int) -> int:
        return percent(self.completed_count(course_id), total_videos)

    def total_videos(self, course_id: int) -> int | None:
        return self._totals.get(course_id)

    def pending_updates(self) -> tuple[list[ProgressUpdate], list[int]]:
        """Проценты по всем курсам карты; курсы без известного числа видео пропускаются."""
        updates, skipped = [], []
        for course_id in self._progress:
            total = self._totals.get(course_id)
            if not total:
                skipped.append(course_id)
                continue
            updates.append(ProgressUpdate(course_id=course_id, progress=self.course_progress(course_id, total)))
        return updates, skipped
