import asyncio
from typing import Any, Awaitable, Callable

import httpx
import structlog

from ..config import settings
from .cache import TTLCache
from .http_client import request_json
from .metrics import cache_hits_total, cache_misses_total

logger = structlog.get_logger(__name__)

_MISS = object()


class _FetchAbandoned(Exception):
    """Ведущий запрос по ключу отменён до получения ответа"""

ALL_COURSES_KEY = "all_courses"
ALL_TRAINERS_KEY = "all_trainers"


def course_key(course_id: int) -> str:
    return f"course_{course_id}"


def count_videos(content: Any) -> int | None:
    """Число видео курса из ответа /courses/{id}/content (или None, если неизвестно)."""
    if not isinstance(content, dict):
        return None
    total = content.get("totalVideos")
    if isinstance(total, int):
        return total
    videos = content.get("videos")
    if isinstance(videos, list):
        return len(videos)
    return None


class CatalogClient:
    """Чтение каталога/тренеров с TTL-кэшем и инвалидацией при записи."""

    def __init__(self, client: httpx.AsyncClient, cache: TTLCache, progress_store=None):
        self.client = client
        self.cache = cache
        self.progress_store = progress_store
        self._inflight: dict[str, asyncio.Future] = {}

    async def _cached(self, key: str, ttl: float, fetch: Callable[[], Awaitable[Any]]) -> Any:
        while True:
            cached = self.cache.get(key, _MISS)
            if cached is not _MISS:
                cache_hits_total.inc()
                return cached

            # параллельные промахи по одному ключу ждут один и тот же запрос
            pending = self._inflight.get(key)
            if pending is None:
                return await self._fetch_once(key, ttl, fetch)
            try:
                return await asyncio.shield(pending)
            except _FetchAbandoned:
                logger.debug("cache_fetch_abandoned", key=key)

    async def _fetch_once(self, key: str, ttl: float, fetch: Callable[[], Awaitable[Any]]) -> Any:
        cache_misses_total.inc()
        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await fetch()
        except asyncio.CancelledError:
            # отменили только ведущий запрос: ожидающие повторят чтение сами
            future.set_exception(_FetchAbandoned(key))
            future.exception()
            raise
        except Exception as e:
            future.set_exception(e)
            future.exception()  # помечаем как полученное, если ожидающих нет
            raise
        else:
            self.cache.set(key, value, ttl)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    # --- Кэшируемые чтения:

    async def get_course(self, course_id: int) -> Any:
        return await self._cached(
            course_key(course_id),
            settings.COURSE_DETAIL_TTL,
            lambda: request_json(self.client, "GET", f"/courses/{course_id}"),
        )

    async def get_all_courses(self) -> Any:
        return await self._cached(
            ALL_COURSES_KEY,
            settings.ALL_COURSES_TTL,
            lambda: request_json(self.client, "GET", "/courses"),
        )

    async def get_all_trainers(self) -> Any:
        return await self._cached(
            ALL_TRAINERS_KEY,
            settings.TRAINERS_TTL,
            lambda: request_json(self.client, "GET", "/admin/trainers"),
        )

    # --- Без кэша:

    async def get_course_content(self, course_id: int) -> Any:
        content = await request_json(self.client, "GET", f"/courses/{course_id}/content")
        total = count_videos(content)
        if total is not None and self.progress_store is not None:
            self.progress_store.record_total_videos(course_id, total)
        return content

    async def get_enrolled_courses(self) -> Any:
        return await request_json(self.client, "GET", "/user/mycourses")

    # --- Запись с инвалидацией кэша:

    async def create_course(self, course_data: dict) -> Any:
        result = await request_json(self.client, "POST", "/admin/courses", json=course_data)
        self.cache.delete(ALL_COURSES_KEY)
        return result

    async def update_course(self, course_id: int, course_data: dict) -> Any:
        result = await request_json(self.client, "PUT", f"/admin/courses/{course_id}", json=course_data)
        self.cache.delete(course_key(course_id))
        self.cache.delete(ALL_COURSES_KEY)
        return result

    async def delete_course(self, course_id: int) -> Any:
        result = await request_json(self.client, "DELETE", f"/admin/courses/{course_id}")
        self.cache.delete(course_key(course_id))
        self.cache.delete(ALL_COURSES_KEY)
        return result

    async def create_trainer(self, trainer_data: dict) -> Any:
        result = await request_json(self.client, "POST", "/admin/trainers", json=trainer_data)
        self.cache.delete(ALL_TRAINERS_KEY)
        return result

    async def update_trainer(self, trainer_id: int, trainer_data: dict) -> Any:
        result = await request_json(self.client, "PUT", f"/admin/trainers/{trainer_id}", json=trainer_data)
        self.cache.delete(ALL_TRAINERS_KEY)
        return result

    async def delete_trainer(self, trainer_id: int) -> Any:
        result = await request_json(self.client, "DELETE", f"/admin/trainers/{trainer_id}")
        self.cache.delete(ALL_TRAINERS_KEY)
        return result
