import time
from fnmatch import fnmatchcase
from typing import Any, Callable

import structlog

from ..config import settings

logger = structlog.get_logger(__name__)

_MISS = object()


class TTLCache:
    """Кэш в памяти: ключ -> (значение, момент истечения).

    Истечение ленивое: просроченная запись удаляется при чтении,
    поэтому корректность get/has не зависит от cleanup().
    """

    def __init__(self, default_ttl: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl if default_ttl is not None else settings.CACHE_TTL
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Сохранить значение в кэш (перезаписывает существующее)"""
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + ttl)

    def get(self, key: str, default: Any = None) -> Any:
        """Получить значение из кэша"""
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return default
        return value

    def has(self, key: str) -> bool:
        return self.get(key, _MISS) is not _MISS

    def delete(self, key: str) -> None:
        """Удалить значение из кэша"""
        self._entries.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        """Удалить все ключи по паттерну"""
        keys = [k for k in self._entries if fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Удалить все просроченные записи"""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache_cleanup", evicted=len(expired), remaining=len(self._entries))
        return len(expired)
