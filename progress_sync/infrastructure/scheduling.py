"""Примитивы планирования поверх asyncio.

Debouncer - отложенный вызов по ключу, каждый новый schedule() для того же
ключа отменяет предыдущий таймер. PeriodicTask - фоновый цикл с интервалом.
"""

import asyncio
from typing import Awaitable, Callable, Hashable

import structlog

logger = structlog.get_logger(__name__)


class Debouncer:
    def __init__(self, delay: float):
        self.delay = delay
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, callback: Callable[[], Awaitable[None]]) -> asyncio.Task | None:
        """Запланировать callback через delay секунд, перезапуская окно для key.

        Без запущенного event loop таймер не ставится (возвращает None):
        изменение подхватит следующий триггер синхронизации.
        """
        self.cancel(key)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("progress_sync_not_scheduled", key=key, reason="no_event_loop")
            return None
        task = loop.create_task(self._run(key, callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: Hashable, callback: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        # после окна тишины задача больше не считается ожидающей
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        await callback()

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for key in list(self._tasks):
            if self.cancel(key):
                cancelled += 1
        return cancelled


class PeriodicTask:
    def __init__(self, interval: float, action: Callable[[], object], name: str = "periodic"):
        self.interval = interval
        self.action = action
        self.name = name
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or self.interval <= 0:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.action()
            except Exception as e:
                logger.error("periodic_task_failed", task=self.name, error=str(e))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
