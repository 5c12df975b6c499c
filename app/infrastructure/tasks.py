"""Супервизор фоновых задач генерации.

Хранит ссылки на все запущенные asyncio-задачи, ограничивает их число
семафором и не допускает двух одновременных задач с одним ключом.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class TaskAlreadyRunningError(RuntimeError):
    def __init__(self, key: Hashable):
        super().__init__(f"Task {key} is already running")
        self.key = key


class TaskSupervisor:
    def __init__(self, max_concurrency: int = 4):
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: Dict[Hashable, asyncio.Task] = {}

    def is_active(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def spawn(self, key: Hashable, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Запуск задачи; повторный запуск по тому же ключу отклоняется"""
        if self.is_active(key):
            raise TaskAlreadyRunningError(key)

        task = asyncio.create_task(self._guarded(key, factory), name=f"generation:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda finished: self._forget(key, finished))
        return task

    async def _guarded(self, key: Hashable, factory: Callable[[], Awaitable[None]]) -> None:
        async with self._semaphore:
            try:
                await factory()
            except asyncio.CancelledError:
                logger.warning(f"Task {key} cancelled")
                raise
            except Exception:
                logger.exception(f"Task {key} terminated with an unhandled error")

    def _forget(self, key: Hashable, finished: asyncio.Task) -> None:
        if self._tasks.get(key) is finished:
            del self._tasks[key]

    async def join(self) -> None:
        """Ожидание завершения всех текущих задач"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Отмена и ожидание всех задач при остановке приложения"""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Task supervisor stopped, {len(tasks)} task(s) cancelled")
