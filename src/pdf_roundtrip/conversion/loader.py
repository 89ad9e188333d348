import asyncio
import logging

from .errors import EngineUnavailable
from .interfaces import EngineFactory, EngineHandle

logger = logging.getLogger(__name__)


class EngineLoader:
    """Instantiates the engine once and hands the same handle to every caller.

    The factory runs in a worker thread. Callers that arrive while it is
    still running all await the same task, so the factory never runs twice.
    A failed load is remembered and re-raised until ``reset()`` is called.
    """

    def __init__(self, factory: EngineFactory) -> None:
        self._factory = factory
        self._task: asyncio.Task[EngineHandle] | None = None

    @property
    def loaded(self) -> bool:
        return self._task is not None and self._task.done() and self._task.exception() is None

    async def acquire(self) -> EngineHandle:
        if self._task is None:
            self._task = asyncio.create_task(self._instantiate())
        return await asyncio.shield(self._task)

    async def _instantiate(self) -> EngineHandle:
        try:
            handle = await asyncio.to_thread(self._factory)
        except EngineUnavailable as e:
            logger.error("Conversion engine unavailable: %s", e)
            raise
        except Exception as e:
            logger.exception("Conversion engine failed to initialize")
            raise EngineUnavailable(f"engine failed to initialize: {e}") from e
        return handle

    def reset(self) -> None:
        """Forget a failed load so the next ``acquire()`` tries again."""
        if self._task is not None and self._task.done() and self._task.exception() is not None:
            self._task = None

    async def aclose(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        try:
            handle = await task
        except EngineUnavailable:
            return
        await asyncio.to_thread(handle.close)
