from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Awaitable, Callable

from services.config import DEFAULT_SAVE_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


class DebouncedSaver:
    """
    Run an async save after a quiet period.

    Every schedule() cancels the pending task and re-arms the timer, so a
    burst of mutations produces one save. The save callable reads state when
    it fires, which makes the latest state win; superseded writes are never
    queued.
    """

    def __init__(
        self,
        save: Callable[[], Awaitable[None]],
        *,
        delay: float = DEFAULT_SAVE_DEBOUNCE_SECONDS,
        name: str = "progress",
    ) -> None:
        self._save = save
        self._delay = delay
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[debounce] %s: no running loop; save not scheduled", self._name)
            return
        self.cancel()
        self._task = loop.create_task(self._run())

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def flush(self) -> None:
        """Drop the pending timer and save right away."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await self._save()

    async def _run(self) -> None:
        await asyncio.sleep(self._delay)
        # Past this point a newer schedule() must not cancel a write mid-flight.
        self._task = None
        try:
            await self._save()
        except Exception:  # noqa: BLE001
            logger.exception("[debounce] %s: save failed", self._name)
