from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Runs a blocking ``tick`` in a thread every ``interval`` seconds.

    A failed tick is logged and the loop carries on; the next tick retries
    whatever was left behind.
    """

    def __init__(self, name: str, interval: float, tick: Callable[[], Any]) -> None:
        self.name = name
        self.interval = float(interval)
        self._tick = tick
        self._is_running = False
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run_once(self) -> Any:
        try:
            result = await asyncio.to_thread(self._tick)
        except Exception:
            self.failures += 1
            logger.exception("worker %s tick failed", self.name)
            return None
        finally:
            self.ticks += 1
        return result

    async def start(self) -> None:
        if self._is_running:
            return
        self._is_running = True
        self._task = asyncio.create_task(self._loop(), name=f"worker:{self.name}")
        logger.info("worker %s started interval=%.0fs", self.name, self.interval)

    async def stop(self) -> None:
        self._is_running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("worker %s stopped", self.name)

    async def _loop(self) -> None:
        while self._is_running:
            await self.run_once()
            await asyncio.sleep(self.interval)
