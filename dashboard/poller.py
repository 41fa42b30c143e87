"""
Periodic REST refresh.

Push events keep the stores current while the channel is up. The poller is
the safety net: every POLL_INTERVAL seconds it re-fetches the lists, so a
missed event (or a lost channel) heals on the next tick.

Each tick runs the refresh coroutines one after another. A failing tick is
logged and the loop keeps going, same as the stores themselves: a read
failure is an `error` string, never a crash.
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Refresh = Callable[[], Awaitable[object]]


class RefreshPoller:

    def __init__(self, refreshers: list[Refresh], interval: float = 5.0):
        self._refreshers = refreshers
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> None:
        for refresh in self._refreshers:
            try:
                await refresh()
            except Exception as e:
                logger.error(f"Refresh error: {e}", exc_info=True)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run_loop(), name="refresh-poller")
        logger.info(f"Refresh poller started, every {self._interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Refresh poller stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.refresh_once()
