"""
Debounced follow-up refresh.

After backend data changes, the matrix is refreshed once immediately and then
again at a few fixed offsets while the backend finishes processing. Only one
follow-up schedule is ever pending; scheduling again replaces it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

SuppressFlag = Callable[[], bool]


class RefreshScheduler:
    def __init__(self, callback: Callable[[], Awaitable[object]], delays: Sequence[float] = (5.0, 10.0)) -> None:
        self.callback = callback
        self.delays = [float(d) for d in delays]
        if self.delays != sorted(self.delays):
            raise ValueError(f"Follow-up delays are offsets from scheduling and must ascend, got {self.delays}")
        self._task: Optional[asyncio.Task] = None
        self.fired = 0
        self.skipped = 0

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, suppress: Optional[SuppressFlag] = None) -> Optional[asyncio.Task]:
        """Replace any pending follow-ups with a fresh schedule.

        ``suppress`` is consulted at each firing; while it returns True that
        firing is skipped (e.g. while an editing dialog is open).
        """
        self.cancel()
        if not self.delays:
            return None
        self._task = asyncio.ensure_future(self._run(suppress or (lambda: False)))
        return self._task

    def cancel(self) -> bool:
        if self.pending:
            self._task.cancel()
            self._task = None
            logger.debug("Pending follow-up refresh cancelled")
            return True
        self._task = None
        return False

    async def _run(self, suppress: SuppressFlag) -> None:
        elapsed = 0.0
        for delay in self.delays:
            await asyncio.sleep(delay - elapsed)
            elapsed = delay
            if suppress():
                self.skipped += 1
                logger.info("Follow-up refresh at %.1fs skipped (suppressed)", delay)
                continue
            logger.info("Follow-up refresh at %.1fs", delay)
            self.fired += 1
            try:
                await self.callback()
            except Exception:
                logger.exception("Follow-up refresh at %.1fs failed", delay)
