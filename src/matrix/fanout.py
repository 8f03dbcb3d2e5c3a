"""
Settle-all fan-out with per-operation task tracking.

Tasks are grouped by the operation token that spawned them so a superseded
operation's remaining work can be cancelled in one call. Cancelling only
saves backend work; the store already drops writes from stale tokens.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)


class FanOut:
    def __init__(self) -> None:
        self._tasks: Dict[int, Set[asyncio.Task]] = defaultdict(set)

    async def settle_all(self, token: int, coros: Iterable[Awaitable[Any]]) -> List[Any]:
        """Run every coroutine concurrently and return results or exceptions in input order.

        A failing (or cancelled) task never aborts its siblings.
        """
        tasks = [asyncio.ensure_future(coro) for coro in coros]
        bucket = self._tasks[token]
        for task in tasks:
            bucket.add(task)
            task.add_done_callback(bucket.discard)
        try:
            return await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            if not bucket:
                self._tasks.pop(token, None)

    def cancel_superseded(self, active_token: int) -> int:
        cancelled = 0
        for token in [t for t in self._tasks if t != active_token]:
            for task in self._tasks.pop(token):
                if not task.done():
                    task.cancel()
                    cancelled += 1
        if cancelled:
            logger.info("Cancelled %d in-flight tasks of superseded operations", cancelled)
        return cancelled

    def cancel_all(self) -> None:
        for tasks in self._tasks.values():
            for task in tasks:
                task.cancel()
        self._tasks.clear()

    def pending(self, token: Optional[int] = None) -> int:
        """Unfinished tasks of one operation, or of every operation when no token is given."""
        buckets = self._tasks.values() if token is None else [self._tasks.get(token, ())]
        return sum(1 for tasks in buckets for task in tasks if not task.done())


def count_failures(results: Iterable[Any]) -> int:
    return sum(1 for r in results if isinstance(r, BaseException) or r is False)
