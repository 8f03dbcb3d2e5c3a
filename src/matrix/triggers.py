"""
Recompute triggers.

Age and base-amount changes re-run enrichment over the rows already in the
matrix. Neither touches resolution or expansion, and neither reports progress.
Each run opens a new store generation, so a slower earlier run cannot
overwrite what a later one wrote.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.error_handler import describe_failure
from src.matrix.enricher import RowEnricher, apply_enrichment
from src.matrix.fanout import FanOut, count_failures
from src.matrix.models import Generation, RowKey
from src.matrix.store import MatrixStore

logger = logging.getLogger(__name__)


class RecomputeTriggers:
    def __init__(self, store: MatrixStore, enricher: RowEnricher, fanout: Optional[FanOut] = None) -> None:
        self.store = store
        self.enricher = enricher
        self.fanout = fanout or FanOut()

    async def on_age_change(self, age: int) -> int:
        """Store the new age and fully re-enrich every row; returns the failed row count."""
        self.store.set_age(age)
        return await self.refresh_rows()

    async def refresh_rows(self) -> int:
        """Re-enrich every row with the current age and base amount."""
        token = self.store.token
        generation = self.store.begin_recompute()
        keys = self.store.row_keys()
        if not keys:
            return 0
        age, base_amount = self.store.age, self.store.base_amount
        logger.info("Re-enriching %d rows (age=%s, base_amount=%s)", len(keys), age, base_amount)
        results = await self.fanout.settle_all(
            token, (self._reenrich(token, generation, key, age, base_amount) for key in keys)
        )
        failed = count_failures(results)
        if failed:
            logger.warning("%d of %d rows failed to re-enrich", failed, len(keys))
        return failed

    async def on_base_amount_change(self, base_amount: int) -> int:
        """Store the new base amount and recalculate premiums only; returns the failed row count."""
        self.store.set_base_amount(base_amount)
        token = self.store.token
        generation = self.store.begin_recompute(premium_only=True)
        keys = self.store.row_keys()
        if not keys:
            return 0
        age = self.store.age
        results = await self.fanout.settle_all(
            token, (self._recalculate(token, generation, key, age, base_amount) for key in keys)
        )
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.error("Premium recalculation crashed for %s: %r", key.label(), result)
        failed = count_failures(results)
        if failed:
            logger.warning("%d of %d row premium calculations failed", failed, len(keys))
        return failed

    async def _reenrich(self, token: int, generation: Generation, key: RowKey, age: int, base_amount: int) -> bool:
        try:
            outcome = await self.enricher.enrich(key, age, base_amount)
        except Exception as exc:
            logger.exception("Unexpected failure re-enriching %s", key.label())
            self.store.append_error(token, f"{key.label()}: {describe_failure(exc)}")
            return False
        return apply_enrichment(self.store, token, outcome, generation)

    async def _recalculate(self, token: int, generation: Generation, key: RowKey, age: int, base_amount: int) -> bool:
        outcome = await self.enricher.recalculate_premium(key, age, base_amount)
        if self.store.patch_row(token, key, generation=generation, **outcome.changes):
            for message in outcome.failures + outcome.notices:
                self.store.append_error(token, message)
        return not outcome.failed
