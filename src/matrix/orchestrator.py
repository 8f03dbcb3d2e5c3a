"""
Selection orchestrator.

Drives one primary-code selection through
idle -> resolving -> expanding -> enriching -> settled:

1. begin: clear the matrix and errors, progress 0, new operation token
2. resolving: primary detail and related-code lookup run concurrently
   (progress checkpoints after each, reached even when they fail)
3. expanding: related details fetched concurrently, full matrix published
   with placeholder values before any enrichment
4. enriching: every row enriched concurrently, progress after each row
5. settled: progress 100, loading off

Every write carries the operation token. Starting a new selection makes the
old token stale, so late results of the old selection are dropped by the
store; its remaining enrichment tasks are also cancelled when configured.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

from src.error_handler import describe_failure
from src.integrations.contracts.interfaces import ProductBackend, RowKind, SelectionPhase
from src.matrix.enricher import RowEnricher, apply_enrichment
from src.matrix.expander import RowExpander
from src.matrix.fanout import FanOut
from src.matrix.models import MatrixSnapshot, RowKey
from src.matrix.refresh import RefreshScheduler, SuppressFlag
from src.matrix.resolver import SelectionResolver
from src.matrix.store import MatrixStore
from src.matrix.triggers import RecomputeTriggers
from src.utils.config_loader import MatrixConfig

logger = logging.getLogger(__name__)


class SelectionOrchestrator:
    def __init__(
        self,
        backend: ProductBackend,
        config: Optional[MatrixConfig] = None,
        store: Optional[MatrixStore] = None,
    ) -> None:
        self.config = config or MatrixConfig()
        selection = self.config.selection
        self.backend = backend
        self.store = store or MatrixStore(age=selection.default_age, base_amount=selection.default_base_amount)
        self.fanout = FanOut()
        self.resolver = SelectionResolver(backend)
        self.expander = RowExpander(backend)
        self.enricher = RowEnricher(backend, slow_row_ms=selection.slow_row_ms)
        self.triggers = RecomputeTriggers(self.store, self.enricher, self.fanout)
        self.refresher = RefreshScheduler(self.triggers.refresh_rows, self.config.refresh.delays_seconds)
        self._selection_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def snapshot(self) -> MatrixSnapshot:
        return self.store.snapshot()

    async def select_primary_code(self, code: str) -> MatrixSnapshot:
        """Run a full selection and return the matrix once it has settled.

        If another selection starts meanwhile, this call still returns, but
        none of its results reach the store.
        """
        code = str(code).strip()
        if not code:
            raise ValueError("Primary code must be a non-empty string.")

        token = self.store.begin_selection(code)
        self.refresher.cancel()
        if self.config.selection.cancel_superseded:
            self.fanout.cancel_superseded(token)

        started = time.perf_counter()
        try:
            await self._run(token, code)
        except Exception as exc:
            logger.exception("Selection of primary code %s failed", code)
            self.store.append_error(token, f"주계약 {code} 선택 실패: {exc}")
        finally:
            self.store.settle(token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        if self.store.is_current(token):
            logger.info("Primary code %s settled in %.2fms with %d rows", code, elapsed_ms, len(self.store.row_keys()))
        else:
            logger.info("Selection %s for %s superseded after %.2fms; results discarded", token, code, elapsed_ms)
        return self.store.snapshot()

    def start_selection(self, code: str) -> asyncio.Task:
        """Schedule a selection in the background and return its task."""
        self._selection_task = asyncio.ensure_future(self.select_primary_code(code))
        return self._selection_task

    async def set_age(self, age: int) -> int:
        return await self.triggers.on_age_change(age)

    async def set_base_amount(self, base_amount: int) -> int:
        return await self.triggers.on_base_amount_change(base_amount)

    async def refresh_after_update(self, suppress: Optional[SuppressFlag] = None) -> int:
        """Refresh every row now and schedule the delayed follow-up refreshes."""
        failed = await self.triggers.refresh_rows()
        self.refresher.schedule(suppress)
        return failed

    async def aclose(self) -> None:
        self.refresher.cancel()
        self.fanout.cancel_all()
        if self._selection_task is not None and not self._selection_task.done():
            self._selection_task.cancel()
            try:
                await self._selection_task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, token: int, code: str) -> None:
        checkpoints = self.config.selection.progress

        # Resolving
        primary_task = asyncio.ensure_future(self.expander.fetch_detail(code))
        resolution_task = asyncio.ensure_future(self.resolver.resolve(code))
        try:
            primary = await primary_task
            self.store.advance_progress(token, checkpoints.primary_detail)
            resolution = await resolution_task
        finally:
            resolution_task.cancel()

        if resolution.diagnostic:
            self.store.append_error(token, resolution.diagnostic)
        self.store.set_related_codes(token, resolution.related_codes)
        self.store.advance_progress(token, checkpoints.related_codes)
        if not self.store.is_current(token):
            return

        # Expanding
        self.store.set_phase(token, SelectionPhase.EXPANDING)
        related = await self.expander.fetch_details(resolution.related_codes)
        outcomes = [(primary, RowKind.PRIMARY)] + [(outcome, RowKind.RELATED) for outcome in related]
        for outcome, _ in outcomes:
            if outcome.is_gap:
                self.store.append_error(token, outcome.error)
        rows = self.expander.expand_all(outcomes)
        if not self.store.publish_rows(token, rows):
            return
        logger.info("Matrix for %s published with %d rows (%d codes)", code, len(rows), len(outcomes))
        self.store.advance_progress(token, checkpoints.matrix_published)

        # Enriching
        self.store.set_phase(token, SelectionPhase.ENRICHING)
        await self._enrich_all(token, [row.key for row in rows])

    async def _enrich_all(self, token: int, keys: List[RowKey]) -> None:
        checkpoints = self.config.selection.progress
        band_start, band_end = checkpoints.matrix_published, checkpoints.enrichment_end
        age, base_amount = self.store.age, self.store.base_amount
        generation = self.store.generation
        total = len(keys)
        done = 0

        async def enrich_row(key: RowKey) -> bool:
            nonlocal done
            try:
                outcome = await self.enricher.enrich(key, age, base_amount)
            except Exception as exc:
                logger.exception("Row enrichment crashed for %s", key.label())
                diagnostic = describe_failure(exc)
                self.store.patch_row(token, key, generation, check_error=diagnostic, premium_error=diagnostic)
                self.store.append_error(token, f"{key.label()}: {diagnostic}")
                ok = False
            else:
                ok = apply_enrichment(self.store, token, outcome, generation)
            done += 1
            self.store.advance_progress(token, band_start + (band_end - band_start) * done // total)
            return ok

        results = await self.fanout.settle_all(token, (enrich_row(key) for key in keys))
        cancelled = sum(1 for r in results if isinstance(r, asyncio.CancelledError))
        failed = sum(1 for r in results if r is False)
        if cancelled:
            logger.info("%d row enrichments cancelled (operation %s superseded)", cancelled, token)
        if failed:
            logger.warning("%d of %d rows finished with errors", failed, total)
