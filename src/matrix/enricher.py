"""
Row enricher.

For one row identity, runs the availability check and the premium
calculation concurrently and turns both outcomes into a single patch.
A failure of one lookup never prevents the other from being merged.
No retries happen here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.error_handler import LOOKUP_ERRORS, describe_failure
from src.integrations.contracts.interfaces import ProductBackend
from src.integrations.contracts.product_catalogues import DataCheckResult, PremiumQuote
from src.matrix.models import Availability, Generation, RowKey
from src.matrix.store import MatrixStore

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentOutcome:
    key: RowKey
    changes: Dict[str, Any] = field(default_factory=dict)
    # Diagnostics for lookups that failed outright, for the selection error list.
    failures: List[str] = field(default_factory=list)
    # Non-fatal validation/calculation messages returned by the backend.
    notices: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.failures)


class RowEnricher:
    def __init__(self, backend: ProductBackend, slow_row_ms: float = 3000.0) -> None:
        self.backend = backend
        self.slow_row_ms = slow_row_ms

    async def enrich(self, key: RowKey, age: int, base_amount: int) -> EnrichmentOutcome:
        started = time.perf_counter()
        check, quote = await asyncio.gather(
            self.backend.check_data(key.code, age, key.insurance_term, key.payment_term),
            self.backend.calculate_premium(key.code, age, key.insurance_term, key.payment_term, base_amount),
            return_exceptions=True,
        )
        _reraise_cancellation(check, quote)

        outcome = EnrichmentOutcome(key)
        diagnostics: List[str] = []
        check_parts: List[str] = []
        premium_parts: List[str] = []

        if isinstance(check, Exception):
            logger.warning("Data availability check failed for %s: %r", key.label(), check)
            check_parts.append(describe_failure(check))
            diagnostics.append(check_parts[-1])
        else:
            outcome.changes["availability"] = _availability(check)
            outcome.notices.extend(check.errors)
            check_parts.extend(check.errors)

        if isinstance(quote, Exception):
            logger.warning("Premium calculation failed for %s: %r", key.label(), quote)
            premium_parts.append(describe_failure(quote))
            diagnostics.append(premium_parts[-1])
            outcome.changes["male_premium"] = None
            outcome.changes["female_premium"] = None
        else:
            outcome.changes["male_premium"] = quote.male_premium
            outcome.changes["female_premium"] = quote.female_premium
            outcome.notices.extend(quote.errors)
            premium_parts.extend(quote.errors)

        outcome.failures = [f"{key.label()}: {d}" for d in dict.fromkeys(diagnostics)]
        outcome.changes["check_error"] = _joined(check_parts)
        outcome.changes["premium_error"] = _joined(premium_parts)

        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > self.slow_row_ms:
            logger.warning("Slow row detected: %s took %.2fms", key.label(), elapsed_ms)
        else:
            logger.debug("Row %s enriched in %.2fms", key.label(), elapsed_ms)
        return outcome

    async def recalculate_premium(self, key: RowKey, age: int, base_amount: int) -> EnrichmentOutcome:
        """Premium half only; availability and the check part of the row error are left alone."""
        outcome = EnrichmentOutcome(key)
        try:
            quote: PremiumQuote = await self.backend.calculate_premium(
                key.code, age, key.insurance_term, key.payment_term, base_amount
            )
        except LOOKUP_ERRORS as exc:
            logger.warning("Premium calculation failed for %s: %r", key.label(), exc)
            diagnostic = describe_failure(exc)
            outcome.changes = {"male_premium": None, "female_premium": None, "premium_error": diagnostic}
            outcome.failures.append(f"보험료 계산 실패 {key.label()}: {diagnostic}")
            return outcome

        logger.debug(
            "Premium for %s at base amount %s: male=%s female=%s",
            key.label(), base_amount, quote.male_premium, quote.female_premium,
        )
        outcome.changes = {
            "male_premium": quote.male_premium,
            "female_premium": quote.female_premium,
            "premium_error": _joined(quote.errors),
        }
        if quote.errors:
            outcome.notices.append(f"{key.label()}: {', '.join(quote.errors)}")
        return outcome


def _availability(check: DataCheckResult) -> Availability:
    return Availability(
        key_table=check.key_table,
        rate_table=check.rate_table,
        premium_table=check.premium_table,
    )


def _joined(parts: List[str]) -> Optional[str]:
    return ", ".join(parts) if parts else None


def _reraise_cancellation(*results: Any) -> None:
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result


def apply_enrichment(
    store: MatrixStore, token: int, outcome: EnrichmentOutcome, generation: Optional[Generation] = None
) -> bool:
    """Merge one outcome into its row; recovered failures go to the selection error list.

    Returns False when the row's lookups failed. An outcome superseded by a
    newer selection or recompute is dropped without touching the error list.
    """
    if store.patch_row(token, outcome.key, generation=generation, **outcome.changes):
        for message in outcome.failures:
            store.append_error(token, message)
    return not outcome.failed
