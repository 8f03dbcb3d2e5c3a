"""
Row expander: one matrix row per (code, insurance term, payment term).

A code whose detail lookup failed still yields exactly one placeholder row,
and a code without term definitions yields one row with "—" terms, so the
row count never drops below the resolved code count.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from src.error_handler import LOOKUP_ERRORS
from src.integrations.contracts.interfaces import ProductBackend, RowKind
from src.integrations.contracts.product_catalogues import NAME_UNAVAILABLE, ProductDetail, TermDefinition
from src.matrix.models import ALL_FACETS_ABSENT, Row, RowKey

logger = logging.getLogger(__name__)


@dataclass
class DetailOutcome:
    code: str
    detail: Optional[ProductDetail] = None
    error: Optional[str] = None

    @property
    def is_gap(self) -> bool:
        return self.detail is None


class RowExpander:
    def __init__(self, backend: ProductBackend) -> None:
        self.backend = backend

    async def fetch_detail(self, code: str) -> DetailOutcome:
        try:
            return DetailOutcome(code, detail=await self.backend.get_product(code))
        except LOOKUP_ERRORS as exc:
            logger.warning("Product detail lookup failed for %s: %s", code, exc)
            return DetailOutcome(code, error=f"상품 정보 조회 실패 ({code}): {exc}")

    async def fetch_details(self, codes: Sequence[str]) -> List[DetailOutcome]:
        """Fetch details for many codes concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.fetch_detail(code) for code in codes)))

    def expand(self, outcome: DetailOutcome, kind: RowKind) -> List[Row]:
        if outcome.detail is None:
            return [
                Row(
                    code=outcome.code,
                    name=NAME_UNAVAILABLE,
                    kind=kind,
                    availability=ALL_FACETS_ABSENT,
                    detail_error=outcome.error,
                )
            ]

        detail = outcome.detail
        terms = detail.terms or [TermDefinition()]
        rows: List[Row] = []
        seen = set()
        for term in terms:
            key = RowKey(outcome.code, term.insurance_term, term.payment_term)
            if key in seen:
                logger.debug("Skipping duplicate term combination %s", key.label())
                continue
            seen.add(key)
            rows.append(
                Row(
                    code=outcome.code,
                    insurance_term=term.insurance_term,
                    payment_term=term.payment_term,
                    name=detail.name or NAME_UNAVAILABLE,
                    age_range=term.age_range,
                    kind=kind,
                    availability=ALL_FACETS_ABSENT,
                )
            )
        return rows

    def expand_all(self, outcomes: Iterable[Tuple[DetailOutcome, RowKind]]) -> List[Row]:
        """Expand every code in order; later duplicates of an earlier key are dropped."""
        matrix: List[Row] = []
        keys = set()
        for outcome, kind in outcomes:
            for row in self.expand(outcome, kind):
                if row.key in keys:
                    continue
                keys.add(row.key)
                matrix.append(row)
        return matrix
