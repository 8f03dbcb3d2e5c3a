"""
Selection resolver: primary code -> related (rider) codes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from src.error_handler import LOOKUP_ERRORS
from src.integrations.contracts.interfaces import ProductBackend

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    primary_code: str
    related_codes: List[str] = field(default_factory=list)
    # Set when related-code discovery failed and the matrix degrades to primary-only.
    diagnostic: Optional[str] = None


class SelectionResolver:
    def __init__(self, backend: ProductBackend) -> None:
        self.backend = backend

    async def resolve(self, primary_code: str) -> Resolution:
        try:
            related = await self.backend.get_related_codes(primary_code)
        except LOOKUP_ERRORS as exc:
            logger.warning("Related code lookup failed for %s: %s", primary_code, exc)
            return Resolution(primary_code, [], f"관련 코드 조회 실패 ({primary_code}): {exc}")

        codes: List[str] = []
        for item in related:
            if item.code != primary_code and item.code not in codes:
                codes.append(item.code)
        logger.info("Resolved %d related codes for %s: %s", len(codes), primary_code, codes)
        return Resolution(primary_code, codes)
