"""
Code catalogue and single-code inspection.

Lists product-document files and the primary codes each one defines, and
gathers everything known about one code (detail, contract limit, contract
notes, data-check messages, min/max premium) in a single concurrent pass.
Each part is independent: a failed part becomes a message and the other
parts still come back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.error_handler import LOOKUP_ERRORS, describe_failure
from src.integrations.contracts.interfaces import ProductBackend
from src.integrations.contracts.product_catalogues import (
    CodeEntry,
    ContractNotes,
    LimitInfo,
    MinMaxPremium,
    PdfFile,
    ProductDetail,
)

logger = logging.getLogger(__name__)


@dataclass
class CodeListing:
    file: str
    codes: List[CodeEntry] = field(default_factory=list)
    diagnostic: Optional[str] = None


@dataclass
class CodeInspection:
    code: str
    age: int
    detail: Optional[ProductDetail] = None
    limit: Optional[LimitInfo] = None
    contract_notes: Optional[ContractNotes] = None
    data_check_errors: List[str] = field(default_factory=list)
    min_max: Optional[MinMaxPremium] = None
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "age": self.age,
            "detail": self.detail.model_dump() if self.detail else None,
            "limit": self.limit.model_dump() if self.limit else None,
            "contract_notes": self.contract_notes.notes if self.contract_notes else [],
            "data_check_errors": list(self.data_check_errors),
            "min_max": self.min_max.model_dump() if self.min_max else None,
            "messages": list(self.messages),
        }


class CodeCatalogue:
    def __init__(self, backend: ProductBackend) -> None:
        self.backend = backend

    async def list_pdfs(self) -> List[PdfFile]:
        return await self.backend.list_pdfs()

    async def list_codes(self, file: str) -> CodeListing:
        """Primary codes defined in one document; empty or failed lookups carry a diagnostic."""
        try:
            codes = await self.backend.list_codes(file)
        except LOOKUP_ERRORS as exc:
            logger.warning("Code listing failed for %s: %s", file, exc)
            return CodeListing(file, diagnostic=f"주계약 코드 조회 실패: {describe_failure(exc)}")
        if not codes:
            logger.info("No primary codes found in %s", file)
            return CodeListing(file, diagnostic=f"주계약 코드 조회 실패: {file}에서 코드를 찾을 수 없음")
        return CodeListing(file, codes=codes)

    async def inspect_code(self, code: str, age: int) -> CodeInspection:
        detail, limit, notes, check, min_max = await asyncio.gather(
            self.backend.get_product(code),
            self.backend.get_limit(code, age),
            self.backend.get_contract_terms(code),
            self.backend.check_data(code, age),
            self.backend.get_min_max_premium(code, age),
            return_exceptions=True,
        )
        for result in (detail, limit, notes, check, min_max):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        inspection = CodeInspection(code=code, age=age)
        inspection.detail = self._take(inspection, "상품 정보", detail)
        inspection.limit = self._take(inspection, "가입한도", limit)
        inspection.contract_notes = self._take(inspection, "계약 사항", notes)
        checked = self._take(inspection, "데이터 확인", check)
        if checked is not None:
            inspection.data_check_errors = list(checked.errors)
        inspection.min_max = self._take(inspection, "최소/최대 보험료", min_max)
        if inspection.min_max is not None and inspection.min_max.errors:
            inspection.messages.extend(inspection.min_max.errors)
        return inspection

    @staticmethod
    def _take(inspection: CodeInspection, part: str, result: Any) -> Any:
        if isinstance(result, LOOKUP_ERRORS):
            logger.warning("Inspection of %s: %s lookup failed: %s", inspection.code, part, result)
            inspection.messages.append(f"{part} 조회 실패: {describe_failure(result)}")
            return None
        if isinstance(result, Exception):
            raise result
        return result
