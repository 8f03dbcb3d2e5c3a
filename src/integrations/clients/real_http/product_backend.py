"""
Real Product Backend HTTP Client.

Purpose:
- Calls the product/pricing backend through the LookupGateway
- Normalizes every payload into the contracts in contracts/product_catalogues.py

Usage:
- Wired in src/api/main.py (and scripts/run_matrix.py) when the mock backend is off
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

from src.integrations.clients.real_http.gateway import LookupGateway
from src.integrations.contracts.interfaces import ProductBackend
from src.integrations.contracts.product_catalogues import (
    TERM_PLACEHOLDER,
    CodeEntry,
    ContractNotes,
    DataCheckResult,
    LimitInfo,
    MinMaxPremium,
    PdfFile,
    PremiumQuote,
    ProductDetail,
    RelatedCode,
)
from src.integrations.policy.response_wrappers import (
    normalize_code_entries,
    normalize_contract_notes,
    normalize_data_check,
    normalize_limit,
    normalize_min_max,
    normalize_pdf_files,
    normalize_premium_quote,
    normalize_product_detail,
    normalize_related_codes,
)


class RealProductBackend(ProductBackend):
    def __init__(self, gateway: Optional[LookupGateway] = None) -> None:
        self.gateway = gateway or LookupGateway()

    async def get_product(self, code: str) -> ProductDetail:
        data = await self.gateway.get_json(f"/api/product/{_segment(code)}")
        return normalize_product_detail(data, fallback_code=code)

    async def get_related_codes(self, code: str) -> List[RelatedCode]:
        data = await self.gateway.get_json(f"/api/product/{_segment(code)}/related-codes")
        return normalize_related_codes(data, primary_code=code)

    async def list_pdfs(self) -> List[PdfFile]:
        data = await self.gateway.get_json("/api/pdf/list")
        return normalize_pdf_files(data)

    async def list_codes(self, file: str) -> List[CodeEntry]:
        data = await self.gateway.get_json("/api/pdf/codes", params={"file": file, "type": "main"})
        return normalize_code_entries(data or [])

    async def check_data(
        self,
        code: str,
        age: int,
        insurance_term: Optional[str] = None,
        payment_term: Optional[str] = None,
    ) -> DataCheckResult:
        params = {"age": age}
        if insurance_term is not None:
            params["insuTerm"] = insurance_term or TERM_PLACEHOLDER
        if payment_term is not None:
            params["payTerm"] = payment_term or TERM_PLACEHOLDER
        data = await self.gateway.get_json(f"/api/data/check/{_segment(code)}", params=params)
        return normalize_data_check(data)

    async def calculate_premium(
        self,
        code: str,
        age: int,
        insurance_term: str,
        payment_term: str,
        base_amount: int,
    ) -> PremiumQuote:
        params = {
            "age": age,
            "insuTerm": insurance_term or TERM_PLACEHOLDER,
            "payTerm": payment_term or TERM_PLACEHOLDER,
            "baseAmount": base_amount,
        }
        data = await self.gateway.get_json(f"/api/premium/calculate-by-terms/{_segment(code)}", params=params)
        return normalize_premium_quote(data)

    async def get_limit(self, code: str, age: Optional[int] = None) -> LimitInfo:
        params = {"age": age} if age is not None else None
        data = await self.gateway.get_json(f"/api/limit/{_segment(code)}", params=params)
        return normalize_limit(data, fallback_code=code)

    async def get_contract_terms(self, code: str) -> ContractNotes:
        data = await self.gateway.get_json(f"/api/contract/terms/{_segment(code)}")
        return normalize_contract_notes(data, fallback_code=code)

    async def get_min_max_premium(self, code: str, age: Optional[int] = None) -> MinMaxPremium:
        params = {"age": age} if age is not None else None
        data = await self.gateway.get_json(f"/api/premium/minmax/{_segment(code)}", params=params)
        return normalize_min_max(data)


def _segment(code: str) -> str:
    return quote(str(code), safe="")
