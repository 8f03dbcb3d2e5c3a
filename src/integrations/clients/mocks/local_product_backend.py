"""
Mock Product Backend Client.

Purpose:
- Provides an in-memory product backend for development/testing
- Does NOT make network calls
- Serves backend-shaped JSON that is normalized through the same
  response wrappers as the real client, so both return identical contracts

Behavior guidelines:
- Codes listed in the catalogue answer with their terms; unknown term
  combinations report missing rate tables
- ``fail(...)`` injects a failure for one operation/code pair
- ``gate(...)`` holds the next call for one operation/code pair until the returned event is set

Swap:
Replace with clients/real_http/product_backend.py when the backend is reachable.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from src.integrations.contracts.errors import HTTPStatusFailure
from src.integrations.contracts.interfaces import ProductBackend
from src.integrations.contracts.product_catalogues import (
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

logger = logging.getLogger(__name__)

DEFAULT_CATALOGUE: Dict[str, Dict[str, Any]] = {
    "21686": {
        "insuCd": "21686",
        "name": "(무)흥국생명 다(多)사랑암보험 주계약",
        "type": "주계약",
        "terms": [
            {"insuTerm": "10년", "payTerm": "10년납", "ageRange": "15~80"},
            {"insuTerm": "20년", "payTerm": "20년납", "ageRange": "15~70"},
        ],
        "calcAvailable": True,
    },
    "31001": {
        "insuCd": "31001",
        "name": "(무)암진단특약",
        "type": "특약",
        "terms": [{"insuTerm": "10년", "payTerm": "10년납", "ageRange": "15~80"}],
        "calcAvailable": True,
    },
    "31002": {
        "insuCd": "31002",
        "name": "(무)암수술특약",
        "type": "특약",
        "terms": {"insuTerm": "20년", "payTerm": "20년납", "ageRange": "15~70"},
        "calcAvailable": True,
    },
}

DEFAULT_RELATED: Dict[str, List[str]] = {"21686": ["31001", "31002"]}

DEFAULT_PDFS: Dict[str, List[str]] = {"다사랑암보험_사업방법서.pdf": ["21686"]}


class MockProductBackend(ProductBackend):
    """In-memory backend with injectable failures and gates."""

    def __init__(
        self,
        catalogue: Optional[Dict[str, Dict[str, Any]]] = None,
        related: Optional[Dict[str, List[str]]] = None,
        pdfs: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.catalogue = copy.deepcopy(catalogue if catalogue is not None else DEFAULT_CATALOGUE)
        self.related = copy.deepcopy(related if related is not None else DEFAULT_RELATED)
        self.pdfs = copy.deepcopy(pdfs if pdfs is not None else DEFAULT_PDFS)
        self.calls: List[Tuple[Any, ...]] = []
        self._failures: Dict[Tuple[str, str], Exception] = {}
        self._gates: Dict[Tuple[str, str], asyncio.Event] = {}

    # -- Test hooks --

    def fail(self, operation: str, code: str, exc: Exception) -> None:
        self._failures[(operation, code)] = exc

    def clear_failures(self) -> None:
        self._failures.clear()

    def gate(self, operation: str, code: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[(operation, code)] = event
        return event

    def count_calls(self, operation: str, code: Optional[str] = None) -> int:
        return sum(1 for call in self.calls if call[0] == operation and (code is None or call[1] == code))

    async def _enter(self, operation: str, code: str, *args: Any) -> None:
        self.calls.append((operation, code, *args))
        gate = self._gates.pop((operation, code), None)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        exc = self._failures.get((operation, code))
        if exc is not None:
            logger.debug("[MOCK] Injected failure for %s(%s): %r", operation, code, exc)
            raise exc

    def _product(self, code: str) -> Dict[str, Any]:
        if code not in self.catalogue:
            raise HTTPStatusFailure(404, f"Unknown product code {code}")
        return self.catalogue[code]

    def _term_keys(self, code: str) -> List[Tuple[str, str]]:
        terms = self._product(code).get("terms") or []
        if isinstance(terms, dict):
            terms = [terms]
        return [(t.get("insuTerm"), t.get("payTerm")) for t in terms]

    # -- ProductBackend --

    async def get_product(self, code: str) -> ProductDetail:
        await self._enter("product", code)
        return normalize_product_detail(self._product(code), fallback_code=code)

    async def get_related_codes(self, code: str) -> List[RelatedCode]:
        await self._enter("related", code)
        payload = {"relatedCodes": [{"insuCd": c} for c in self.related.get(code, [])]}
        return normalize_related_codes(payload, primary_code=code)

    async def list_pdfs(self) -> List[PdfFile]:
        await self._enter("pdfs", "*")
        return normalize_pdf_files([{"name": name} for name in self.pdfs])

    async def list_codes(self, file: str) -> List[CodeEntry]:
        await self._enter("codes", file)
        entries = []
        for code in self.pdfs.get(file, []):
            product = self.catalogue.get(code, {})
            entries.append({"insuCd": code, "name": product.get("name"), "type": product.get("type")})
        return normalize_code_entries(entries)

    async def check_data(
        self,
        code: str,
        age: int,
        insurance_term: Optional[str] = None,
        payment_term: Optional[str] = None,
    ) -> DataCheckResult:
        await self._enter("check", code, age, insurance_term, payment_term)
        if code not in self.catalogue:
            return normalize_data_check({"rsvKey": "N", "rsvRate": "N", "premRate": "N", "errors": [f"{code} 상품 없음"]})
        if insurance_term is None and payment_term is None:
            return normalize_data_check({"rsvKey": "Y", "rsvRate": "Y", "premRate": "Y"})
        if (insurance_term, payment_term) in self._term_keys(code):
            return normalize_data_check({"rsvKey": "Y", "rsvRate": "Y", "premRate": "Y"})
        return normalize_data_check({
            "rsvKey": "N",
            "rsvRate": "N",
            "premRate": "N",
            "errors": [f"{age}세, 보험기간 {insurance_term}, 납입기간 {payment_term} 없음"],
        })

    async def calculate_premium(
        self,
        code: str,
        age: int,
        insurance_term: str,
        payment_term: str,
        base_amount: int,
    ) -> PremiumQuote:
        await self._enter("premium", code, age, insurance_term, payment_term, base_amount)
        if code not in self.catalogue or (insurance_term, payment_term) not in self._term_keys(code):
            return normalize_premium_quote({"manPremium": None, "fmlPremium": None, "errors": ["보험료 요율 없음"]})
        return normalize_premium_quote({
            "manPremium": base_amount * 12 + age,
            "fmlPremium": base_amount * 10 + age,
        })

    async def get_limit(self, code: str, age: Optional[int] = None) -> LimitInfo:
        await self._enter("limit", code, age)
        self._product(code)
        return normalize_limit({"minWon": 1_000_000, "maxWon": 100_000_000}, fallback_code=code)

    async def get_contract_terms(self, code: str) -> ContractNotes:
        await self._enter("contract_terms", code)
        product = self._product(code)
        notes = [f"보험기간 {ins} / 납입기간 {pay}" for ins, pay in self._term_keys(code)]
        notes.append(f"상품명: {product.get('name')}")
        return normalize_contract_notes({"notes": notes}, fallback_code=code)

    async def get_min_max_premium(self, code: str, age: Optional[int] = None) -> MinMaxPremium:
        await self._enter("minmax", code, age)
        self._product(code)
        base = age or 0
        return normalize_min_max({"manMin": 1200 + base, "manMax": 120000 + base, "fmlMin": 1000 + base, "fmlMax": 100000 + base})
