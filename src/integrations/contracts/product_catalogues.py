"""
Product catalogue contracts.

Defines the structure of everything the product backend returns, e.g.:
- product detail with one-or-many term definitions
- related (rider) codes of a primary code
- rate-table availability checks and per-term premium quotes
- limit / min-max / contract-notes lookups used when inspecting a single code

These contracts must be used by both:
- clients/mocks/local_product_backend.py (in-memory data for development/tests)
- clients/real_http/product_backend.py (the real backend)

Every optional field has its default here, so callers never coalesce
missing values themselves.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

TERM_PLACEHOLDER = "—"
NAME_UNAVAILABLE = "상품명 없음"


class TermDefinition(BaseModel):
    insurance_term: str = TERM_PLACEHOLDER
    payment_term: str = TERM_PLACEHOLDER
    age_range: str = TERM_PLACEHOLDER


class ProductDetail(BaseModel):
    code: str
    name: str = NAME_UNAVAILABLE
    terms: List[TermDefinition] = Field(default_factory=list)
    calc_available: bool = False
    message: Optional[str] = None


class RelatedCode(BaseModel):
    code: str
    name: Optional[str] = None


class DataCheckResult(BaseModel):
    """Presence of the reserve-key, reserve-rate and premium-rate tables."""

    key_table: bool = False
    rate_table: bool = False
    premium_table: bool = False
    errors: List[str] = Field(default_factory=list)


class PremiumQuote(BaseModel):
    male_premium: Optional[float] = None
    female_premium: Optional[float] = None
    errors: List[str] = Field(default_factory=list)


class LimitInfo(BaseModel):
    code: str
    min_won: Optional[float] = None
    max_won: Optional[float] = None
    message: Optional[str] = None


class MinMaxPremium(BaseModel):
    male_min: Optional[float] = None
    male_max: Optional[float] = None
    female_min: Optional[float] = None
    female_max: Optional[float] = None
    errors: List[str] = Field(default_factory=list)


class ContractNotes(BaseModel):
    code: str
    notes: List[str] = Field(default_factory=list)


class CodeEntry(BaseModel):
    code: str
    name: str = NAME_UNAVAILABLE
    kind: Optional[str] = None


class PdfFile(BaseModel):
    name: str
    size: Optional[int] = None
    mtime: Optional[str] = None
