from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from .product_catalogues import (
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


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RowKind(str, Enum):
    PRIMARY = "주계약"
    RELATED = "특약"


class SelectionPhase(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    EXPANDING = "expanding"
    ENRICHING = "enriching"
    SETTLED = "settled"


# ---------------------------------------------------------------------------
# Abstract backend interface
# ---------------------------------------------------------------------------

class ProductBackend(ABC):
    """Every product backend client (real HTTP or mock) must implement this interface.

    Methods raise ``GatewayError`` subclasses on transport failure and
    ``IntegrationResponseError`` when a payload cannot be normalized.
    """

    # -- Product catalogue --

    @abstractmethod
    async def get_product(self, code: str) -> ProductDetail:
        """Fetch the product detail (name and term definitions) for one code."""

    @abstractmethod
    async def get_related_codes(self, code: str) -> List[RelatedCode]:
        """Return the riders attached to a primary code, in backend order."""

    @abstractmethod
    async def list_pdfs(self) -> List[PdfFile]:
        """List the source documents known to the backend."""

    @abstractmethod
    async def list_codes(self, file: str) -> List[CodeEntry]:
        """List the primary codes found in one source document."""

    # -- Per-row lookups --

    @abstractmethod
    async def check_data(
        self,
        code: str,
        age: int,
        insurance_term: Optional[str] = None,
        payment_term: Optional[str] = None,
    ) -> DataCheckResult:
        """Check which rate tables exist for a code and term combination."""

    @abstractmethod
    async def calculate_premium(
        self,
        code: str,
        age: int,
        insurance_term: str,
        payment_term: str,
        base_amount: int,
    ) -> PremiumQuote:
        """Calculate male/female premiums for a code and term combination."""

    # -- Single-code inspection --

    @abstractmethod
    async def get_limit(self, code: str, age: Optional[int] = None) -> LimitInfo:
        """Fetch the subscription limit for a code."""

    @abstractmethod
    async def get_contract_terms(self, code: str) -> ContractNotes:
        """Fetch the contract condition notes for a code."""

    @abstractmethod
    async def get_min_max_premium(self, code: str, age: Optional[int] = None) -> MinMaxPremium:
        """Fetch min/max premiums by sex for a code."""
