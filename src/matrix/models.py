"""
Row model, matrix snapshot and selection state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, NamedTuple, Optional

from src.integrations.contracts.interfaces import RowKind, SelectionPhase
from src.integrations.contracts.product_catalogues import NAME_UNAVAILABLE, TERM_PLACEHOLDER

IDENTITY_FIELDS = frozenset({"code", "insurance_term", "payment_term"})
# Fields owned by each half of enrichment; a newer recompute of a half supersedes older writes to them.
CHECK_FIELDS = frozenset({"availability", "check_error"})
PREMIUM_FIELDS = frozenset({"male_premium", "female_premium", "premium_error"})


class Generation(NamedTuple):
    """Recompute counters: `check` moves on age changes, `premium` on age and base-amount changes."""

    check: int = 0
    premium: int = 0

    def supersedes(self, older: "Generation") -> frozenset:
        """Fields an outcome computed under `older` may no longer write."""
        stale = frozenset()
        if older.check != self.check:
            stale |= CHECK_FIELDS
        if older.premium != self.premium:
            stale |= PREMIUM_FIELDS
        return stale


class RowKey(NamedTuple):
    code: str
    insurance_term: str
    payment_term: str

    def label(self) -> str:
        return f"{self.code}({self.insurance_term}, {self.payment_term})"


@dataclass(frozen=True)
class Availability:
    key_table: bool = False
    rate_table: bool = False
    premium_table: bool = False

    def label(self) -> str:
        return (
            f"준비금키 {_yn(self.key_table)}"
            f"/준비금 {_yn(self.rate_table)}"
            f"/보험료 {_yn(self.premium_table)}"
        )


ALL_FACETS_ABSENT = Availability()


@dataclass(frozen=True)
class Row:
    code: str
    insurance_term: str = TERM_PLACEHOLDER
    payment_term: str = TERM_PLACEHOLDER
    name: str = NAME_UNAVAILABLE
    age_range: str = TERM_PLACEHOLDER
    kind: RowKind = RowKind.PRIMARY
    availability: Availability = ALL_FACETS_ABSENT
    male_premium: Optional[float] = None
    female_premium: Optional[float] = None
    check_error: Optional[str] = None
    premium_error: Optional[str] = None
    # Set once at expansion when the code's detail lookup failed.
    detail_error: Optional[str] = None

    @property
    def key(self) -> RowKey:
        return RowKey(self.code, self.insurance_term, self.payment_term)

    @property
    def error_message(self) -> Optional[str]:
        """Enrichment error: the check part, then the premium part, each shown once."""
        parts = list(dict.fromkeys(p for p in (self.check_error, self.premium_error) if p))
        return ", ".join(parts) if parts else None

    @property
    def error_text(self) -> Optional[str]:
        parts = [p for p in (self.detail_error, self.error_message) if p]
        return ", ".join(parts) if parts else None

    def patched(self, **changes: Any) -> "Row":
        touched = IDENTITY_FIELDS.intersection(changes)
        if touched:
            raise ValueError(f"Row identity fields cannot change: {sorted(touched)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["availability"] = self.availability.label()
        data["error_message"] = self.error_message
        data["error_text"] = self.error_text
        return data


@dataclass
class SelectionState:
    primary_code: Optional[str] = None
    related_codes: List[str] = field(default_factory=list)
    is_loading: bool = False
    progress: int = 0
    errors: List[str] = field(default_factory=list)
    phase: SelectionPhase = SelectionPhase.IDLE
    age: int = 15
    base_amount: int = 100
    token: int = 0


@dataclass(frozen=True)
class MatrixSnapshot:
    """Immutable copy of the store handed to observers and callers."""

    rows: List[Row]
    state: SelectionState

    def row(self, key: RowKey) -> Optional[Row]:
        return next((r for r in self.rows if r.key == key), None)

    def rows_for(self, code: str) -> List[Row]:
        return [r for r in self.rows if r.code == code]

    def to_dict(self) -> Dict[str, Any]:
        state = asdict(self.state)
        state["phase"] = self.state.phase.value
        return {"state": state, "rows": [r.to_dict() for r in self.rows]}


def _yn(flag: bool) -> str:
    return "Y" if flag else "N"
