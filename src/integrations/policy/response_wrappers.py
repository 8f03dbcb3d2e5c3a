from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.integrations.contracts.product_catalogues import (
    NAME_UNAVAILABLE,
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
    TermDefinition,
)


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Any] = None) -> None:
        super().__init__(message)
        self.payload = payload if payload is not None else {}


def normalize_product_detail(raw: Dict[str, Any], *, fallback_code: str) -> ProductDetail:
    """Accepts either a list of term triples or a single legacy triple under ``terms``."""
    _require_mapping(raw, "product detail")
    code = str(_first_non_empty(raw, "insuCd", "code", default=fallback_code))
    name = str(_first_non_empty(raw, "name", default=NAME_UNAVAILABLE))

    raw_terms = raw.get("terms")
    if isinstance(raw_terms, list):
        terms = [_normalize_term(t) for t in raw_terms if isinstance(t, dict)]
    elif isinstance(raw_terms, dict):
        terms = [_normalize_term(raw_terms)]
    else:
        terms = []

    return _build_model(
        ProductDetail,
        {
            "code": code,
            "name": name,
            "terms": terms,
            "calc_available": bool(raw.get("calcAvailable") or False),
            "message": raw.get("message") or None,
        },
        raw,
    )


def normalize_related_codes(raw: Any, *, primary_code: str) -> List[RelatedCode]:
    """De-duplicates in backend order; the primary code itself and blank codes are dropped."""
    if isinstance(raw, dict):
        items = raw.get("relatedCodes")
        if items is None:
            items = []
    else:
        items = raw
    if not isinstance(items, list):
        raise IntegrationResponseError("relatedCodes is not a list.", payload=raw)

    seen = {primary_code}
    related: List[RelatedCode] = []
    for item in items:
        if isinstance(item, dict):
            code = str(item.get("insuCd") or item.get("code") or "").strip()
            name = item.get("name") or None
        else:
            code = str(item or "").strip()
            name = None
        if not code or code in seen:
            continue
        seen.add(code)
        related.append(RelatedCode(code=code, name=name))
    return related


def normalize_data_check(raw: Dict[str, Any]) -> DataCheckResult:
    _require_mapping(raw, "data check")
    return _build_model(
        DataCheckResult,
        {
            "key_table": _flag(raw.get("rsvKey")),
            "rate_table": _flag(raw.get("rsvRate")),
            "premium_table": _flag(raw.get("premRate")),
            "errors": _string_list(raw.get("errors")),
        },
        raw,
    )


def normalize_premium_quote(raw: Dict[str, Any]) -> PremiumQuote:
    _require_mapping(raw, "premium quote")
    return _build_model(
        PremiumQuote,
        {
            "male_premium": _optional_amount(raw.get("manPremium"), "male premium"),
            "female_premium": _optional_amount(raw.get("fmlPremium"), "female premium"),
            "errors": _string_list(raw.get("errors")),
        },
        raw,
    )


def normalize_limit(raw: Dict[str, Any], *, fallback_code: str) -> LimitInfo:
    _require_mapping(raw, "limit")
    return _build_model(
        LimitInfo,
        {
            "code": str(_first_non_empty(raw, "insuCd", default=fallback_code)),
            "min_won": _optional_amount(raw.get("minWon"), "minimum amount"),
            "max_won": _optional_amount(raw.get("maxWon"), "maximum amount"),
            "message": raw.get("message") or raw.get("display") or None,
        },
        raw,
    )


def normalize_min_max(raw: Dict[str, Any]) -> MinMaxPremium:
    _require_mapping(raw, "min/max premium")
    return _build_model(
        MinMaxPremium,
        {
            "male_min": _optional_amount(raw.get("manMin"), "male minimum"),
            "male_max": _optional_amount(raw.get("manMax"), "male maximum"),
            "female_min": _optional_amount(raw.get("fmlMin"), "female minimum"),
            "female_max": _optional_amount(raw.get("fmlMax"), "female maximum"),
            "errors": _string_list(raw.get("errors")),
        },
        raw,
    )


def normalize_contract_notes(raw: Dict[str, Any], *, fallback_code: str) -> ContractNotes:
    _require_mapping(raw, "contract terms")
    return _build_model(ContractNotes, {"code": fallback_code, "notes": _string_list(raw.get("notes"))}, raw)


def normalize_code_entries(raw: Any) -> List[CodeEntry]:
    if not isinstance(raw, list):
        raise IntegrationResponseError("Code list is not a list.", payload=raw)
    entries = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("insuCd"):
            continue
        entries.append(
            CodeEntry(
                code=str(item["insuCd"]),
                name=str(item.get("name") or NAME_UNAVAILABLE),
                kind=item.get("type") or None,
            )
        )
    return entries


def normalize_pdf_files(raw: Any) -> List[PdfFile]:
    if not isinstance(raw, list):
        raise IntegrationResponseError("PDF list is not a list.", payload=raw)
    return [_build_model(PdfFile, item, item) for item in raw if isinstance(item, dict)]


def _normalize_term(raw: Dict[str, Any]) -> TermDefinition:
    return TermDefinition(
        insurance_term=str(_first_non_empty(raw, "insuTerm", default=TERM_PLACEHOLDER)),
        payment_term=str(_first_non_empty(raw, "payTerm", default=TERM_PLACEHOLDER)),
        age_range=str(_first_non_empty(raw, "ageRange", default=TERM_PLACEHOLDER)),
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().upper() == "Y"


def _optional_amount(value: Any, label: str) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(str(value).replace(",", ""))
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid {label}: {value!r}") from exc


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _require_mapping(raw: Any, label: str) -> None:
    if not isinstance(raw, dict):
        raise IntegrationResponseError(f"Unexpected {label} payload type: {type(raw).__name__}", payload=raw)


def _build_model(model_type, payload: Dict[str, Any], raw: Any):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
