"""Field normalization for resolved RMA rows.

Every function here accepts either the raw cell string or a value that was
already normalized, so running a draft through ``normalize_fields`` twice
gives the same result.
"""

from datetime import date, datetime
import re
from typing import Any, Mapping

from rma_import.fields import (
    APPROVAL_STATUS_SYNONYMS,
    CARRIER_FIELDS,
    CARRIER_KEYWORDS,
    CASE_STATUS_SYNONYMS,
    DATE_FIELDS,
    DECIMAL_FIELDS,
    DEFAULT_APPROVAL_STATUS,
    DEFAULT_BRAND,
    DEFAULT_CASE_STATUS,
    DEFAULT_PRIORITY,
    DEFAULT_WARRANTY_STATUS,
    IDENTITY_FIELDS,
    IDENTITY_PLACEHOLDERS,
    INTEGER_FIELDS,
    LINKED_DATE_PAIR,
    PRIORITY_SYNONYMS,
    WARRANTY_STATUSES,
    CanonicalField,
)
from rma_import.schemas import NormalizedDraft


F = CanonicalField

MISSING_IDENTITY_MESSAGE = "Missing all essential fields: siteName, productName, and serialNumber"

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y-%m-%d",
    "%m/%d/%y",
    "%m-%d-%y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%Y/%m/%d",
)

_RMA_CL_PATTERN = re.compile(r"\brma[\s_-]*cl\b|\bci\b")


class RowRejected(ValueError):
    """Raised for rows that cannot become a draft at all."""


def trim(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())

    text = trim(value)
    if text is None:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


def parse_count(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value if value >= 0 else None
    text = trim(value)
    if text is None:
        return None
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return None
    if number < 0 or not number.is_integer():
        return None
    return int(number)


def parse_amount(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if value >= 0 else None
    text = trim(value)
    if text is None:
        return None
    try:
        amount = float(text.replace(",", ""))
    except ValueError:
        return None
    return amount if amount >= 0 else None


def normalize_case_status(value: Any) -> str:
    text = trim(value)
    if text is None:
        return DEFAULT_CASE_STATUS
    return CASE_STATUS_SYNONYMS.get(text, DEFAULT_CASE_STATUS)


def normalize_approval_status(value: Any) -> str:
    text = trim(value)
    if text is None:
        return DEFAULT_APPROVAL_STATUS
    return APPROVAL_STATUS_SYNONYMS.get(text, DEFAULT_APPROVAL_STATUS)


def normalize_priority(value: Any) -> str:
    text = trim(value)
    if text is None:
        return DEFAULT_PRIORITY
    return PRIORITY_SYNONYMS.get(text, DEFAULT_PRIORITY)


def normalize_rma_type(value: Any) -> str:
    lowered = (trim(value) or "").lower()
    if "lamp" in lowered:
        return "Lamps"
    if _RMA_CL_PATTERN.search(lowered):
        return "RMA CL"
    return "RMA"


def normalize_carrier(value: Any) -> str | None:
    text = trim(value)
    if text is None:
        return None
    lowered = text.lower()
    for keyword, carrier in CARRIER_KEYWORDS:
        if keyword in lowered:
            return carrier
    return text


def normalize_warranty_status(value: Any) -> str | None:
    # Unknown values pass through untouched; the record store rejects them.
    text = trim(value)
    if text is None:
        return None
    for status in WARRANTY_STATUSES:
        if status.casefold() == text.casefold():
            return status
    return text


def _normalize_value(key: CanonicalField, value: Any) -> Any:
    if key in DATE_FIELDS:
        return parse_date(value)
    if key in INTEGER_FIELDS:
        return parse_count(value)
    if key in DECIMAL_FIELDS:
        return parse_amount(value)
    if key in CARRIER_FIELDS:
        return normalize_carrier(value)
    if trim(value) is None:
        return None
    if key is F.CASE_STATUS:
        return normalize_case_status(value)
    if key is F.APPROVAL_STATUS:
        return normalize_approval_status(value)
    if key is F.PRIORITY:
        return normalize_priority(value)
    if key is F.RMA_TYPE:
        return normalize_rma_type(value)
    if key is F.WARRANTY_STATUS:
        return normalize_warranty_status(value)
    return trim(value)


def normalize_fields(
    resolved: Mapping[CanonicalField, Any],
    *,
    row_number: int,
    raw: dict[str, str],
    default_created_by: str,
) -> NormalizedDraft:
    values: dict[CanonicalField, Any] = {}
    for key, value in resolved.items():
        normalized = _normalize_value(key, value)
        if normalized is not None:
            values[key] = normalized

    # Hand deliveries are often typed into the tracking column.
    tracking = values.get(F.TRACKING_NUMBER)
    if tracking and "hand" in tracking.lower() and F.SHIPPED_THRU not in values:
        values[F.SHIPPED_THRU] = normalize_carrier(tracking)
        del values[F.TRACKING_NUMBER]

    if all(values.get(key) is None for key in IDENTITY_FIELDS):
        raise RowRejected(MISSING_IDENTITY_MESSAGE)
    for key in IDENTITY_FIELDS:
        values.setdefault(key, IDENTITY_PLACEHOLDERS[key])

    first, second = LINKED_DATE_PAIR
    if first not in values and second in values:
        values[first] = values[second]
    elif second not in values and first in values:
        values[second] = values[first]

    values.setdefault(F.CREATED_BY, default_created_by)
    values.setdefault(F.BRAND, DEFAULT_BRAND)
    values.setdefault(F.WARRANTY_STATUS, DEFAULT_WARRANTY_STATUS)
    values.setdefault(F.APPROVAL_STATUS, DEFAULT_APPROVAL_STATUS)
    values.setdefault(F.PRIORITY, DEFAULT_PRIORITY)
    values.setdefault(F.CASE_STATUS, DEFAULT_CASE_STATUS)

    return NormalizedDraft(row_number=row_number, values=values, raw=raw)


def renormalize(draft: NormalizedDraft) -> NormalizedDraft:
    return normalize_fields(
        draft.values,
        row_number=draft.row_number,
        raw=draft.raw,
        default_created_by=draft.values[F.CREATED_BY],
    )
