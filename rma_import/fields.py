"""Canonical RMA fields and the static lookup tables used to reach them.

Every table here is built once at import time and exposed read-only.
Column labels are keyed by their folded form (see ``fold_label``) so that
header lookups tolerate case and whitespace drift without fuzzy matching.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class CanonicalField(str, Enum):
    # Values double as attribute names on ``RmaRecord``.
    RMA_TYPE = "rma_type"
    CALL_LOG_NUMBER = "call_log_number"
    RMA_NUMBER = "rma_number"
    RMA_ORDER_NUMBER = "rma_order_number"
    SX_NUMBER = "sx_number"
    ASCOMP_RAISED_DATE = "ascomp_raised_date"
    CUSTOMER_ERROR_DATE = "customer_error_date"
    SITE_NAME = "site_name"
    PRODUCT_NAME = "product_name"
    PRODUCT_PART_NUMBER = "product_part_number"
    SERIAL_NUMBER = "serial_number"
    DEFECTIVE_PART_NUMBER = "defective_part_number"
    DEFECTIVE_PART_NAME = "defective_part_name"
    DEFECTIVE_SERIAL_NUMBER = "defective_serial_number"
    SYMPTOMS = "symptoms"
    REPLACED_PART_NUMBER = "replaced_part_number"
    REPLACED_PART_NAME = "replaced_part_name"
    REPLACED_PART_SERIAL_NUMBER = "replaced_part_serial_number"
    REPLACEMENT_NOTES = "replacement_notes"
    SHIPPED_DATE = "shipped_date"
    TRACKING_NUMBER = "tracking_number"
    SHIPPED_THRU = "shipped_thru"
    REMARKS = "remarks"
    CREATED_BY = "created_by"
    CASE_STATUS = "case_status"
    APPROVAL_STATUS = "approval_status"
    RMA_RETURN_SHIPPED_DATE = "rma_return_shipped_date"
    RMA_RETURN_TRACKING_NUMBER = "rma_return_tracking_number"
    RMA_RETURN_SHIPPED_THRU = "rma_return_shipped_thru"
    DAYS_COUNT_SHIPPED_TO_SITE = "days_count_shipped_to_site"
    DAYS_COUNT_RETURN_TO_CDS = "days_count_return_to_cds"
    PROJECTOR_SERIAL = "projector_serial"
    BRAND = "brand"
    PROJECTOR_MODEL = "projector_model"
    CUSTOMER_SITE = "customer_site"
    PRIORITY = "priority"
    WARRANTY_STATUS = "warranty_status"
    ESTIMATED_COST = "estimated_cost"
    NOTES = "notes"


F = CanonicalField

DATE_FIELDS = frozenset(
    {
        F.ASCOMP_RAISED_DATE,
        F.CUSTOMER_ERROR_DATE,
        F.SHIPPED_DATE,
        F.RMA_RETURN_SHIPPED_DATE,
    }
)
INTEGER_FIELDS = frozenset({F.DAYS_COUNT_SHIPPED_TO_SITE, F.DAYS_COUNT_RETURN_TO_CDS})
DECIMAL_FIELDS = frozenset({F.ESTIMATED_COST})
CARRIER_FIELDS = frozenset({F.SHIPPED_THRU, F.RMA_RETURN_SHIPPED_THRU})
IDENTITY_FIELDS = (F.SITE_NAME, F.PRODUCT_NAME, F.SERIAL_NUMBER)

# Raised and error dates are both required downstream; one stands in for the other.
LINKED_DATE_PAIR = (F.ASCOMP_RAISED_DATE, F.CUSTOMER_ERROR_DATE)

IDENTITY_PLACEHOLDERS: Mapping[CanonicalField, str] = MappingProxyType(
    {
        F.SITE_NAME: "Unknown Site",
        F.PRODUCT_NAME: "Unknown Product",
        F.SERIAL_NUMBER: "Unknown Serial",
    }
)

SEQUENCE_COLUMN_INDEX = 0


def fold_label(label: str) -> str:
    return " ".join(label.split()).casefold()


_LABELS: dict[str, CanonicalField] = {
    "RMA/CI/RMA/Lsm": F.RMA_TYPE,
    "RMA/CI RMA/Lamps": F.RMA_TYPE,
    "RMA/CI RMA / Lamps": F.RMA_TYPE,
    "RMA Type": F.RMA_TYPE,
    "Call Log": F.CALL_LOG_NUMBER,
    "Call Log #": F.CALL_LOG_NUMBER,
    "Call Log Number": F.CALL_LOG_NUMBER,
    "Call No": F.CALL_LOG_NUMBER,
    "Call No.": F.CALL_LOG_NUMBER,
    "RMA": F.RMA_NUMBER,
    "RMA #": F.RMA_NUMBER,
    "RMA Number": F.RMA_NUMBER,
    "RMA Order": F.RMA_ORDER_NUMBER,
    "RMA Order # SX/S4": F.RMA_ORDER_NUMBER,
    "RMA Order Number": F.RMA_ORDER_NUMBER,
    "SX": F.SX_NUMBER,
    "Ascomp Raxise": F.ASCOMP_RAISED_DATE,
    "Ascomp Raised Date": F.ASCOMP_RAISED_DATE,
    "ed Ds": F.CUSTOMER_ERROR_DATE,
    "Customer Error Ds": F.CUSTOMER_ERROR_DATE,
    "Customer Error Date": F.CUSTOMER_ERROR_DATE,
    "Site Name": F.SITE_NAME,
    "Product Nam": F.PRODUCT_NAME,
    "Product Name": F.PRODUCT_NAME,
    "Product Par": F.PRODUCT_PART_NUMBER,
    "Product Part #": F.PRODUCT_PART_NUMBER,
    "Product Part Number": F.PRODUCT_PART_NUMBER,
    "Serial #": F.SERIAL_NUMBER,
    "Serial Number": F.SERIAL_NUMBER,
    "Defective Pa": F.DEFECTIVE_PART_NUMBER,
    "Defective Part #": F.DEFECTIVE_PART_NUMBER,
    "Defective Part Number": F.DEFECTIVE_PART_NUMBER,
    "ive Part Num": F.DEFECTIVE_PART_NUMBER,
    "Defecti": F.DEFECTIVE_PART_NAME,
    "Defective Part Name": F.DEFECTIVE_PART_NAME,
    "Defective Seris": F.DEFECTIVE_SERIAL_NUMBER,
    "Defective Serial #": F.DEFECTIVE_SERIAL_NUMBER,
    "Defective Serial Number": F.DEFECTIVE_SERIAL_NUMBER,
    "Symptom": F.SYMPTOMS,
    "Symptoms": F.SYMPTOMS,
    "Replaced Par": F.REPLACED_PART_NAME,
    "Replaced Part Name": F.REPLACED_PART_NAME,
    "Replacement Part Name": F.REPLACED_PART_NAME,
    "Replaced Part #": F.REPLACED_PART_NUMBER,
    "Replaced Part Number": F.REPLACED_PART_NUMBER,
    "Replacement Part #": F.REPLACED_PART_NUMBER,
    "Replacement Part Number": F.REPLACED_PART_NUMBER,
    "Replaced Part Seris": F.REPLACED_PART_SERIAL_NUMBER,
    "Replaced Part Serial #": F.REPLACED_PART_SERIAL_NUMBER,
    "Replaced Part Serial Number": F.REPLACED_PART_SERIAL_NUMBER,
    "Replacement Serial #": F.REPLACED_PART_SERIAL_NUMBER,
    "Replacement Serial Number": F.REPLACED_PART_SERIAL_NUMBER,
    "Replacement Part Serial #": F.REPLACED_PART_SERIAL_NUMBER,
    "Replacement Part Serial Number": F.REPLACED_PART_SERIAL_NUMBER,
    "Replacement Notes": F.REPLACEMENT_NOTES,
    "Shipped da": F.SHIPPED_DATE,
    "Shipped date": F.SHIPPED_DATE,
    "Trac": F.TRACKING_NUMBER,
    "king": F.TRACKING_NUMBER,
    "Tracking #": F.TRACKING_NUMBER,
    "Tracking Number": F.TRACKING_NUMBER,
    "Shipped Th": F.SHIPPED_THRU,
    "Shipped Thru'": F.SHIPPED_THRU,
    "Shipped Thru": F.SHIPPED_THRU,
    "Shipped Through": F.SHIPPED_THRU,
    "Remarks": F.REMARKS,
    "Created": F.CREATED_BY,
    "Created By": F.CREATED_BY,
    "Case Status": F.CASE_STATUS,
    "Approval Status": F.APPROVAL_STATUS,
    "A return Shipped da": F.RMA_RETURN_SHIPPED_DATE,
    "RMA return Shipped date": F.RMA_RETURN_SHIPPED_DATE,
    "RMA return Tracking": F.RMA_RETURN_TRACKING_NUMBER,
    "RMA return Tracking #": F.RMA_RETURN_TRACKING_NUMBER,
    "RMA Return Tracking Number": F.RMA_RETURN_TRACKING_NUMBER,
    "RMA return Shipped Thru": F.RMA_RETURN_SHIPPED_THRU,
    "RMA return Shipped Thru'": F.RMA_RETURN_SHIPPED_THRU,
    "RMA Return Shipped Through": F.RMA_RETURN_SHIPPED_THRU,
    "Days Count Shipped to Site": F.DAYS_COUNT_SHIPPED_TO_SITE,
    "Days Count Return to CDS": F.DAYS_COUNT_RETURN_TO_CDS,
    "Projector Serial": F.PROJECTOR_SERIAL,
    "Brand": F.BRAND,
    "Projector Model": F.PROJECTOR_MODEL,
    "Customer Site": F.CUSTOMER_SITE,
    "Priority": F.PRIORITY,
    "Warranty Status": F.WARRANTY_STATUS,
    "Estimated Cost": F.ESTIMATED_COST,
    "Notes": F.NOTES,
}

# Camel-case keys emitted by older JSON exports of the same sheet.
_LABELS.update({field.value.replace("_", ""): field for field in CanonicalField})
_LABELS["rmaReturnshippedDate"] = F.RMA_RETURN_SHIPPED_DATE
_LABELS["rmaReturnshippedThru"] = F.RMA_RETURN_SHIPPED_THRU

COLUMN_LABELS: Mapping[str, CanonicalField] = MappingProxyType(
    {fold_label(label): field for label, field in _LABELS.items()}
)

# Sheet layout: column A is the row sequence number and is never mapped.
COLUMN_POSITIONS: Mapping[int, CanonicalField] = MappingProxyType(
    {
        1: F.RMA_TYPE,
        2: F.CALL_LOG_NUMBER,
        3: F.RMA_NUMBER,
        4: F.RMA_ORDER_NUMBER,
        5: F.ASCOMP_RAISED_DATE,
        6: F.CUSTOMER_ERROR_DATE,
        7: F.SITE_NAME,
        8: F.PRODUCT_NAME,
        9: F.PRODUCT_PART_NUMBER,
        10: F.SERIAL_NUMBER,
        11: F.DEFECTIVE_PART_NUMBER,
        12: F.DEFECTIVE_PART_NAME,
        13: F.DEFECTIVE_SERIAL_NUMBER,
        14: F.SYMPTOMS,
        15: F.REPLACED_PART_NUMBER,
        16: F.REPLACED_PART_SERIAL_NUMBER,
        17: F.SHIPPED_DATE,
        18: F.TRACKING_NUMBER,
        19: F.SHIPPED_THRU,
        20: F.REMARKS,
        21: F.CREATED_BY,
        22: F.CASE_STATUS,
        23: F.RMA_RETURN_SHIPPED_DATE,
        24: F.RMA_RETURN_TRACKING_NUMBER,
        25: F.RMA_RETURN_SHIPPED_THRU,
    }
)


CASE_STATUSES = (
    "Open",
    "Under Review",
    "RMA Raised Yet to Deliver",
    "Sent to CDS",
    "CDS Approved",
    "Replacement Shipped",
    "Replacement Received",
    "Installation Complete",
    "Faulty Transit to CDS",
    "Faulty Part Returned",
    "CDS Confirmed Return",
    "Completed",
    "Rejected",
)
DEFAULT_CASE_STATUS = "Under Review"

APPROVAL_STATUSES = ("Pending Review", "Approved", "Rejected", "Under Investigation")
DEFAULT_APPROVAL_STATUS = "Pending Review"

PRIORITIES = ("Low", "Medium", "High", "Critical")
DEFAULT_PRIORITY = "Medium"

WARRANTY_STATUSES = ("In Warranty", "Extended Warranty", "Out of Warranty", "Expired")
DEFAULT_WARRANTY_STATUS = "In Warranty"

DEFAULT_BRAND = "Christie"


def _with_case_variants(table: dict[str, str], canonical: tuple[str, ...]) -> Mapping[str, str]:
    entries: dict[str, str] = {}
    for value in canonical:
        entries[value] = value
        entries[value.lower()] = value
        entries[value.upper()] = value
    for label, value in table.items():
        entries[label] = value
        entries.setdefault(label.lower(), value)
        entries.setdefault(label.upper(), value)
        entries.setdefault(label.title(), value)
    return MappingProxyType(entries)


CASE_STATUS_SYNONYMS = _with_case_variants(
    {
        "closed": "Completed",
        "Faulty in transit to CDS": "Faulty Transit to CDS",
        "Faulty in transit to cds": "Faulty Transit to CDS",
        "faulty in transit to CDS": "Faulty Transit to CDS",
        "rma yet to be raised": "RMA Raised Yet to Deliver",
        "RMA yet to be raised": "RMA Raised Yet to Deliver",
        "RMA Yet to be Raised": "RMA Raised Yet to Deliver",
        "RMA Rasied Yet to Diliver": "RMA Raised Yet to Deliver",
        "RMA raised Yet to Deliver": "RMA Raised Yet to Deliver",
        "in progress": "Under Review",
        "pending": "Under Review",
        "approved": "CDS Approved",
        "shipped": "Replacement Shipped",
        "delivered": "Replacement Received",
        "returned": "Faulty Part Returned",
    },
    CASE_STATUSES,
)

APPROVAL_STATUS_SYNONYMS = _with_case_variants(
    {
        "DNR": "Pending Review",
        "Pending": "Pending Review",
    },
    APPROVAL_STATUSES,
)

PRIORITY_SYNONYMS = _with_case_variants(
    {
        "Urgent": "High",
        "Normal": "Medium",
    },
    PRIORITIES,
)

CARRIER_KEYWORDS = (("hand", "By Hand"), ("dtdc", "DTDC"), ("movin", "Movin"))

RMA_TYPES = ("RMA", "RMA CL", "Lamps")


# Sample row served by the template download; header order follows the sheet layout.
TEMPLATE_ROW: Mapping[str, str] = MappingProxyType(
    {
        "S. No.": "1",
        "RMA/CI RMA/Lamps": "RMA",
        "Call Log #": "694176",
        "RMA #": "176020",
        "RMA Order # SX/S4": "299811",
        "Ascomp Raised Date": "01/15/2024",
        "Customer Error Date": "01/14/2024",
        "Site Name": "Mumbai Office - Screen #1",
        "Product Name": "CP-2220",
        "Product Part #": "163-015107-01",
        "Serial #": "SN123456789",
        "Defective Part #": "000-001195-01",
        "Defective Part Name": "Assy. Ballast",
        "Defective Serial #": "10026145FA028",
        "Symptoms": "Ballast communication failed",
        "Replaced Part #": "004-001195-01",
        "Replaced Part Serial #": "10039624FA023",
        "Shipped date": "01/16/2024",
        "Tracking #": "TRK123456789",
        "Shipped Thru'": "DTDC",
        "Remarks": "delivered",
        "Created By": "Pankaj",
        "Case Status": "Under Review",
        "RMA return Shipped date": "01/20/2024",
        "RMA return Tracking #": "TRK987654321",
        "RMA return Shipped Thru'": "DTDC",
    }
)
