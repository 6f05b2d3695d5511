from rma_import.fields import (
    COLUMN_LABELS,
    COLUMN_POSITIONS,
    SEQUENCE_COLUMN_INDEX,
    CanonicalField,
    fold_label,
)
from rma_import.sources import RawRow


def resolve_columns(row: RawRow) -> dict[CanonicalField, str]:
    """Map the cells of one raw row onto canonical fields.

    Header labels are authoritative. Afterwards every column is read again
    by position, and a non-empty cell fills the field its position maps to
    if no label set that field. This recovers sheets that repeat a header,
    such as ``Shipped Thru'`` for both the outbound and the return carrier.
    The sequence column is never mapped.
    """
    resolved: dict[CanonicalField, str] = {}

    for index, (label, value) in enumerate(row.columns):
        if index == SEQUENCE_COLUMN_INDEX:
            continue
        field = COLUMN_LABELS.get(fold_label(label))
        if field is not None and value.strip() and field not in resolved:
            resolved[field] = value

    for index, (_label, value) in enumerate(row.columns):
        field = COLUMN_POSITIONS.get(index)
        if field is not None and field not in resolved and value.strip():
            resolved[field] = value

    return resolved
