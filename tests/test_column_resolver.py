from rma_import.column_resolver import resolve_columns
from rma_import.fields import TEMPLATE_ROW, CanonicalField
from rma_import.sources import RawRow, rows_from_records


def make_row(*columns: tuple[str, str]) -> RawRow:
    return RawRow(row_number=1, columns=tuple(columns))


def test_label_aliases_are_case_and_whitespace_tolerant() -> None:
    row = make_row(
        ("S. No.", "1"),
        ("  call   LOG number ", "694176"),
        ("SITE NAME", "Mumbai"),
    )

    resolved = resolve_columns(row)

    assert resolved[CanonicalField.CALL_LOG_NUMBER] == "694176"
    assert resolved[CanonicalField.SITE_NAME] == "Mumbai"


def test_label_mapping_wins_over_position() -> None:
    # Position 3 is the RMA number column in the sheet layout, but the label says call log.
    row = make_row(("S. No.", "1"), ("Unlabelled", "Standard"), ("RMA #", "X"), ("Call Log #", "694176"))

    resolved = resolve_columns(row)

    assert resolved[CanonicalField.RMA_NUMBER] == "X"
    assert resolved[CanonicalField.CALL_LOG_NUMBER] == "694176"
    assert resolved[CanonicalField.RMA_TYPE] == "Standard"


def test_positional_fallback_never_overwrites_a_labelled_field() -> None:
    columns = [("S. No.", "1")] + [(f"Column {index}", "") for index in range(1, 8)]
    columns[7] = ("Mystery", "Positional Site")
    columns.append(("Site Name", "Labelled Site"))

    resolved = resolve_columns(make_row(*columns))

    assert resolved[CanonicalField.SITE_NAME] == "Labelled Site"


def test_positional_fallback_skips_empty_cells() -> None:
    row = make_row(("S. No.", "1"), ("??", "  "), ("Call Log #", "1234"))

    resolved = resolve_columns(row)

    assert CanonicalField.RMA_TYPE not in resolved
    assert resolved[CanonicalField.CALL_LOG_NUMBER] == "1234"


def test_sequence_column_is_never_mapped() -> None:
    row = make_row(("Serial #", "SN-IN-COLUMN-A"), ("Site Name", "Pune"))

    resolved = resolve_columns(row)

    assert CanonicalField.SERIAL_NUMBER not in resolved
    assert "SN-IN-COLUMN-A" not in resolved.values()
    assert resolved[CanonicalField.SITE_NAME] == "Pune"


def test_renamed_headers_recovered_by_position() -> None:
    labels = ["#"] + [f"col{index}" for index in range(1, 11)]
    values = ["7", "RMA CL", "5555", "176020", "299811", "02/01/2024", "", "Delhi", "CP-4230", "163-015107-01", "SN42"]

    resolved = resolve_columns(make_row(*zip(labels, values)))

    assert resolved[CanonicalField.RMA_TYPE] == "RMA CL"
    assert resolved[CanonicalField.RMA_NUMBER] == "176020"
    assert resolved[CanonicalField.ASCOMP_RAISED_DATE] == "02/01/2024"
    assert CanonicalField.CUSTOMER_ERROR_DATE not in resolved
    assert resolved[CanonicalField.SERIAL_NUMBER] == "SN42"


def test_camel_case_json_keys_are_recognised() -> None:
    [row] = rows_from_records([{"index": 1, "siteName": "Chennai", "caseStatus": "open", "daysCountReturnToCDS": 3}])

    resolved = resolve_columns(row)

    assert resolved[CanonicalField.SITE_NAME] == "Chennai"
    assert resolved[CanonicalField.CASE_STATUS] == "open"
    assert resolved[CanonicalField.DAYS_COUNT_RETURN_TO_CDS] == "3"


def test_repeated_carrier_header_fills_return_carrier_by_position() -> None:
    labels = list(TEMPLATE_ROW)
    labels[25] = "Shipped Thru'"
    values = [""] * len(labels)
    values[0] = "1"
    values[19] = "By Hand"
    values[25] = "DTDC"

    resolved = resolve_columns(make_row(*zip(labels, values)))

    assert resolved[CanonicalField.SHIPPED_THRU] == "By Hand"
    assert resolved[CanonicalField.RMA_RETURN_SHIPPED_THRU] == "DTDC"


def test_position_also_reads_columns_with_known_labels() -> None:
    # Column 7 is labelled as the product but sits where the sheet keeps the site.
    columns = [("S. No.", "1")] + [(f"Column {index}", "") for index in range(1, 7)] + [("Product Name", "CP-2220")]

    resolved = resolve_columns(make_row(*columns))

    assert resolved[CanonicalField.PRODUCT_NAME] == "CP-2220"
    assert resolved[CanonicalField.SITE_NAME] == "CP-2220"
