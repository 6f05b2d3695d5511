import csv
from dataclasses import dataclass
import io
import json
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from rma_import.fields import TEMPLATE_ROW


class FatalIngestionError(RuntimeError):
    """Raised when a whole ingestion run cannot continue."""


@dataclass(frozen=True)
class RawRow:
    row_number: int
    # Ordered (label, value) pairs; position in the tuple is the column index.
    columns: tuple[tuple[str, str], ...]

    def as_dict(self) -> dict[str, str]:
        data: dict[str, str] = {}
        for label, value in self.columns:
            data.setdefault(label, value)
        return data


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def read_csv_rows(path: Path, *, max_bytes: int | None = None) -> list[RawRow]:
    if not path.exists():
        raise FatalIngestionError(f"source file not found: {path}")
    if path.suffix.lower() != ".csv":
        raise FatalIngestionError(f"only CSV files are allowed: {path.name}")
    try:
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            raise FatalIngestionError(f"source file is {size} bytes, limit is {max_bytes}")
        with path.open("r", encoding="utf-8-sig", newline="") as infile:
            return list(_rows_from_reader(csv.reader(infile)))
    except (UnicodeDecodeError, csv.Error) as exc:
        raise FatalIngestionError(f"CSV parsing failed: {exc}") from exc
    except OSError as exc:
        raise FatalIngestionError(f"source file could not be read: {exc}") from exc


def parse_csv_text(text: str) -> list[RawRow]:
    try:
        return list(_rows_from_reader(csv.reader(io.StringIO(text.lstrip("\ufeff")))))
    except csv.Error as exc:
        raise FatalIngestionError(f"CSV parsing failed: {exc}") from exc


def _rows_from_reader(reader: Iterator[list[str]]) -> Iterator[RawRow]:
    header = next(reader, None)
    if header is None:
        return
    row_number = 0
    for cells in reader:
        if not any(cell.strip() for cell in cells):
            continue
        row_number += 1
        width = max(len(header), len(cells))
        labels = list(header) + [""] * (width - len(header))
        values = list(cells) + [""] * (width - len(cells))
        yield RawRow(row_number=row_number, columns=tuple(zip(labels, values)))


def rows_from_records(records: Any) -> list[RawRow]:
    if not isinstance(records, list):
        raise FatalIngestionError("RMA data must be an array")

    rows: list[RawRow] = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, Mapping):
            raise FatalIngestionError(f"record {index} is not an object")
        rows.append(
            RawRow(
                row_number=index,
                columns=tuple((str(label), _cell(value)) for label, value in record.items()),
            )
        )
    return rows


def load_json_records(path: Path) -> list[RawRow]:
    if not path.exists():
        raise FatalIngestionError(f"source file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as infile:
            payload = json.load(infile)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FatalIngestionError(f"JSON parsing failed: {exc}") from exc
    except OSError as exc:
        raise FatalIngestionError(f"source file could not be read: {exc}") from exc

    # Accept both a bare array and the {"rmas": [...]} request body.
    if isinstance(payload, dict) and "rmas" in payload:
        payload = payload["rmas"]
    return rows_from_records(payload)


def build_template_csv(rows: Iterable[Mapping[str, str]] = (TEMPLATE_ROW,)) -> str:
    rows = list(rows)
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
