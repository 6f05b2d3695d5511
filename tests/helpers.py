from datetime import datetime
import threading

from rma_import.fields import TEMPLATE_ROW
from rma_import.record_store import RecordValidationError, UniquenessViolation
from rma_import.schemas import AssignedRecord, RecentImport


class FakeStore:
    """In-memory record store with hooks for injecting insert failures."""

    def __init__(self, existing: set[str] | None = None) -> None:
        self.records: dict[str, AssignedRecord] = {}
        self.existing = set(existing or ())
        self.fail_rows: dict[int, Exception] = {}
        self.collide_once: set[str] = set()
        self.create_calls = 0
        self._lock = threading.Lock()

    def exists(self, rma_number: str) -> bool:
        with self._lock:
            return rma_number in self.existing or rma_number in self.records

    def create(self, record: AssignedRecord) -> AssignedRecord:
        with self._lock:
            self.create_calls += 1
            if record.draft.row_number in self.fail_rows:
                raise self.fail_rows[record.draft.row_number]
            if record.rma_number in self.collide_once:
                self.collide_once.discard(record.rma_number)
                raise UniquenessViolation(record.rma_number)
            if record.rma_number in self.existing or record.rma_number in self.records:
                raise UniquenessViolation(record.rma_number)
            self.records[record.rma_number] = record
            return record

    def count_all(self) -> int:
        return len(self.records) + len(self.existing)

    def find_recent(self, *, since: datetime, limit: int = 10) -> list[RecentImport]:
        return []


def malformed(message: str = "RMA validation failed: bad row") -> RecordValidationError:
    return RecordValidationError(message)


def sheet_row(sequence: int, **overrides: str) -> dict[str, str]:
    # Same column order as the import sheet, so positions line up with labels.
    row = {label: "" for label in TEMPLATE_ROW}
    row.update(
        {
            "S. No.": str(sequence),
            "RMA/CI RMA/Lamps": "RMA",
            "Call Log #": f"69{sequence:04d}",
            "Ascomp Raised Date": "01/15/2024",
            "Customer Error Date": "01/14/2024",
            "Site Name": f"Site {sequence}",
            "Product Name": "CP-2220",
            "Serial #": f"SN{sequence:06d}",
            "Case Status": "closed",
        }
    )
    row.update(overrides)
    return row
