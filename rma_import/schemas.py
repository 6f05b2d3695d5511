from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from rma_import.fields import CanonicalField


FailureKind = Literal["rejected", "failed"]


@dataclass(frozen=True)
class NormalizedDraft:
    row_number: int
    values: dict[CanonicalField, Any]
    raw: dict[str, str]

    def get(self, key: CanonicalField, default: Any = None) -> Any:
        return self.values.get(key, default)

    @property
    def supplied_rma_number(self) -> str | None:
        return self.values.get(CanonicalField.RMA_NUMBER)


@dataclass(frozen=True)
class AssignedRecord:
    draft: NormalizedDraft
    rma_number: str
    original_rma_number: str | None = None

    @property
    def remapped(self) -> bool:
        return self.original_rma_number is not None

    def to_columns(self) -> dict[str, Any]:
        columns = {key.value: value for key, value in self.draft.values.items()}
        columns["rma_number"] = self.rma_number
        columns["original_rma_number"] = self.original_rma_number
        return columns


@dataclass(frozen=True)
class RowFailure:
    row_number: int
    reason: str
    data: dict[str, str]
    kind: FailureKind = "failed"

    def to_json(self) -> dict[str, object]:
        return {"row": self.row_number, "error": self.reason, "data": self.data}


@dataclass
class BatchOutcome:
    processed: int = 0
    inserted: int = 0
    duplicates: int = 0
    skipped: int = 0
    batch_sizes: list[int] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)

    def record_failure(self, failure: RowFailure) -> None:
        self.failures.append(failure)

    def ordered_failures(self) -> list[RowFailure]:
        return sorted(self.failures, key=lambda failure: failure.row_number)

    def to_summary(self) -> dict[str, object]:
        return {
            "totalProcessed": self.processed,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "errors": self.failed,
            "skipped": self.skipped,
            "batches": len(self.batch_sizes),
            "errorDetails": [failure.to_json() for failure in self.ordered_failures()],
        }


@dataclass(frozen=True)
class IngestionResult:
    run_id: int
    run_key: str
    source_kind: str
    source_name: str | None
    status: str
    outcome: BatchOutcome
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == "done"

    def to_json(self) -> dict[str, object]:
        if self.status == "aborted":
            return {
                "success": False,
                "error": "RMA import failed",
                "details": self.error,
                "runKey": self.run_key,
                "summary": self.outcome.to_summary(),
            }
        return {
            "success": self.success,
            "message": "RMA import completed" if self.success else f"RMA import {self.status}",
            "runKey": self.run_key,
            "summary": self.outcome.to_summary(),
        }


@dataclass(frozen=True)
class RecentImport:
    rma_number: str
    site_name: str
    product_name: str
    case_status: str
    created_at: datetime

    def to_json(self) -> dict[str, object]:
        return {
            "rmaNumber": self.rma_number,
            "siteName": self.site_name,
            "productName": self.product_name,
            "caseStatus": self.case_status,
            "createdAt": self.created_at.isoformat(),
        }
