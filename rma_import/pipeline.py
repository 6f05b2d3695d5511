from collections.abc import Callable
from datetime import timedelta
import logging
from pathlib import Path
import threading
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rma_import.column_resolver import resolve_columns
from rma_import.committer import BatchCommitter
from rma_import.config import Settings
from rma_import.db_models import ImportRun, utc_now
from rma_import.identifiers import IdentifierAllocator
from rma_import.normalize import RowRejected, normalize_fields
from rma_import.record_store import RecordStore, SqlRecordStore, UniquenessViolation
from rma_import.retry import RetryPolicy
from rma_import.run_store import (
    advance_stage,
    create_run,
    finish_run,
    latest_runs,
    mark_run_aborted,
    new_run_key,
    store_failures,
)
from rma_import.schemas import BatchOutcome, IngestionResult, NormalizedDraft, RowFailure
from rma_import.sources import (
    FatalIngestionError,
    RawRow,
    build_template_csv,
    load_json_records,
    read_csv_rows,
    rows_from_records,
)


logger = logging.getLogger(__name__)


class IngestionRunner:
    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        *,
        store: RecordStore | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.store = store or SqlRecordStore(session_factory)

    def run_file(self, path: Path, *, cancel_event: threading.Event | None = None) -> IngestionResult:
        return self._run(
            source_kind="file",
            source_name=path.name,
            load_rows=lambda: read_csv_rows(path, max_bytes=self.settings.max_upload_bytes),
            cancel_event=cancel_event,
        )

    def run_records(self, records: Any, *, cancel_event: threading.Event | None = None) -> IngestionResult:
        return self._run(
            source_kind="records",
            source_name=None,
            load_rows=lambda: rows_from_records(records),
            cancel_event=cancel_event,
        )

    def run_json_file(self, path: Path, *, cancel_event: threading.Event | None = None) -> IngestionResult:
        return self._run(
            source_kind="records",
            source_name=path.name,
            load_rows=lambda: load_json_records(path),
            cancel_event=cancel_event,
        )

    def _run(
        self,
        *,
        source_kind: str,
        source_name: str | None,
        load_rows: Callable[[], list[RawRow]],
        cancel_event: threading.Event | None,
    ) -> IngestionResult:
        outcome = BatchOutcome()
        with self.session_factory() as db:
            run = create_run(db, run_key=new_run_key(source_kind), source_kind=source_kind, source_name=source_name)
            logger.info("rma import started", extra={"run_key": run.run_key, "source": source_name})

            try:
                rows = load_rows()
                outcome.processed = len(rows)

                advance_stage(db, run, "normalizing")
                drafts = self._normalize(rows, outcome)

                advance_stage(db, run, "batching")
                committer = self._build_committer()

                advance_stage(db, run, "committing")
                committer.commit(drafts, outcome=outcome, cancel_event=cancel_event)

                advance_stage(db, run, "summarizing")
                store_failures(db, run_id=run.id, failures=outcome.ordered_failures())
                finish_run(db, run, outcome)
            except (FatalIngestionError, SQLAlchemyError) as exc:
                db.rollback()
                logger.exception("rma import aborted", extra={"run_key": run.run_key})
                store_failures(db, run_id=run.id, failures=outcome.ordered_failures())
                mark_run_aborted(db, run, error=str(exc), outcome=outcome)
                return self._result_from_run(run, outcome)

            logger.info(
                "rma import finished",
                extra={
                    "run_key": run.run_key,
                    "status": run.stage,
                    "total": outcome.processed,
                    "inserted": outcome.inserted,
                    "duplicates": outcome.duplicates,
                    "errors": outcome.failed,
                },
            )
            return self._result_from_run(run, outcome)

    def _normalize(self, rows: list[RawRow], outcome: BatchOutcome) -> list[NormalizedDraft]:
        drafts: list[NormalizedDraft] = []
        for row in rows:
            raw = row.as_dict()
            try:
                drafts.append(
                    normalize_fields(
                        resolve_columns(row),
                        row_number=row.row_number,
                        raw=raw,
                        default_created_by=self.settings.default_created_by,
                    )
                )
            except RowRejected as exc:
                logger.warning("row rejected", extra={"row": row.row_number, "error": str(exc)})
                outcome.record_failure(RowFailure(row.row_number, str(exc), raw, kind="rejected"))
        return drafts

    def _build_committer(self) -> BatchCommitter:
        allocator = IdentifierAllocator(self.store, prefix=self.settings.rma_number_prefix)
        return BatchCommitter(
            self.store,
            allocator,
            batch_size=self.settings.batch_size,
            max_workers=self.settings.commit_workers,
            pause_seconds=self.settings.batch_pause_seconds,
            retry_policy=RetryPolicy(
                max_retries=self.settings.commit_max_retries,
                retry_on=(UniquenessViolation,),
                backoff_seconds=self.settings.retry_backoff_seconds,
            ),
        )

    def template_csv(self) -> str:
        return build_template_csv()

    def status(self, *, recent_hours: int = 24, limit: int = 10) -> dict[str, object]:
        since = utc_now() - timedelta(hours=recent_hours)
        with self.session_factory() as db:
            runs = latest_runs(db)
            last_runs = [_run_summary(run) for run in runs]
        return {
            "success": True,
            "totalRMAs": self.store.count_all(),
            "recentImports": [item.to_json() for item in self.store.find_recent(since=since, limit=limit)],
            "lastRuns": last_runs,
        }

    def _result_from_run(self, run: ImportRun, outcome: BatchOutcome) -> IngestionResult:
        return IngestionResult(
            run_id=run.id,
            run_key=run.run_key,
            source_kind=run.source_kind,
            source_name=run.source_name,
            status=run.stage,
            outcome=outcome,
            error=run.error,
        )


def _run_summary(run: ImportRun) -> dict[str, object]:
    return {
        "runKey": run.run_key,
        "source": run.source_name,
        "status": run.stage,
        "totalProcessed": run.total_rows,
        "inserted": run.inserted_rows,
        "errors": run.failed_rows,
        "startedAt": run.started_at.isoformat(),
    }
