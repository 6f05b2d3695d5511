import json
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from rma_import.db_models import ImportFailure, ImportRun, utc_now
from rma_import.schemas import BatchOutcome, RowFailure


STAGES = ("parsing", "normalizing", "batching", "committing", "summarizing", "done")
TERMINAL_STAGES = frozenset({"done", "aborted", "cancelled"})


def new_run_key(source_kind: str) -> str:
    return f"{source_kind}-{utc_now():%Y%m%dT%H%M%S}-{uuid4().hex[:8]}"


def get_run_by_key(db: Session, run_key: str) -> ImportRun | None:
    stmt = select(ImportRun).where(ImportRun.run_key == run_key)
    return db.execute(stmt).scalar_one_or_none()


def create_run(db: Session, *, run_key: str, source_kind: str, source_name: str | None) -> ImportRun:
    run = ImportRun(run_key=run_key, source_kind=source_kind, source_name=source_name, stage="parsing")
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def advance_stage(db: Session, run: ImportRun, stage: str) -> None:
    if run.stage in TERMINAL_STAGES:
        raise ValueError(f"run {run.run_key} already finished as {run.stage}")
    # Stages only move forward; a run never re-enters an earlier one.
    if STAGES.index(stage) <= STAGES.index(run.stage):
        raise ValueError(f"run {run.run_key} cannot move from {run.stage} to {stage}")
    run.stage = stage
    db.commit()


def _apply_counts(run: ImportRun, outcome: BatchOutcome) -> None:
    run.total_rows = outcome.processed
    run.inserted_rows = outcome.inserted
    run.duplicate_rows = outcome.duplicates
    run.failed_rows = outcome.failed


def finish_run(db: Session, run: ImportRun, outcome: BatchOutcome) -> None:
    run.stage = "cancelled" if outcome.cancelled else "done"
    _apply_counts(run, outcome)
    run.completed_at = utc_now()
    run.error = None
    db.commit()


def mark_run_aborted(db: Session, run: ImportRun, *, error: str, outcome: BatchOutcome) -> None:
    run.stage = "aborted"
    _apply_counts(run, outcome)
    run.error = error
    run.completed_at = utc_now()
    db.commit()


def store_failures(db: Session, *, run_id: int, failures: list[RowFailure]) -> None:
    for failure in failures:
        db.add(
            ImportFailure(
                run_id=run_id,
                row_number=failure.row_number,
                kind=failure.kind,
                reason=failure.reason,
                raw_record=json.dumps(failure.data, sort_keys=True),
            )
        )
    db.commit()


def latest_runs(db: Session, *, limit: int = 5) -> list[ImportRun]:
    stmt = select(ImportRun).order_by(ImportRun.started_at.desc(), ImportRun.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())
