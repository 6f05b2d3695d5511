from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Iterator, Sequence

from rma_import.identifiers import IdentifierAllocator
from rma_import.record_store import RecordStore, UniquenessViolation
from rma_import.retry import RetryExhaustedError, RetryPolicy, run_with_retries
from rma_import.schemas import AssignedRecord, BatchOutcome, NormalizedDraft, RowFailure
from rma_import.sources import FatalIngestionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowResult:
    draft: NormalizedDraft
    record: AssignedRecord | None = None
    failure: RowFailure | None = None


def partition(drafts: Sequence[NormalizedDraft], size: int) -> Iterator[Sequence[NormalizedDraft]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(drafts), size):
        yield drafts[start : start + size]


class BatchCommitter:
    """Commits drafts batch by batch, one worker per row inside a batch.

    Batches never overlap, so at most one batch of inserts is in flight. Each
    row either lands in the store or becomes a ``RowFailure``; nothing a
    single row does stops its siblings or later batches.
    """

    def __init__(
        self,
        store: RecordStore,
        allocator: IdentifierAllocator,
        *,
        batch_size: int = 50,
        max_workers: int = 50,
        pause_seconds: float = 0.1,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch size must be at least 1")
        self.store = store
        self.allocator = allocator
        self.batch_size = batch_size
        self.max_workers = max_workers
        self.pause_seconds = pause_seconds
        self.retry_policy = retry_policy or RetryPolicy(max_retries=1, retry_on=(UniquenessViolation,))

    def commit(
        self,
        drafts: Sequence[NormalizedDraft],
        *,
        outcome: BatchOutcome | None = None,
        cancel_event: threading.Event | None = None,
        on_batch_done: Callable[[int, BatchOutcome], None] | None = None,
    ) -> BatchOutcome:
        if outcome is None:
            outcome = BatchOutcome(processed=len(drafts))

        self.allocator.register_claims(drafts)
        total_batches = -(-len(drafts) // self.batch_size)
        committed_rows = 0

        for batch_index, batch in enumerate(partition(drafts, self.batch_size)):
            if cancel_event is not None and cancel_event.is_set():
                outcome.cancelled = True
                outcome.skipped += len(drafts) - committed_rows
                logger.warning(
                    "ingestion cancelled between batches",
                    extra={"batch": batch_index + 1, "skipped": outcome.skipped},
                )
                break

            logger.info(
                "committing batch",
                extra={"batch": batch_index + 1, "total_batches": total_batches, "size": len(batch)},
            )
            for result in self._commit_batch(batch):
                self._apply(outcome, result)
            committed_rows += len(batch)
            outcome.batch_sizes.append(len(batch))

            logger.info(
                "batch completed",
                extra={
                    "batch": batch_index + 1,
                    "total_batches": total_batches,
                    "inserted": outcome.inserted,
                    "failed": outcome.failed,
                },
            )
            if on_batch_done:
                on_batch_done(batch_index + 1, outcome)
            if batch_index < total_batches - 1 and self.pause_seconds:
                time.sleep(self.pause_seconds)

        return outcome

    def _commit_batch(self, batch: Sequence[NormalizedDraft]) -> list[RowResult]:
        workers = max(1, min(len(batch), self.max_workers))
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rma-commit") as pool:
                return list(pool.map(self._commit_one, batch))
        except RuntimeError as exc:
            raise FatalIngestionError(f"Batch processing failed: {exc}") from exc

    def _commit_one(self, draft: NormalizedDraft) -> RowResult:
        assigned: AssignedRecord | None = None

        def attempt(number: int) -> AssignedRecord:
            nonlocal assigned
            if assigned is None:
                assigned = self.allocator.allocate(draft)
            else:
                assigned = self.allocator.reissue(assigned)
            self.store.create(assigned)
            return assigned

        def log_failure(number: int, exc: Exception) -> None:
            if isinstance(exc, UniquenessViolation):
                logger.info("rma number collided at insert", extra={"row": draft.row_number, "attempt": number})

        try:
            record = run_with_retries(attempt, policy=self.retry_policy, on_attempt_failure=log_failure)
        except RetryExhaustedError as exc:
            logger.warning("row failed to commit", extra={"row": draft.row_number, "error": str(exc)})
            return RowResult(draft=draft, failure=RowFailure(draft.row_number, str(exc), draft.raw))
        return RowResult(draft=draft, record=record)

    def _apply(self, outcome: BatchOutcome, result: RowResult) -> None:
        if result.failure is not None:
            outcome.record_failure(result.failure)
            return
        outcome.inserted += 1
        if result.record is not None and result.record.remapped:
            outcome.duplicates += 1
