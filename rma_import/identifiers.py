from datetime import UTC, datetime
import logging
import secrets
import string
import time
from typing import Iterable

from rma_import.record_store import RecordStore
from rma_import.schemas import AssignedRecord, NormalizedDraft


logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def mint_rma_number(prefix: str = "RMA") -> str:
    # 6 time-derived digits + 6 random characters; collisions are possible, only unlikely.
    year = datetime.now(UTC).year
    clock = f"{time.time_ns() // 1_000_000 % 1_000_000:06d}"
    tail = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix}-{year}-{clock}{tail}"


class IdentifierAllocator:
    """Assigns the final RMA number for each draft of one ingestion run.

    A supplied number is kept when neither the store nor an earlier row of
    the same run already holds it. Otherwise the row gets a freshly minted
    number and the supplied one is kept as ``original_rma_number``.

    The store check is not atomic with the later insert. The store's unique
    constraint, plus one retry in the committer, covers that gap.
    """

    def __init__(self, store: RecordStore, *, prefix: str = "RMA") -> None:
        self.store = store
        self.prefix = prefix
        self._first_claims: dict[str, int] = {}

    def register_claims(self, drafts: Iterable[NormalizedDraft]) -> None:
        # Called in input order before a batch is dispatched, so the earliest row wins.
        for draft in drafts:
            supplied = draft.supplied_rma_number
            if supplied:
                self._first_claims.setdefault(supplied, draft.row_number)

    def mint(self) -> str:
        return mint_rma_number(self.prefix)

    def allocate(self, draft: NormalizedDraft) -> AssignedRecord:
        supplied = draft.supplied_rma_number
        if not supplied:
            return AssignedRecord(draft=draft, rma_number=self.mint())

        claimed_by = self._first_claims.get(supplied, draft.row_number)
        if claimed_by != draft.row_number or self.store.exists(supplied):
            fresh = self.mint()
            logger.info(
                "supplied rma number already taken, remapped",
                extra={"row": draft.row_number, "supplied": supplied, "rma_number": fresh},
            )
            return AssignedRecord(draft=draft, rma_number=fresh, original_rma_number=supplied)

        return AssignedRecord(draft=draft, rma_number=supplied)

    def reissue(self, record: AssignedRecord) -> AssignedRecord:
        """Replace the number of a record that lost a race at insert time."""
        original = record.original_rma_number
        if original is None and record.rma_number == record.draft.supplied_rma_number:
            original = record.rma_number
        return AssignedRecord(draft=record.draft, rma_number=self.mint(), original_rma_number=original)
