from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rma_import.db_models import RmaRecord
from rma_import.schemas import AssignedRecord, RecentImport


class StoreError(RuntimeError):
    pass


class UniquenessViolation(StoreError):
    def __init__(self, rma_number: str) -> None:
        super().__init__(f"duplicate key error: rmaNumber '{rma_number}' already exists")
        self.rma_number = rma_number


class RecordValidationError(StoreError):
    pass


class RecordStore(Protocol):
    def exists(self, rma_number: str) -> bool: ...

    def create(self, record: AssignedRecord) -> Any: ...

    def count_all(self) -> int: ...

    def find_recent(self, *, since: datetime, limit: int = 10) -> list[RecentImport]: ...


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


class SqlRecordStore:
    """RMA records in a SQL database; one session per call so worker threads never share one."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def exists(self, rma_number: str) -> bool:
        stmt = select(RmaRecord.id).where(RmaRecord.rma_number == rma_number).limit(1)
        with self.session_factory() as db:
            return db.execute(stmt).scalar_one_or_none() is not None

    def create(self, record: AssignedRecord) -> RmaRecord:
        try:
            row = RmaRecord(**record.to_columns())
        except (TypeError, ValueError) as exc:
            raise RecordValidationError(f"RMA validation failed: {exc}") from exc

        with self.session_factory() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if _is_unique_violation(exc):
                    raise UniquenessViolation(record.rma_number) from exc
                raise RecordValidationError(f"RMA validation failed: {exc.orig}") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise StoreError(str(exc)) from exc
        return row

    def count_all(self) -> int:
        with self.session_factory() as db:
            return db.execute(select(func.count(RmaRecord.id))).scalar_one()

    def find_recent(self, *, since: datetime, limit: int = 10) -> list[RecentImport]:
        stmt = (
            select(RmaRecord)
            .where(RmaRecord.created_at >= since)
            .order_by(RmaRecord.created_at.desc(), RmaRecord.id.desc())
            .limit(limit)
        )
        with self.session_factory() as db:
            return [
                RecentImport(
                    rma_number=row.rma_number,
                    site_name=row.site_name,
                    product_name=row.product_name,
                    case_status=row.case_status,
                    created_at=row.created_at,
                )
                for row in db.execute(stmt).scalars()
            ]
