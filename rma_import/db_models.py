from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from rma_import.fields import APPROVAL_STATUSES, CASE_STATUSES, PRIORITIES, WARRANTY_STATUSES


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class RmaRecord(Base):
    __tablename__ = "rma_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rma_number: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    original_rma_number: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    rma_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    call_log_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rma_order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sx_number: Mapped[str | None] = mapped_column(String(64), nullable=True)

    ascomp_raised_date: Mapped[datetime] = mapped_column(DateTime)
    customer_error_date: Mapped[datetime] = mapped_column(DateTime)

    site_name: Mapped[str] = mapped_column(String(255))
    product_name: Mapped[str] = mapped_column(String(255))
    product_part_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    serial_number: Mapped[str] = mapped_column(String(128), index=True)

    defective_part_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    defective_part_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    defective_serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)

    replaced_part_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    replaced_part_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    replaced_part_serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    replacement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    shipped_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    shipped_thru: Mapped[str | None] = mapped_column(String(128), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(128))

    case_status: Mapped[str] = mapped_column(String(64), default="Under Review", index=True)
    approval_status: Mapped[str] = mapped_column(String(64), default="Pending Review")

    rma_return_shipped_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rma_return_tracking_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rma_return_shipped_thru: Mapped[str | None] = mapped_column(String(128), nullable=True)

    days_count_shipped_to_site: Mapped[int] = mapped_column(Integer, default=0)
    days_count_return_to_cds: Mapped[int] = mapped_column(Integer, default=0)

    projector_serial: Mapped[str | None] = mapped_column(String(128), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(128), nullable=True)
    projector_model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    customer_site: Mapped[str | None] = mapped_column(String(255), nullable=True)

    priority: Mapped[str] = mapped_column(String(16), default="Medium")
    warranty_status: Mapped[str] = mapped_column(String(32))
    estimated_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)

    @validates("case_status", "approval_status", "priority", "warranty_status")
    def _validate_enumerations(self, key: str, value: str | None) -> str | None:
        allowed = {
            "case_status": CASE_STATUSES,
            "approval_status": APPROVAL_STATUSES,
            "priority": PRIORITIES,
            "warranty_status": WARRANTY_STATUSES,
        }[key]
        if value is not None and value not in allowed:
            raise ValueError(f"`{value}` is not a valid enum value for path `{key}`")
        return value

    @validates("site_name", "product_name", "serial_number", "created_by")
    def _validate_required_text(self, key: str, value: str | None) -> str | None:
        if value is None or not value.strip():
            raise ValueError(f"Path `{key}` is required")
        return value.strip()


class ImportRun(Base):
    __tablename__ = "import_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_key: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    source_kind: Mapped[str] = mapped_column(String(16))
    source_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    stage: Mapped[str] = mapped_column(String(32), default="parsing")
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    inserted_rows: Mapped[int] = mapped_column(Integer, default=0)
    duplicate_rows: Mapped[int] = mapped_column(Integer, default=0)
    failed_rows: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    failures: Mapped[list["ImportFailure"]] = relationship(back_populates="run", cascade="all, delete-orphan")


class ImportFailure(Base):
    __tablename__ = "import_failures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(ForeignKey("import_runs.id", ondelete="CASCADE"), index=True)
    row_number: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(16))
    reason: Mapped[str] = mapped_column(Text)
    raw_record: Mapped[str] = mapped_column(Text)

    run: Mapped[ImportRun] = relationship(back_populates="failures")
