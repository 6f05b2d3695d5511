import csv
import json
from pathlib import Path
import threading

from sqlalchemy import func, select

from rma_import.db_models import ImportFailure, RmaRecord
from rma_import.normalize import MISSING_IDENTITY_MESSAGE
from rma_import.pipeline import IngestionRunner
from rma_import.run_store import get_run_by_key
from rma_import.sources import parse_csv_text

from helpers import sheet_row


def write_csv(path: Path, rows: list[dict[str, str]]) -> Path:
    with path.open("w", encoding="utf-8", newline="") as outfile:
        writer = csv.DictWriter(outfile, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    return path


def test_large_file_is_committed_in_batches(runner: IngestionRunner, temp_workspace: Path) -> None:
    source = write_csv(temp_workspace / "rmas.csv", [sheet_row(index) for index in range(1, 121)])

    result = runner.run_file(source)

    assert result.status == "done"
    assert result.outcome.batch_sizes == [50, 50, 20]
    assert result.outcome.processed == 120
    assert result.outcome.inserted + result.outcome.failed == 120
    assert result.outcome.inserted == 120

    with runner.session_factory() as db:
        assert db.execute(select(func.count(RmaRecord.id))).scalar_one() == 120
        statuses = set(db.execute(select(RmaRecord.case_status)).scalars())
        assert statuses == {"Completed"}

        run = get_run_by_key(db, result.run_key)
        assert run.stage == "done"
        assert run.source_name == "rmas.csv"
        assert run.total_rows == 120
        assert run.inserted_rows == 120


def test_blank_site_gets_placeholder(runner: IngestionRunner) -> None:
    result = runner.run_records([sheet_row(1, **{"Site Name": "", "Product Name": "Model X", "Serial #": "SN1"})])

    assert result.outcome.inserted == 1
    with runner.session_factory() as db:
        record = db.execute(select(RmaRecord)).scalar_one()
        assert record.site_name == "Unknown Site"
        assert record.product_name == "Model X"
        assert record.serial_number == "SN1"


def test_rows_without_identity_are_rejected_before_commit(runner: IngestionRunner) -> None:
    rows = [
        sheet_row(1),
        sheet_row(2, **{"Site Name": "", "Product Name": "", "Serial #": ""}),
        sheet_row(3),
    ]

    result = runner.run_records(rows)

    assert result.outcome.processed == 3
    assert result.outcome.inserted == 2
    [failure] = result.outcome.failures
    assert failure.row_number == 2
    assert failure.kind == "rejected"
    assert failure.reason == MISSING_IDENTITY_MESSAGE
    assert failure.data["Call Log #"] == "690002"

    with runner.session_factory() as db:
        call_logs = set(db.execute(select(RmaRecord.call_log_number)).scalars())
        assert "690002" not in call_logs

        stored = db.execute(select(ImportFailure)).scalar_one()
        assert stored.row_number == 2
        assert stored.kind == "rejected"
        assert json.loads(stored.raw_record)["S. No."] == "2"


def test_duplicate_supplied_numbers_are_remapped(runner: IngestionRunner) -> None:
    rows = [sheet_row(1, **{"RMA #": "RMA-TEST-1"}), sheet_row(2, **{"RMA #": "RMA-TEST-1"})]

    result = runner.run_records(rows)

    assert result.outcome.inserted == 2
    assert result.outcome.duplicates == 1
    with runner.session_factory() as db:
        first = db.execute(select(RmaRecord).where(RmaRecord.call_log_number == "690001")).scalar_one()
        second = db.execute(select(RmaRecord).where(RmaRecord.call_log_number == "690002")).scalar_one()
        assert first.rma_number == "RMA-TEST-1"
        assert first.original_rma_number is None
        assert second.rma_number != "RMA-TEST-1"
        assert second.rma_number.startswith("RMA-")
        assert second.original_rma_number == "RMA-TEST-1"


def test_resubmission_remaps_against_existing_records(runner: IngestionRunner) -> None:
    runner.run_records([sheet_row(1, **{"RMA #": "176020"})])

    result = runner.run_records([sheet_row(1, **{"RMA #": "176020"})])

    assert result.outcome.inserted == 1
    assert result.outcome.duplicates == 1
    with runner.session_factory() as db:
        originals = list(db.execute(select(RmaRecord.original_rma_number).order_by(RmaRecord.id)).scalars())
        assert originals == [None, "176020"]


def test_store_validation_failure_is_isolated(runner: IngestionRunner) -> None:
    rows = [sheet_row(index) for index in range(1, 6)]
    rows[2]["Warranty Status"] = "Lifetime"
    for row in rows:
        row.setdefault("Warranty Status", "In Warranty")

    result = runner.run_records(rows)

    assert result.status == "done"
    assert result.outcome.inserted == 4
    [failure] = result.outcome.failures
    assert failure.row_number == 3
    assert "Lifetime" in failure.reason


def test_missing_required_dates_fail_only_that_row(runner: IngestionRunner) -> None:
    rows = [
        sheet_row(1),
        sheet_row(2, **{"Ascomp Raised Date": "", "Customer Error Date": "not a date"}),
    ]

    result = runner.run_records(rows)

    assert result.outcome.inserted == 1
    assert [failure.row_number for failure in result.outcome.failures] == [2]
    assert result.outcome.failures[0].reason.startswith("RMA validation failed")


def test_missing_file_aborts_the_run(runner: IngestionRunner, temp_workspace: Path) -> None:
    result = runner.run_file(temp_workspace / "missing.csv")

    assert result.status == "aborted"
    assert "not found" in (result.error or "")
    payload = result.to_json()
    assert payload["success"] is False
    assert payload["error"] == "RMA import failed"

    with runner.session_factory() as db:
        run = get_run_by_key(db, result.run_key)
        assert run.stage == "aborted"
        assert db.execute(select(func.count(RmaRecord.id))).scalar_one() == 0


def test_unreadable_source_aborts_the_run(runner: IngestionRunner, temp_workspace: Path) -> None:
    folder = temp_workspace / "folder.csv"
    folder.mkdir()

    result = runner.run_file(folder)

    assert result.status == "aborted"
    assert "could not be read" in (result.error or "")
    assert result.to_json()["success"] is False

    with runner.session_factory() as db:
        assert get_run_by_key(db, result.run_key).stage == "aborted"


def test_unreadable_json_source_aborts_the_run(runner: IngestionRunner, temp_workspace: Path) -> None:
    folder = temp_workspace / "bulk.json"
    folder.mkdir()

    result = runner.run_json_file(folder)

    assert result.status == "aborted"
    assert "could not be read" in (result.error or "")


def test_non_list_payload_aborts_the_run(runner: IngestionRunner) -> None:
    result = runner.run_records({"rmas": "nope"})

    assert result.status == "aborted"
    assert result.error == "RMA data must be an array"


def test_json_body_with_rmas_key(runner: IngestionRunner, temp_workspace: Path) -> None:
    source = temp_workspace / "bulk.json"
    source.write_text(json.dumps({"rmas": [sheet_row(1), sheet_row(2)]}), encoding="utf-8")

    result = runner.run_json_file(source)

    assert result.status == "done"
    summary = result.to_json()["summary"]
    assert summary["totalProcessed"] == 2
    assert summary["inserted"] == 2
    assert summary["errors"] == 0
    assert summary["errorDetails"] == []


def test_cancelled_run_keeps_partial_counts(test_settings, session_factory, temp_workspace: Path) -> None:
    cancel = threading.Event()
    cancel.set()
    runner = IngestionRunner(test_settings, session_factory)

    result = runner.run_records([sheet_row(index) for index in range(1, 4)], cancel_event=cancel)

    assert result.status == "cancelled"
    assert result.outcome.inserted == 0
    assert result.outcome.skipped == 3


def test_template_round_trips_through_the_pipeline(runner: IngestionRunner) -> None:
    rows = parse_csv_text(runner.template_csv())

    result = runner.run_records([row.as_dict() for row in rows])

    assert result.outcome.inserted == 1
    with runner.session_factory() as db:
        record = db.execute(select(RmaRecord)).scalar_one()
        assert record.rma_number == "176020"
        assert record.site_name == "Mumbai Office - Screen #1"
        assert record.shipped_thru == "DTDC"
        assert record.rma_return_shipped_thru == "DTDC"


def test_status_reports_counts_and_recent_imports(runner: IngestionRunner) -> None:
    runner.run_records([sheet_row(1, **{"RMA #": "176020"})])

    status = runner.status()

    assert status["totalRMAs"] == 1
    assert status["recentImports"][0]["rmaNumber"] == "176020"
    assert status["recentImports"][0]["caseStatus"] == "Completed"
    assert status["lastRuns"][0]["status"] == "done"
