import logging
from pathlib import Path
import shutil

from apscheduler.schedulers.blocking import BlockingScheduler
from sqlalchemy.orm import Session, sessionmaker

from rma_import.config import Settings
from rma_import.pipeline import IngestionRunner
from rma_import.schemas import IngestionResult


logger = logging.getLogger(__name__)


def sweep_inbox(settings: Settings, session_factory: sessionmaker[Session]) -> list[IngestionResult]:
    inbox = Path(settings.inbox_dir)
    archive = Path(settings.archive_dir)
    if not inbox.is_dir():
        logger.warning("inbox directory missing", extra={"inbox_dir": str(inbox)})
        return []

    runner = IngestionRunner(settings, session_factory)
    results: list[IngestionResult] = []
    for path in sorted(inbox.glob("*.csv")):
        result = runner.run_file(path)
        results.append(result)

        # Aborted files stay in the inbox so the next sweep picks them up again.
        if result.status == "aborted":
            logger.error(
                "scheduled rma import aborted",
                extra={"file": path.name, "run_key": result.run_key, "error": result.error},
            )
            continue

        archive.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), archive / f"{result.run_key}-{path.name}")
        logger.info(
            "scheduled rma import completed",
            extra={
                "file": path.name,
                "run_key": result.run_key,
                "inserted": result.outcome.inserted,
                "errors": result.outcome.failed,
            },
        )
    return results


def start_scheduler(settings: Settings, session_factory: sessionmaker[Session], *, run_now: bool = False) -> None:
    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        sweep_inbox,
        "cron",
        args=[settings, session_factory],
        hour=settings.schedule_hour_utc,
        minute=settings.schedule_minute_utc,
        id="rma_inbox_import",
        replace_existing=True,
        max_instances=1,
    )

    logger.info(
        "scheduler started",
        extra={
            "inbox_dir": settings.inbox_dir,
            "schedule_hour_utc": settings.schedule_hour_utc,
            "schedule_minute_utc": settings.schedule_minute_utc,
        },
    )

    if run_now:
        sweep_inbox(settings, session_factory)

    scheduler.start()
