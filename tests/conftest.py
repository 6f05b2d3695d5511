from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from rma_import.config import Settings
from rma_import.database import build_session_factory
from rma_import.pipeline import IngestionRunner

from helpers import FakeStore


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    (tmp_path / "data" / "inbox").mkdir(parents=True, exist_ok=True)
    (tmp_path / "data" / "archive").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def test_settings(temp_workspace: Path) -> Settings:
    return Settings(
        app_name="rma-import",
        database_url=f"sqlite:///{temp_workspace / 'test.db'}",
        log_level="INFO",
        batch_size=50,
        commit_workers=4,
        batch_pause_seconds=0,
        commit_max_retries=1,
        retry_backoff_seconds=0,
        rma_number_prefix="RMA",
        default_created_by="Pankaj",
        max_upload_bytes=1024 * 1024,
        inbox_dir=str(temp_workspace / "data" / "inbox"),
        archive_dir=str(temp_workspace / "data" / "archive"),
        schedule_hour_utc=2,
        schedule_minute_utc=0,
    )


@pytest.fixture()
def session_factory(test_settings: Settings) -> sessionmaker[Session]:
    return build_session_factory(test_settings.database_url)


@pytest.fixture()
def runner(test_settings: Settings, session_factory: sessionmaker[Session]) -> Generator[IngestionRunner, None, None]:
    yield IngestionRunner(test_settings, session_factory)


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()
