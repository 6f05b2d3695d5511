from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_url: str
    log_level: str
    batch_size: int
    commit_workers: int
    batch_pause_seconds: float
    commit_max_retries: int
    retry_backoff_seconds: float
    rma_number_prefix: str
    default_created_by: str
    max_upload_bytes: int
    inbox_dir: str
    archive_dir: str
    schedule_hour_utc: int
    schedule_minute_utc: int


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "rma-import"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./rma.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        batch_size=int(os.getenv("BATCH_SIZE", "50")),
        commit_workers=int(os.getenv("COMMIT_WORKERS", "50")),
        batch_pause_seconds=float(os.getenv("BATCH_PAUSE_SECONDS", "0.1")),
        commit_max_retries=int(os.getenv("COMMIT_MAX_RETRIES", "1")),
        retry_backoff_seconds=float(os.getenv("RETRY_BACKOFF_SECONDS", "0")),
        rma_number_prefix=os.getenv("RMA_NUMBER_PREFIX", "RMA"),
        default_created_by=os.getenv("DEFAULT_CREATED_BY", "Pankaj"),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024))),
        inbox_dir=os.getenv("INBOX_DIR", "./data/inbox"),
        archive_dir=os.getenv("ARCHIVE_DIR", "./data/archive"),
        schedule_hour_utc=int(os.getenv("SCHEDULE_HOUR_UTC", "2")),
        schedule_minute_utc=int(os.getenv("SCHEDULE_MINUTE_UTC", "0")),
    )
