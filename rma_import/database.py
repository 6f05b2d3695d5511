from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from rma_import.db_models import Base


def build_session_factory(database_url: str, *, pool_size: int = 5) -> sessionmaker[Session]:
    connect_args: dict[str, object] = {}
    engine_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        # Commit workers share one file; wait on the write lock instead of failing fast.
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30
    else:
        engine_args["pool_size"] = pool_size
        engine_args["max_overflow"] = pool_size

    engine = create_engine(database_url, future=True, connect_args=connect_args, **engine_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
