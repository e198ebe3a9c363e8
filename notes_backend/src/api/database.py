import logging
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.models import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    # SQLite's built-in lower() only folds ASCII; ilike() compiles to lower() on SQLite
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


class Database:
    """
    Store handle owning the engine and session factory.

    Built once per application and disposed on shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        engine_kwargs = {"future": True}
        is_sqlite = url.startswith("sqlite")
        if is_sqlite:
            # SQLite needs check_same_thread=False for multithreading in FastAPI
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(url):
                # one shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _register_sqlite_functions)
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_db(request: Request):
    """
    Dependency that provides a database session and ensures proper cleanup.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
