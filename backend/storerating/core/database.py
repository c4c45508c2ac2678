import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from storerating.core.config import Settings
from storerating.models.base import Base


logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        # SQLite connections are shared between the threadpool workers
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True, pool_size=10, max_overflow=20)


class Database:
    """Engine and session factory owned by one application instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = build_engine(settings.database_url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self) -> None:
        # Create tables in dev/test without running Alembic
        if self.settings.env in {"dev", "test"}:
            import storerating.models  # noqa: F401  registers every table on Base.metadata

            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables ensured (env=%s)", self.settings.env)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
