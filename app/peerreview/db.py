from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.peerreview.config import is_production_env

logger = logging.getLogger(__name__)


class Database:
    """
    Shared database handle: one engine (connection pool) plus a sessionmaker.

    Safe to share across request threads; the pool does its own locking.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.sessionmaker = sessionmaker(
            bind=engine,
            class_=Session,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )
        self.closed = False

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Yields a session and commits/rolls back."""
        s: Session = self.sessionmaker()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def create_all(self) -> None:
        from app.peerreview.models import Base

        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        """Release every pooled connection. Checked-out connections close when returned."""
        self.engine.dispose()
        self.closed = True
        logger.info("Database connection pool closed")


def init_db(db_url: str, *, env: str = "development") -> Database:
    is_postgres = db_url.startswith("postgres")
    engine_kwargs: dict[str, object] = {
        "future": True,
        "pool_pre_ping": True,
    }
    if is_postgres:
        engine_kwargs.update(
            {
                "pool_recycle": 1800,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_timeout": 30,
            }
        )
    elif db_url.startswith("sqlite"):
        # request handlers run on their own threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(db_url, **engine_kwargs)
    if not is_production_env(env):
        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            logger.debug("DB connection checkout from pool")
    logger.info("Database pool initialised (backend=%s)", engine.dialect.name)
    return Database(engine)
