from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from cms_api.core.config import DATABASE_URL, DB_ECHO, DB_MAX_OVERFLOW, DB_POOL_SIZE, DB_POOL_TIMEOUT

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is set on every connection.
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str = DATABASE_URL, *, echo: bool = DB_ECHO) -> Engine:
    engine_kwargs: dict[str, object] = {
        "echo": echo,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in {"sqlite://", "sqlite+pysqlite://"}:
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update(
            {
                "pool_recycle": 1800,
                "pool_size": DB_POOL_SIZE,
                "max_overflow": DB_MAX_OVERFLOW,
                "pool_timeout": DB_POOL_TIMEOUT,
            }
        )
    engine = create_engine(url, **engine_kwargs)
    if url.startswith("sqlite"):
        _enable_sqlite_foreign_keys(engine)
    return engine


class Database:
    """Owns the engine and session factory; hands out transaction scopes.

    One instance is built by the application factory and passed to every store and
    service.
    """

    def __init__(self, url: str = DATABASE_URL, *, engine: Engine | None = None, echo: bool = DB_ECHO) -> None:
        self.engine = engine if engine is not None else build_engine(url, echo=echo)
        self._sessionmaker = sessionmaker(
            bind=self.engine,
            class_=Session,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    @property
    def url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def new_session(self) -> Session:
        return self._sessionmaker()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """BEGIN on entry, COMMIT on clean exit, ROLLBACK on any exception.

        The session (and its pooled connection) is always released.
        """
        session = self.new_session()
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def scope(self, tx: Session | None = None) -> Iterator[Session]:
        """Join the caller's transaction when given one, else run auto-committed."""
        if tx is not None:
            yield tx
            return
        with self.transaction() as session:
            yield session

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("database engine disposed url=%s", self.url)
