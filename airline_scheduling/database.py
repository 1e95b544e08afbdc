"""Database helpers for the airline scheduling service."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DEFAULT_DB_URL
from .errors import StoreError
from .models import Base

logger = logging.getLogger(__name__)

# Execution option that asks the SQLite "begin" hook for a write lock up front.
WRITE_LOCK_OPTION = "airline_write_lock"


def _configure_sqlite(engine: Engine) -> None:
    """Take over BEGIN from pysqlite so write transactions can start IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_session_factory(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    connect_args: Dict[str, object] | None = None,
    sqlite_timeout: float = 30.0,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair configured for SQLite by default."""

    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        final_connect_args: Dict[str, object] = {
            "check_same_thread": False,
            "timeout": sqlite_timeout,
        }
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    if db_url.endswith(":memory:"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
        )
    if is_sqlite:
        _configure_sqlite(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, session_factory


def init_db(
    db_url: str = DEFAULT_DB_URL, *, echo: bool = False, sqlite_timeout: float = 30.0
) -> sessionmaker[Session]:
    """Create all tables and return a session factory."""

    engine, session_factory = create_session_factory(
        db_url, echo=echo, sqlite_timeout=sqlite_timeout
    )
    Base.metadata.create_all(engine)
    logger.info("Schema ready at %s", engine.url.render_as_string(hide_password=True))
    return session_factory


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session], *, write_lock: bool = False
) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    With ``write_lock`` the transaction is opened holding the database write
    lock (``BEGIN IMMEDIATE`` on SQLite) so read-then-write sequences inside
    it cannot interleave with another writer.
    """

    session = session_factory()
    try:
        if write_lock:
            session.connection(execution_options={WRITE_LOCK_OPTION: True})
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database operation failed")
        raise StoreError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["WRITE_LOCK_OPTION", "create_session_factory", "init_db", "session_scope"]
