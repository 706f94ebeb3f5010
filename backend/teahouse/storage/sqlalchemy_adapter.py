"""
SQLAlchemy implementation of the ledger store.

On SQLite every ``transaction()`` starts with ``BEGIN IMMEDIATE``, which takes
the database write lock up front. Two settlements of the same order therefore
run one after the other, the same guarantee ``SELECT ... FOR UPDATE`` on the
order row gives on PostgreSQL. Plain ``session()`` reads use a deferred
``BEGIN`` and do not queue behind writers.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from teahouse.storage.base import Storage
from teahouse.db.models import Base
from teahouse.db import init_db

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///teahouse.db"


def _configure_sqlite(engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        # Only write transactions take the lock up front; reads stay deferred
        if conn.get_execution_options().get("sqlite_immediate"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class SQLAlchemyStorage(Storage):
    """SQLAlchemy-backed ledger store."""

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, use_alembic: Optional[bool] = None):
        """
        Initialize storage and make sure the schema exists.

        Args:
            database_url: SQLAlchemy database URL
            use_alembic: run Alembic migrations instead of create_all;
                defaults to the USE_ALEMBIC environment variable
        """
        self.database_url = database_url
        is_sqlite = database_url.startswith("sqlite")

        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False, "timeout": 30} if is_sqlite else {},
            echo=False,
            future=True,
            pool_pre_ping=True,
        )
        if is_sqlite:
            _configure_sqlite(self.engine)

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        write_engine = self.engine.execution_options(sqlite_immediate=True) if is_sqlite else self.engine
        self.WriteSessionLocal = sessionmaker(bind=write_engine, expire_on_commit=False)

        if use_alembic is None:
            use_alembic = os.getenv("USE_ALEMBIC", "false").lower() == "true"
        init_db(self.engine, use_alembic=use_alembic, base=Base)
        logger.info("Ledger store ready at %s", self.database_url)

    def session(self) -> Session:
        return self.SessionLocal()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        session = self.WriteSessionLocal()
        try:
            with session.begin():
                yield session
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
