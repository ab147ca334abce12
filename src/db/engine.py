"""Binding to the embedded SQL engine that holds the in-memory database image."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Set, Union

from sqlalchemy import MetaData, create_engine, event, inspect, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.expression import Executable

from src.db.errors import EngineUnavailableError

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]

_SQLITE_MODULE = None


def load_sqlite_module():
    """Load the SQLite engine once per process and return the driver module.

    Raises:
        EngineUnavailableError: If this interpreter's SQLite build cannot
            serialize and deserialize database images.
    """
    global _SQLITE_MODULE
    if _SQLITE_MODULE is None:
        connection_cls = sqlite3.Connection
        if not hasattr(connection_cls, "serialize") or not hasattr(connection_cls, "deserialize"):
            raise EngineUnavailableError(
                f"SQLite {sqlite3.sqlite_version} in this interpreter cannot serialize database images"
            )
        logger.info("Embedded SQLite engine %s loaded", sqlite3.sqlite_version)
        _SQLITE_MODULE = sqlite3
    return _SQLITE_MODULE


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _as_statement(sql: Statement) -> Executable:
    return text(sql) if isinstance(sql, str) else sql


class EmbeddedDatabase:
    """One in-memory SQLite database reachable through a single static connection."""

    def __init__(self) -> None:
        load_sqlite_module()
        self._engine: Engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(self._engine, "connect", _enable_foreign_keys)
        self._session_factory = sessionmaker(
            bind=self._engine, autoflush=False, autocommit=False, expire_on_commit=False
        )
        self._closed = False

    @classmethod
    def create(cls, metadata: MetaData) -> "EmbeddedDatabase":
        """Create an empty database and apply ``metadata``'s schema to it."""
        database = cls()
        metadata.create_all(bind=database.engine)
        return database

    @classmethod
    def load_image(cls, image: bytes) -> "EmbeddedDatabase":
        """Open a new database from a serialized image.

        SQLite defers header checks to the first query, so callers that need
        to know whether the image is usable should query it afterwards.
        """
        database = cls()
        try:
            with database._driver_connection() as raw:
                raw.deserialize(bytes(image))
                raw.execute("PRAGMA foreign_keys=ON")
        except Exception:
            database.close()
            raise
        return database

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def closed(self) -> bool:
        return self._closed

    def new_session(self) -> Session:
        return self._session_factory()

    def execute(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """Execute a statement and return its rows (empty for statements without rows)."""
        with self._engine.begin() as connection:
            result = connection.execute(_as_statement(sql), dict(params or {}))
            return result.fetchall() if result.returns_rows else []

    def run(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a statement without result rows and return its rowcount."""
        with self._engine.begin() as connection:
            result = connection.execute(_as_statement(sql), dict(params or {}))
            return result.rowcount

    def table_names(self) -> Set[str]:
        return set(inspect(self._engine).get_table_names())

    def export_image(self) -> bytes:
        """Serialize the whole database to bytes."""
        with self._driver_connection() as raw:
            return bytes(raw.serialize())

    def close(self) -> None:
        if self._closed:
            return
        self._engine.dispose()
        self._closed = True

    @contextmanager
    def _driver_connection(self) -> Iterator[sqlite3.Connection]:
        with self._engine.connect() as connection:
            yield connection.connection.driver_connection
