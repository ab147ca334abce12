"""Lifecycle of the in-memory database image and its durable checkpoints."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import BLOB_STORE_KEY, EXPORT_FILE_PREFIX
from src.db.engine import EmbeddedDatabase, Statement, load_sqlite_module
from src.db.errors import (
    ConstraintViolationError,
    DatabaseUnavailableError,
    InvalidImportError,
    SessionStateError,
)
from src.db.schema import REQUIRED_TABLES, ImageBase
from src.services.blob_store import BlobStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    NEEDS_CHOICE = "needs-choice"
    READY = "ready"
    IMPORTING = "importing"


class DatabaseSession:
    """Owns one database image: load, mutate, checkpoint, import and export.

    Every mutation is followed by a checkpoint that serializes the whole
    image and overwrites the single blob store key, so write cost grows
    with the total database size.
    """

    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        storage_key: str = BLOB_STORE_KEY,
    ) -> None:
        self._blob_store = blob_store or BlobStore()
        self._storage_key = storage_key
        self._database: Optional[EmbeddedDatabase] = None
        self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def initialize(self) -> bool:
        """Load the stored image if there is one.

        Returns:
            True when an existing image was loaded (state ``ready``), False
            when the caller must create a new database or import one
            (state ``needs-choice``).

        Raises:
            DatabaseUnavailableError: If the engine, the blob store or the
                stored image cannot be used.
        """
        if self._state == SessionState.READY:
            return True
        self._require_state(SessionState.UNINITIALIZED, SessionState.NEEDS_CHOICE)

        self._state = SessionState.INITIALIZING
        try:
            load_sqlite_module()
            self._blob_store.open()
            image = self._blob_store.get(self._storage_key)
            if image is None:
                logger.info("No stored database image under key %s", self._storage_key)
                self._state = SessionState.NEEDS_CHOICE
                return False

            self._database = self._open_image(image)
        except DatabaseUnavailableError:
            self._state = SessionState.UNINITIALIZED
            logger.exception("Database initialization failed")
            raise
        except Exception as error:
            self._state = SessionState.UNINITIALIZED
            logger.exception("Database initialization failed")
            raise DatabaseUnavailableError(f"Stored database image could not be loaded: {error}") from error

        self._state = SessionState.READY
        logger.info("Loaded stored database image (%d bytes)", len(image))
        return True

    def create_new(self) -> None:
        """Replace the active image with an empty database holding the fixed schema."""
        self._require_state(SessionState.NEEDS_CHOICE, SessionState.READY)
        if self._state == SessionState.READY:
            logger.warning("Creating a new database replaces the current one")

        database = EmbeddedDatabase.create(ImageBase.metadata)
        try:
            self._blob_store.put(self._storage_key, database.export_image())
        except Exception:
            database.close()
            raise

        self._swap(database)
        self._state = SessionState.READY
        logger.info("Created new database image")

    def import_file(self, data: bytes) -> None:
        """Replace the active image with ``data`` after validating it.

        Raises:
            InvalidImportError: If ``data`` is not a database image with the
                expected tables. The active image is left untouched.
        """
        self._require_state(SessionState.NEEDS_CHOICE, SessionState.READY)
        previous_state = self._state
        self._state = SessionState.IMPORTING
        try:
            candidate = self._probe_import(data)
            try:
                self._blob_store.put(self._storage_key, candidate.export_image())
            except Exception:
                candidate.close()
                raise
        except Exception:
            self._state = previous_state
            raise

        self._swap(candidate)
        self._state = SessionState.READY
        logger.info("Imported database image (%d bytes)", len(data))

    def export_file(self) -> bytes:
        """Serialize the active image for download."""
        return self._require_database().export_image()

    def export_filename(self, day: Optional[date] = None) -> str:
        day = day or date.today()
        return f"{EXPORT_FILE_PREFIX}_{day.isoformat()}.db"

    def export_to(self, directory, day: Optional[date] = None) -> Path:
        """Write the exported image into ``directory`` and return its path."""
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / self.export_filename(day)
        target.write_bytes(self.export_file())
        logger.info("Exported database image to %s", target)
        return target

    def checkpoint(self) -> None:
        """Write the full serialized image to the blob store."""
        image = self._require_database().export_image()
        self._blob_store.put(self._storage_key, image)
        logger.debug("Checkpointed %d bytes", len(image))

    def execute(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        return self._translate(self._require_database().execute, sql, params)

    def run(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> int:
        rowcount = self._translate(self._require_database().run, sql, params)
        self.checkpoint()
        return rowcount

    @contextmanager
    def session_scope(self) -> Iterable[Session]:
        session = self._require_database().new_session()
        try:
            yield session
            session.commit()
        except IntegrityError as error:
            session.rollback()
            raise ConstraintViolationError(str(error.orig)) from error
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def mutation_scope(self) -> Iterable[Session]:
        """Like ``session_scope`` but checkpoints after a successful commit."""
        with self.session_scope() as session:
            yield session
        self.checkpoint()

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None
        self._state = SessionState.UNINITIALIZED

    def _open_image(self, image: bytes) -> EmbeddedDatabase:
        database = EmbeddedDatabase.load_image(image)
        try:
            missing = REQUIRED_TABLES - database.table_names()
        except Exception:
            database.close()
            raise
        if missing:
            database.close()
            raise ValueError(f"image is missing tables: {', '.join(sorted(missing))}")
        return database

    def _probe_import(self, data: bytes) -> EmbeddedDatabase:
        if not data:
            raise InvalidImportError()
        try:
            return self._open_image(data)
        except (SQLAlchemyError, ValueError, sqlite3.Error) as error:
            logger.warning("Rejected database import: %s", error)
            raise InvalidImportError() from error

    def _swap(self, database: EmbeddedDatabase) -> None:
        previous = self._database
        self._database = database
        if previous is not None:
            previous.close()

    def _translate(self, func, sql, params):
        try:
            return func(sql, params)
        except IntegrityError as error:
            raise ConstraintViolationError(str(error.orig)) from error

    def _require_state(self, *allowed: SessionState) -> None:
        if self._state not in allowed:
            expected = ", ".join(state.value for state in allowed)
            raise SessionStateError(
                f"Operation requires state {expected}; session is '{self._state.value}'"
            )

    def _require_database(self) -> EmbeddedDatabase:
        self._require_state(SessionState.READY)
        return self._database
