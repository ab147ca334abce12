"""Durable key-value store for opaque binary values."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import BLOB_STORE_URL
from src.db.base import Base, dispose_engine, get_engine, get_session_factory
from src.db.errors import BlobStoreUnavailableError
from src.db.models import BlobEntryModel

logger = logging.getLogger(__name__)


class BlobStore:
    """Encapsulates persistence of binary values in a local SQLite file."""

    def __init__(self, database_url: str = BLOB_STORE_URL) -> None:
        self.database_url = database_url
        self._engine = None
        self._session_factory = None

    def open(self) -> None:
        """Connect and create the backing table if needed.

        Raises:
            BlobStoreUnavailableError: If the durable store cannot be reached.
        """
        try:
            self._engine = get_engine(self.database_url)
            self._session_factory = get_session_factory(self.database_url)
            Base.metadata.create_all(bind=self._engine)
        except (SQLAlchemyError, OSError) as error:
            self._engine = None
            self._session_factory = None
            raise BlobStoreUnavailableError(
                f"Local blob store at {self.database_url} is unavailable: {error}"
            ) from error
        logger.info("Blob store opened at %s", self.database_url)

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    @contextmanager
    def session_scope(self) -> Iterable[Session]:
        if self._session_factory is None:
            self.open()
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as error:
            session.rollback()
            raise BlobStoreUnavailableError(f"Blob store operation failed: {error}") from error
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under ``key``, or ``None`` when absent."""
        with self.session_scope() as session:
            model = session.get(BlobEntryModel, key)
            if model is None:
                return None
            return bytes(model.value)

    def put(self, key: str, value: bytes) -> None:
        with self.session_scope() as session:
            model = session.get(BlobEntryModel, key)
            if model is None:
                model = BlobEntryModel(key=key)
            model.value = bytes(value)
            model.updated_at = datetime.now(timezone.utc)
            session.add(model)
        logger.debug("Stored %d bytes under key %s", len(value), key)

    def delete(self, key: str) -> bool:
        with self.session_scope() as session:
            model = session.get(BlobEntryModel, key)
            if model is None:
                return False
            session.delete(model)
            return True

    def close(self) -> None:
        dispose_engine(self.database_url)
        self._engine = None
        self._session_factory = None
