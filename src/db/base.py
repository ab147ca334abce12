"""SQLAlchemy base configuration for the durable blob store."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker, scoped_session, Session

from config.settings import BLOB_STORE_URL


class Base(DeclarativeBase):
    """Base class for blob store ORM models."""


def _prepare_sqlite_path(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    if not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def create_sqlalchemy_engine(database_url: str = BLOB_STORE_URL) -> Engine:
    """Create a SQLAlchemy engine for the file-backed blob store."""
    _prepare_sqlite_path(database_url)
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


_ENGINES: dict[str, Engine] = {}
_SESSION_FACTORIES: dict[str, Callable[[], Session]] = {}


def get_engine(database_url: str = BLOB_STORE_URL) -> Engine:
    engine = _ENGINES.get(database_url)
    if engine is None:
        engine = create_sqlalchemy_engine(database_url)
        _ENGINES[database_url] = engine
    return engine


def get_session_factory(database_url: str = BLOB_STORE_URL):
    factory = _SESSION_FACTORIES.get(database_url)
    if factory is None:
        engine = get_engine(database_url)
        factory = scoped_session(
            sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
        )
        _SESSION_FACTORIES[database_url] = factory
    return factory


def dispose_engine(database_url: str) -> None:
    """Drop the cached engine and session factory for ``database_url``."""
    factory = _SESSION_FACTORIES.pop(database_url, None)
    if factory is not None:
        factory.remove()
    engine = _ENGINES.pop(database_url, None)
    if engine is not None:
        engine.dispose()
