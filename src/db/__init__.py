"""Database utilities package."""

from .base import Base, get_engine, get_session_factory
from .engine import EmbeddedDatabase, load_sqlite_module
from .schema import AnalysisResultModel, ImageBase, JobModel

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "EmbeddedDatabase",
    "load_sqlite_module",
    "AnalysisResultModel",
    "ImageBase",
    "JobModel",
]
