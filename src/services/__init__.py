"""Services module exports."""

from .analysis_batch import AnalysisBatchService, BatchReport
from .analysis_repository import AnalysisRepository
from .blob_store import BlobStore
from .database_session import DatabaseSession, SessionState
from .hashing import create_hash, normalize_text

__all__ = [
    "AnalysisBatchService",
    "AnalysisRepository",
    "BatchReport",
    "BlobStore",
    "DatabaseSession",
    "SessionState",
    "create_hash",
    "normalize_text",
]
