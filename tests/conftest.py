import pytest

from src.schemas.analysis import AnalysisResult, KeywordAnalysis, ResumeData, ResumeImage
from src.services.analysis_repository import AnalysisRepository
from src.services.blob_store import BlobStore
from src.services.database_session import DatabaseSession


@pytest.fixture
def blob_store_url(tmp_path):
    return f"sqlite:///{tmp_path/'local_store.db'}"


@pytest.fixture
def blob_store(blob_store_url):
    store = BlobStore(database_url=blob_store_url)
    yield store
    store.close()


@pytest.fixture
def db_session(blob_store):
    session = DatabaseSession(blob_store=blob_store)
    assert session.initialize() is False
    session.create_new()
    yield session
    session.close()


@pytest.fixture
def repository(db_session):
    return AnalysisRepository(db_session)


@pytest.fixture
def make_resume():
    def _make(file_name="resume.pdf", text="Python developer with 5 years of experience", image=None):
        return ResumeData(
            file_name=file_name,
            text=text,
            image=ResumeImage(**image) if image else None,
            file_blob=b"%PDF-1.4 raw bytes for " + file_name.encode("utf-8"),
            file_mime_type="application/pdf",
        )

    return _make


@pytest.fixture
def make_result():
    def _make(name="Ada Lovelace", score=82):
        return AnalysisResult(
            candidate_name=name,
            match_score=score,
            summary="Strong backend background.",
            strengths=["Python", "SQL"],
            areas_for_improvement=["Kubernetes"],
            keyword_analysis=KeywordAnalysis(
                matching_keywords=["python", "sql"],
                missing_keywords=["kubernetes"],
            ),
        )

    return _make
