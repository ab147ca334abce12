"""Repository for jobs and stored analyses inside the database image."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from src.db.errors import JobValidationError
from src.db.schema import AnalysisResultModel, JobModel
from src.schemas.analysis import (
    AnalysisOutcome,
    Job,
    NewAnalysis,
    ResumeData,
    StoredAnalysis,
    outcome_from_json,
    outcome_to_json,
)
from src.services.database_session import DatabaseSession

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def _title_key(title: str) -> str:
    return title.strip().casefold()


class AnalysisRepository:
    """Typed CRUD over the ``jobs`` and ``analysisResults`` tables.

    Every mutating call runs inside ``DatabaseSession.mutation_scope`` and is
    therefore checkpointed to the blob store before it returns.
    """

    def __init__(self, db_session: DatabaseSession) -> None:
        self._db = db_session

    # Jobs

    def add_job(self, title: str, description: str) -> Job:
        title, description = self._validate_job(title, description)
        with self._db.mutation_scope() as session:
            self._ensure_unique_title(session, title)
            model = JobModel(title=title, description=description, created_at=_utc_timestamp())
            session.add(model)
            session.flush()
            job = self._model_to_job(model)
        logger.info("Added job %s (%s)", job.id, job.title)
        return job

    def get_job(self, job_id: int) -> Optional[Job]:
        with self._db.session_scope() as session:
            model = session.get(JobModel, job_id)
            return self._model_to_job(model) if model is not None else None

    def find_job_by_title(self, title: str) -> Optional[Job]:
        """Case-insensitive lookup ignoring surrounding whitespace."""
        with self._db.session_scope() as session:
            model = self._find_title(session, title)
            return self._model_to_job(model) if model is not None else None

    def get_all_jobs(self) -> List[Job]:
        stmt = select(JobModel).order_by(JobModel.created_at.desc(), JobModel.id.desc())
        with self._db.session_scope() as session:
            return [self._model_to_job(model) for model in session.scalars(stmt).all()]

    def update_job(self, job_id: int, title: str, description: str) -> Optional[Job]:
        """Edit a job in place. Stored analyses keep their own snapshot."""
        title, description = self._validate_job(title, description)
        with self._db.mutation_scope() as session:
            model = session.get(JobModel, job_id)
            if model is None:
                return None
            self._ensure_unique_title(session, title, exclude_id=job_id)
            model.title = title
            model.description = description
            session.add(model)
            session.flush()
            return self._model_to_job(model)

    def delete_job_and_analyses(self, job_id: int) -> bool:
        """Delete a job; its analyses go with it through the foreign key cascade."""
        with self._db.mutation_scope() as session:
            result = session.execute(delete(JobModel).where(JobModel.id == job_id))
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted job %s and its analyses", job_id)
        return deleted

    # Analyses

    def add_analysis(self, data: NewAnalysis) -> StoredAnalysis:
        resume = data.resume_data
        with self._db.mutation_scope() as session:
            model = AnalysisResultModel(
                job_id=data.job_id,
                job_title=data.job_title,
                file_name=data.file_name,
                resume_hash=data.resume_hash,
                job_desc_hash=data.job_desc_hash,
                job_description=data.job_description,
                resume_data=json.dumps(resume.to_storage_dict()),
                analysis=outcome_to_json(data.analysis),
                created_at=_utc_timestamp(),
                resume_file=resume.file_blob,
                resume_mime_type=resume.file_mime_type or None,
            )
            session.add(model)
            session.flush()
            return self._model_to_analysis(model)

    def get_analysis(self, analysis_id: int) -> Optional[StoredAnalysis]:
        with self._db.session_scope() as session:
            model = session.get(AnalysisResultModel, analysis_id)
            return self._model_to_analysis(model) if model is not None else None

    def get_all_analyses(self, job_id: Optional[int] = None) -> List[StoredAnalysis]:
        stmt = select(AnalysisResultModel).order_by(
            AnalysisResultModel.created_at.desc(), AnalysisResultModel.id.desc()
        )
        if job_id is not None:
            stmt = stmt.where(AnalysisResultModel.job_id == job_id)
        with self._db.session_scope() as session:
            return [self._model_to_analysis(model) for model in session.scalars(stmt).all()]

    def get_analysis_hashes_for_job(self, job_id: int) -> List[str]:
        stmt = select(AnalysisResultModel.resume_hash).where(AnalysisResultModel.job_id == job_id)
        with self._db.session_scope() as session:
            return list(session.scalars(stmt).all())

    def delete_analysis(self, analysis_id: int) -> bool:
        with self._db.mutation_scope() as session:
            result = session.execute(
                delete(AnalysisResultModel).where(AnalysisResultModel.id == analysis_id)
            )
            return result.rowcount > 0

    def clear_all_analyses(self, job_id: int) -> int:
        with self._db.mutation_scope() as session:
            result = session.execute(
                delete(AnalysisResultModel).where(AnalysisResultModel.job_id == job_id)
            )
            removed = result.rowcount
        logger.info("Cleared %d analyses for job %s", removed, job_id)
        return removed

    def update_analysis(
        self,
        analysis_id: int,
        new_analysis: AnalysisOutcome,
        new_job_desc_hash: str,
        new_job_description: str,
    ) -> Optional[StoredAnalysis]:
        """Overwrite the result of a re-analysis, keeping id and createdAt."""
        with self._db.mutation_scope() as session:
            model = session.get(AnalysisResultModel, analysis_id)
            if model is None:
                return None
            model.analysis = outcome_to_json(new_analysis)
            model.job_desc_hash = new_job_desc_hash
            model.job_description = new_job_description
            session.add(model)
            session.flush()
            return self._model_to_analysis(model)

    # Helpers

    @staticmethod
    def _validate_job(title: str, description: str) -> tuple[str, str]:
        title = (title or "").strip()
        if not title:
            raise JobValidationError("Job title cannot be empty")
        if not (description or "").strip():
            raise JobValidationError("Job description cannot be empty")
        return title, description

    def _ensure_unique_title(self, session: Session, title: str, exclude_id: Optional[int] = None) -> None:
        existing = self._find_title(session, title)
        if existing is not None and existing.id != exclude_id:
            raise JobValidationError(f"A job titled '{existing.title}' already exists")

    @staticmethod
    def _find_title(session: Session, title: str) -> Optional[JobModel]:
        wanted = _title_key(title)
        for model in session.scalars(select(JobModel)).all():
            if _title_key(model.title) == wanted:
                return model
        return None

    @staticmethod
    def _model_to_job(model: JobModel) -> Job:
        return Job(
            id=model.id,
            title=model.title,
            description=model.description,
            created_at=_parse_timestamp(model.created_at),
        )

    def _model_to_analysis(self, model: AnalysisResultModel) -> StoredAnalysis:
        resume_data = ResumeData.from_storage(
            self._deserialize_resume_data(model.resume_data),
            fallback_file_name=model.file_name,
            file_blob=model.resume_file,
            file_mime_type=model.resume_mime_type,
        )
        return StoredAnalysis(
            id=model.id,
            job_id=model.job_id,
            job_title=model.job_title,
            file_name=model.file_name,
            resume_hash=model.resume_hash,
            job_desc_hash=model.job_desc_hash,
            job_description=model.job_description,
            resume_data=resume_data,
            analysis=outcome_from_json(model.analysis),
            created_at=_parse_timestamp(model.created_at),
        )

    @staticmethod
    def _deserialize_resume_data(raw: Optional[str]) -> dict:
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}
