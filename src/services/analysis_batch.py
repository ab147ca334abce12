"""Run resume batches against a job, skipping content that was already analyzed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from src.db.errors import CredentialError, JobNotFoundError
from src.schemas.analysis import (
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisResult,
    AnalysisSuccess,
    Job,
    NewAnalysis,
    ResumeData,
    StoredAnalysis,
)
from src.services.analysis_repository import AnalysisRepository
from src.services.hashing import create_hash

logger = logging.getLogger(__name__)

ResumeAnalyzer = Callable[[ResumeData, str], Union[AnalysisResult, Dict[str, Any]]]

INVALID_KEY_MARKER = "api key not valid"


def is_credential_failure(error: Exception) -> bool:
    return isinstance(error, CredentialError) or INVALID_KEY_MARKER in str(error).lower()


@dataclass
class BatchReport:
    """Outcome of one batch run."""

    job_id: int
    added: List[StoredAnalysis] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    empty: List[str] = field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def processed(self) -> int:
        return len(self.added) + len(self.duplicates) + len(self.empty)


class AnalysisBatchService:
    """Feeds resumes to an analyzer one at a time and stores each result.

    Resumes are processed sequentially: each stored result is checkpointed
    before the next resume starts, and a credential failure stops the batch
    while keeping everything stored so far.
    """

    def __init__(self, repository: AnalysisRepository, analyzer: ResumeAnalyzer) -> None:
        self._repository = repository
        self._analyzer = analyzer

    def run_batch(self, job_id: int, resumes: Sequence[ResumeData]) -> BatchReport:
        job = self._require_job(job_id)
        job_desc_hash = create_hash(job.description)
        seen_hashes = set(self._repository.get_analysis_hashes_for_job(job.id))
        report = BatchReport(job_id=job.id)

        for index, resume in enumerate(resumes, start=1):
            content = resume.content
            if not content:
                logger.info("Skipping '%s': no extracted content", resume.file_name)
                report.empty.append(resume.file_name)
                continue

            resume_hash = create_hash(content)
            if resume_hash in seen_hashes:
                logger.info("Skipping duplicate resume '%s' for job %s", resume.file_name, job.id)
                report.duplicates.append(resume.file_name)
                continue

            logger.info("Analyzing %d of %d: %s", index, len(resumes), resume.file_name)
            try:
                outcome = self._analyze(resume, job.description)
            except CredentialError as error:
                logger.error("Batch for job %s aborted: %s", job.id, error)
                report.aborted = True
                report.abort_reason = str(error)
                break

            stored = self._repository.add_analysis(
                NewAnalysis(
                    job_id=job.id,
                    job_title=job.title,
                    file_name=resume.file_name,
                    resume_hash=resume_hash,
                    job_desc_hash=job_desc_hash,
                    job_description=job.description,
                    resume_data=resume,
                    analysis=outcome,
                )
            )
            seen_hashes.add(resume_hash)
            report.added.append(stored)

        return report

    def reanalyze(self, analysis_id: int) -> StoredAnalysis:
        """Re-run a stored analysis against its job's current description.

        Raises:
            LookupError: If the analysis or its job no longer exists.
            CredentialError: If the analyzer rejects the credential.
        """
        stored = self._repository.get_analysis(analysis_id)
        if stored is None:
            raise LookupError(f"Analysis {analysis_id} not found")
        job = self._require_job(stored.job_id)

        outcome = self._analyze(stored.resume_data, job.description)
        updated = self._repository.update_analysis(
            stored.id,
            outcome,
            create_hash(job.description),
            job.description,
        )
        if updated is None:
            raise LookupError(f"Analysis {analysis_id} was deleted during re-analysis")
        return updated

    @staticmethod
    def is_stale(analysis: StoredAnalysis, job: Job) -> bool:
        """True when the job description changed since the analysis ran."""
        return analysis.job_desc_hash != create_hash(job.description)

    def _analyze(self, resume: ResumeData, job_description: str) -> AnalysisOutcome:
        try:
            result = self._analyzer(resume, job_description)
            if isinstance(result, AnalysisResult):
                return AnalysisSuccess.from_result(result)
            if not isinstance(result, Mapping):
                raise TypeError(f"Analyzer returned {type(result).__name__}, expected a mapping")
            return AnalysisSuccess(payload=dict(result))
        except Exception as error:
            if is_credential_failure(error):
                if isinstance(error, CredentialError):
                    raise
                raise CredentialError(str(error)) from error
            logger.warning("Analysis of '%s' failed: %s", resume.file_name, error)
            return AnalysisFailure(error=str(error) or "Unknown analysis error")

    def _require_job(self, job_id: int) -> Job:
        job = self._repository.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job
