"""ORM models for the tables inside the database image.

Table and column names follow the exported file format (camelCase), so
images stay readable by any consumer of the same SQLite file.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, LargeBinary, Text
from sqlalchemy.orm import DeclarativeBase


class ImageBase(DeclarativeBase):
    """Base class for models stored in the database image."""


class JobModel(ImageBase):
    """A job description that resumes are matched against."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column("createdAt", Text, nullable=False)


class AnalysisResultModel(ImageBase):
    """One resume evaluated against one job."""

    __tablename__ = "analysisResults"

    id = Column(Integer, primary_key=True)
    job_id = Column("jobId", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    job_title = Column("jobTitle", Text, nullable=False)
    file_name = Column("fileName", Text, nullable=False)
    resume_hash = Column("resumeHash", Text, nullable=False)
    job_desc_hash = Column("jobDescHash", Text, nullable=False)
    job_description = Column("jobDescription", Text, nullable=False)
    resume_data = Column("resumeData", Text, nullable=False)
    analysis = Column("analysis", Text, nullable=False)
    created_at = Column("createdAt", Text, nullable=False)
    resume_file = Column("resumeFile", LargeBinary, nullable=True)
    resume_mime_type = Column("resumeMimeType", Text, nullable=True)


Index("idx_analysis_jobId", AnalysisResultModel.job_id)
Index("idx_analysis_hashes", AnalysisResultModel.resume_hash, AnalysisResultModel.job_desc_hash)

REQUIRED_TABLES = frozenset({JobModel.__tablename__, AnalysisResultModel.__tablename__})
