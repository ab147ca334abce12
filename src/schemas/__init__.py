"""Domain type exports."""

from .analysis import (
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisResult,
    AnalysisSuccess,
    Job,
    KeywordAnalysis,
    NewAnalysis,
    ResumeData,
    ResumeImage,
    StoredAnalysis,
)

__all__ = [
    "AnalysisFailure",
    "AnalysisOutcome",
    "AnalysisResult",
    "AnalysisSuccess",
    "Job",
    "KeywordAnalysis",
    "NewAnalysis",
    "ResumeData",
    "ResumeImage",
    "StoredAnalysis",
]
