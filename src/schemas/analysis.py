"""Domain types for jobs, resumes and stored analyses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.db.errors import AnalysisPayloadError


class KeywordAnalysis(BaseModel):
    """Keyword overlap between a resume and a job description."""

    model_config = ConfigDict(populate_by_name=True)

    matching_keywords: List[str] = Field(
        default_factory=list,
        alias="matchingKeywords",
        description="Job keywords found in the resume",
    )
    missing_keywords: List[str] = Field(
        default_factory=list,
        alias="missingKeywords",
        description="Job keywords absent from the resume",
    )


class AnalysisResult(BaseModel):
    """Structured output of the resume analysis service."""

    model_config = ConfigDict(populate_by_name=True)

    candidate_name: str = Field(alias="candidateName", description="Candidate's full name")
    match_score: int = Field(alias="matchScore", description="Match score from 0 to 100")
    summary: str = Field(description="Short assessment of the candidate's fit")
    strengths: List[str] = Field(default_factory=list, description="Where the resume meets the job")
    areas_for_improvement: List[str] = Field(
        default_factory=list,
        alias="areasForImprovement",
        description="Gaps between the resume and the job",
    )
    keyword_analysis: KeywordAnalysis = Field(
        default_factory=KeywordAnalysis,
        alias="keywordAnalysis",
    )


@dataclass(frozen=True)
class AnalysisSuccess:
    """A successful analysis, kept as the exact payload the service returned."""

    payload: Dict[str, Any]

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisSuccess":
        return cls(payload=result.model_dump(by_alias=True))

    @property
    def result(self) -> AnalysisResult:
        """Typed view of ``payload``.

        Raises:
            AnalysisPayloadError: If the payload lacks fields the view needs.
        """
        try:
            return AnalysisResult.model_validate(self.payload)
        except ValidationError as error:
            raise AnalysisPayloadError(f"Stored analysis does not match the result shape: {error}") from error


@dataclass(frozen=True)
class AnalysisFailure:
    error: str


AnalysisOutcome = Union[AnalysisSuccess, AnalysisFailure]


def outcome_to_json(outcome: AnalysisOutcome) -> str:
    """Serialize an outcome as the ``analysis`` column stores it."""
    if isinstance(outcome, AnalysisSuccess):
        return json.dumps(outcome.payload)
    if isinstance(outcome, AnalysisFailure):
        return json.dumps({"error": outcome.error})
    raise TypeError(f"Unsupported analysis outcome: {type(outcome).__name__}")


def outcome_from_json(raw: str) -> AnalysisOutcome:
    """Rebuild an outcome from the ``analysis`` column.

    A payload with an ``error`` key is a failure; anything else is returned
    unchanged as a success.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as error:
        raise AnalysisPayloadError(f"Stored analysis is not valid JSON: {error}") from error
    if isinstance(payload, dict) and "error" in payload:
        return AnalysisFailure(error=str(payload["error"]))
    return AnalysisSuccess(payload=payload)


@dataclass
class Job:
    """A stored job description."""

    id: int
    title: str
    description: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ResumeImage:
    base64: str
    mime_type: str


@dataclass
class ResumeData:
    """Extracted resume content plus the raw uploaded file."""

    file_name: str
    text: Optional[str] = None
    image: Optional[ResumeImage] = None
    file_blob: bytes = b""
    file_mime_type: str = ""

    @property
    def content(self) -> str:
        """Text used for fingerprinting: extracted text, else the image payload."""
        if self.text:
            return self.text
        if self.image is not None:
            return self.image.base64 or ""
        return ""

    def to_storage_dict(self) -> Dict[str, Any]:
        image = None
        if self.image is not None:
            image = {"base64": self.image.base64, "mimeType": self.image.mime_type}
        return {"fileName": self.file_name, "text": self.text, "image": image}

    @classmethod
    def from_storage(
        cls,
        payload: Dict[str, Any],
        *,
        fallback_file_name: str,
        file_blob: Optional[bytes],
        file_mime_type: Optional[str],
    ) -> "ResumeData":
        raw_image = payload.get("image")
        image = None
        if raw_image:
            image = ResumeImage(base64=raw_image.get("base64", ""), mime_type=raw_image.get("mimeType", ""))
        return cls(
            file_name=payload.get("fileName") or fallback_file_name,
            text=payload.get("text"),
            image=image,
            file_blob=bytes(file_blob) if file_blob is not None else b"",
            file_mime_type=file_mime_type or "",
        )


@dataclass
class NewAnalysis:
    """Everything needed to store one analysis; id and timestamp come from the store."""

    job_id: int
    job_title: str
    file_name: str
    resume_hash: str
    job_desc_hash: str
    job_description: str
    resume_data: ResumeData
    analysis: AnalysisOutcome


@dataclass
class StoredAnalysis:
    """An analysis row read back from the database image."""

    id: int
    job_id: int
    job_title: str
    file_name: str
    resume_hash: str
    job_desc_hash: str
    job_description: str
    resume_data: ResumeData
    analysis: AnalysisOutcome
    created_at: datetime

    @property
    def succeeded(self) -> bool:
        return isinstance(self.analysis, AnalysisSuccess)
