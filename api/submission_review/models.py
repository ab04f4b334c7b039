from enum import Enum
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FlagCode(str, Enum):
    SHORT_DESCRIPTION = "SHORT_DESCRIPTION"
    SHORT_TITLE = "SHORT_TITLE"
    MISSING_EVIDENCE = "MISSING_EVIDENCE"
    INVALID_EVIDENCE_LINK = "INVALID_EVIDENCE_LINK"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"
    HIGH_SUBMISSION_FREQUENCY = "HIGH_SUBMISSION_FREQUENCY"
    HIGH_REJECTION_HISTORY = "HIGH_REJECTION_HISTORY"
    INAPPROPRIATE_CONTENT = "INAPPROPRIATE_CONTENT"
    SPAM_DETECTED = "SPAM_DETECTED"
    LOW_QUALITY_CONTENT = "LOW_QUALITY_CONTENT"


class RecommendedAction(str, Enum):
    APPROVE = "approve"
    REVIEW = "review"
    REJECT = "reject"


class SubmissionInput(BaseModel):
    """Record submission as posted by the record-creation flow."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    description: str
    evidence_url: str = Field(default="", alias="googleDriveLink", description="Link to externally hosted proof")
    author_id: str = Field(..., alias="userId")

    @field_validator("evidence_url", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return "" if v is None else v


class SubmissionHistoryRecord(BaseModel):
    id: str
    title: str = ""
    created_at: Optional[str] = None
    status: Optional[Literal["pending", "verified", "rejected", "broken"]] = None


class ModerationVerdict(BaseModel):
    # Model replies are loosely shaped: unknown keys are dropped and
    # missing booleans read as "not detected".
    model_config = ConfigDict(extra="ignore")

    hasInappropriateContent: bool = False
    hasSpam: bool = False
    contentQuality: Optional[Literal["high", "medium", "low"]] = None
    concerns: List[str] = Field(default_factory=list)

    @field_validator("hasInappropriateContent", "hasSpam", mode="before")
    @classmethod
    def _truthy(cls, v):
        # each signal is read on its own: null or odd values never void the verdict
        if isinstance(v, (list, dict)):
            return True
        return bool(v)

    @field_validator("contentQuality", mode="before")
    @classmethod
    def _normalize_quality(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v if v in ("high", "medium", "low") else None
        return None

    @field_validator("concerns", mode="before")
    @classmethod
    def _normalize_concerns(cls, v):
        if not isinstance(v, list):
            return []
        return [str(c) for c in v]


class AssessmentDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    textLength: int
    flagCount: int
    timestamp: str


class AssessmentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    fraudScore: float = Field(..., ge=0.0, le=1.0)
    contentQualityScore: float = Field(..., ge=0.0, le=1.0)
    flags: List[FlagCode]
    recommendedAction: RecommendedAction
    suggestions: List[str]
    details: AssessmentDetails


class ErrorResponse(BaseModel):
    error: str
