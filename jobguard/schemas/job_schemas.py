from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from jobguard.utils.preprocessing import clean_optional

SortOption = Literal["created_at", "-created_at", "scam_probability", "-scam_probability", "risk_level"]
RiskLevelOption = Literal["low", "medium", "high"]


# ============== REQUESTS ==============


class JobScanForm(BaseModel):
    """Multipart form fields of a new scan. The file is validated separately."""

    job_url: Optional[HttpUrl] = None
    job_description: Optional[str] = Field(default=None, min_length=10, max_length=10000)
    company_name: Optional[str] = Field(default=None, max_length=200)
    company_website: Optional[HttpUrl] = None
    company_email: Optional[EmailStr] = None
    job_title: Optional[str] = Field(default=None, max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    salary_min: Optional[int] = Field(default=None, ge=0)
    salary_max: Optional[int] = Field(default=None, ge=0)
    salary_currency: Optional[str] = Field(default=None, max_length=10)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator(
        "job_url", "job_description", "company_name", "company_website", "company_email",
        "job_title", "location", "salary_min", "salary_max", "salary_currency", "notes",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):
        return clean_optional(v) if isinstance(v, str) else v

    @field_validator("company_email")
    @classmethod
    def _lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("salary_max")
    @classmethod
    def _salary_range(cls, v: Optional[int], info) -> Optional[int]:
        low = info.data.get("salary_min")
        if v is not None and low is not None and v < low:
            raise ValueError("salary_max must not be lower than salary_min")
        return v

    def has_content(self) -> bool:
        return bool(self.job_url or self.job_description)


class ReportRequest(BaseModel):
    reason: str = Field(min_length=10, max_length=500)

    @field_validator("reason", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


# ============== RESPONSES ==============


class WarningFlagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    severity: str
    description: str
    detected: bool


class UploadedFileOut(BaseModel):
    file_name: str
    original_name: Optional[str] = None
    size: Optional[int] = None
    mimetype: Optional[str] = None


class JobScanCreated(BaseModel):
    id: int
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    risk_level: str
    scam_probability: int
    status: str
    warning_flags: List[WarningFlagOut]
    created_at: datetime


class JobScanSummary(BaseModel):
    """List item: no file metadata and no analysis breakdown."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_url: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    location: Optional[str] = None
    risk_level: str
    scam_probability: int
    status: str
    report_viewed: bool
    is_reported: bool
    warning_flags: List[WarningFlagOut]
    created_at: datetime


class JobScanDetail(JobScanSummary):
    user_id: int
    job_description: Optional[str] = None
    company_website: Optional[str] = None
    company_email: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: Optional[str] = None
    notes: Optional[str] = None
    uploaded_file: Optional[UploadedFileOut] = None
    analysis_results: Optional[Dict[str, Any]] = None
    report_viewed_at: Optional[datetime] = None
    report_reason: Optional[str] = None
    updated_at: datetime

    @classmethod
    def from_submission(cls, submission) -> "JobScanDetail":
        detail = cls.model_validate(submission)
        if submission.has_file:
            detail.uploaded_file = UploadedFileOut(
                file_name=submission.file_name,
                original_name=submission.file_original_name,
                size=submission.file_size,
                mimetype=submission.file_mimetype,
            )
        return detail

