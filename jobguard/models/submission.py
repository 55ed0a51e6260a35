"""
Submission (job scan) model and its warning flags.

Lifecycle: pending -> analyzing -> completed | failed.
Scoring results are written once, when the scan leaves `analyzing`.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from jobguard.database import Base
from jobguard.utils.preprocessing import utcnow


class ScanStatus(str, enum.Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FlagCategory(str, enum.Enum):
    FAKE_RECRUITER = "fake_recruiter"
    PHISHING = "phishing"
    ADVANCE_FEE = "advance_fee"
    DATA_HARVESTING = "data_harvesting"
    MLM_DISGUISED = "mlm_disguised"
    UNREALISTIC_SALARY = "unrealistic_salary"
    VAGUE_DESCRIPTION = "vague_description"
    PRESSURE_TACTICS = "pressure_tactics"
    SUSPICIOUS_EMAIL = "suspicious_email"
    NO_COMPANY_PRESENCE = "no_company_presence"
    UPFRONT_PAYMENT = "upfront_payment"
    PERSONAL_INFO_REQUEST = "personal_info_request"


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_user_created", "user_id", "created_at"),
        Index("ix_submissions_risk_level", "risk_level"),
        Index("ix_submissions_scam_probability", "scam_probability"),
        Index("ix_submissions_company_name", "company_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)

    # Input
    job_url = Column(String(2048), nullable=True)
    job_description = Column(Text, nullable=True)
    company_name = Column(String(200), nullable=True)
    company_website = Column(String(2048), nullable=True)
    company_email = Column(String(255), nullable=True)
    job_title = Column(String(200), nullable=True)
    location = Column(String(200), nullable=True)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    # Uploaded file
    file_name = Column(String(255), nullable=True)       # stored name
    file_original_name = Column(String(255), nullable=True)
    file_path = Column(String(1024), nullable=True)
    file_size = Column(Integer, nullable=True)
    file_mimetype = Column(String(100), nullable=True)

    # Scoring results
    risk_level = Column(String(10), nullable=False, default=RiskLevel.LOW.value)
    scam_probability = Column(Integer, nullable=False, default=0)   # 0-100
    analysis_results = Column(JSON, nullable=True)                  # per-aspect breakdown

    status = Column(String(10), nullable=False, default=ScanStatus.PENDING.value)

    # Viewing / community reports
    report_viewed = Column(Boolean, nullable=False, default=False)
    report_viewed_at = Column(DateTime, nullable=True)
    is_reported = Column(Boolean, nullable=False, default=False)
    report_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("Account")
    warning_flags = relationship(
        "WarningFlag",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="WarningFlag.position",
    )

    @property
    def has_file(self) -> bool:
        return bool(self.file_path)

    @property
    def detected_flags(self):
        return [flag for flag in self.warning_flags if flag.detected]

    def __repr__(self):
        return f"<Submission(id={self.id}, user={self.user_id}, status='{self.status}', risk='{self.risk_level}')>"


class WarningFlag(Base):
    __tablename__ = "warning_flags"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)  # rule order

    type = Column(String(40), nullable=False, index=True)
    severity = Column(String(10), nullable=False)
    description = Column(String(255), nullable=False)
    detected = Column(Boolean, nullable=False, default=False)

    submission = relationship("Submission", back_populates="warning_flags")
