"""
Job scan submissions: creation with synchronous scoring, listing, viewing,
deletion and community reports.

Creation, scoring and persistence are one unit. If anything fails after an
uploaded file was written the file is removed, and a scoring failure leaves
the record in `failed` instead of `analyzing`.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.orm import Session

from jobguard.config import settings
from jobguard.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from jobguard.models.account import Account
from jobguard.models.submission import ScanStatus, Submission, WarningFlag
from jobguard.schemas.job_schemas import JobScanForm
from jobguard.services.document_service import extract_text
from jobguard.services.risk_service import ScoringResult, score_job_posting
from jobguard.services.storage_service import LocalFileStorage, StoredFile
from jobguard.utils.logging_config import StructuredLogger, metrics, track_scoring
from jobguard.utils.preprocessing import utcnow
from jobguard.utils.risk_levels import RISK_ORDER

logger = StructuredLogger(__name__)

ALLOWED_UPLOADS = {
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
    ".txt": {"text/plain"},
}

MISSING_CONTENT = "Please provide either a job URL, job description, or upload a file"


@dataclass
class UploadedDocument:
    filename: str
    content_type: str
    data: bytes


# ============== AUTHORIZATION ==============


def require_owner_or_admin(db: Session, submission_id: int, account: Account, action: str = "access") -> Submission:
    """Load a submission the account may act on. Existence is checked first."""
    submission = db.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError("Job scan not found")
    if submission.user_id != account.id and not account.is_admin:
        raise ForbiddenError(f"Not authorized to {action} this job scan")
    return submission


# ============== CREATE ==============


def validate_upload(upload: UploadedDocument) -> None:
    ext = Path(upload.filename or "").suffix.lower()
    if upload.content_type not in ALLOWED_UPLOADS.get(ext, set()):
        raise ValidationError("Only PDF, DOC, DOCX, and TXT files are allowed")
    if len(upload.data) > settings.max_file_size:
        max_mb = settings.max_file_size // (1024 * 1024)
        raise ValidationError(f"File size too large. Maximum size is {max_mb}MB")
    if not upload.data:
        raise ValidationError("Uploaded file is empty")


def merge_description(description: Optional[str], file_text: str) -> Optional[str]:
    file_text = file_text.strip()
    if not file_text:
        return description
    if not description:
        return file_text
    return f"{description}\n{file_text}"


@track_scoring
def _score(submission: Submission) -> ScoringResult:
    return score_job_posting(
        submission.job_description,
        submission.company_email,
        submission.company_website,
    )


def _apply_result(submission: Submission, result: ScoringResult) -> None:
    submission.warning_flags = [
        WarningFlag(
            position=position,
            type=flag.type,
            severity=flag.severity,
            description=flag.description,
            detected=flag.detected,
        )
        for position, flag in enumerate(result.flags)
    ]
    submission.scam_probability = result.scam_probability
    submission.risk_level = result.risk_level
    submission.analysis_results = result.details
    submission.status = ScanStatus.COMPLETED.value


def _mark_failed(db: Session, submission_id: int) -> None:
    db.query(Submission).filter(Submission.id == submission_id).update(
        {
            Submission.status: ScanStatus.FAILED.value,
            Submission.file_name: None,
            Submission.file_original_name: None,
            Submission.file_path: None,
            Submission.file_size: None,
            Submission.file_mimetype: None,
        },
        synchronize_session=False,
    )
    db.commit()


def create_submission(
    db: Session,
    storage: LocalFileStorage,
    account: Account,
    form: JobScanForm,
    upload: Optional[UploadedDocument] = None,
) -> Submission:
    if not form.has_content() and upload is None:
        raise ValidationError(
            MISSING_CONTENT,
            errors=[{"field": "job_description", "message": MISSING_CONTENT}],
        )
    if upload is not None:
        validate_upload(upload)

    stored: Optional[StoredFile] = None
    description = form.job_description
    try:
        if upload is not None:
            stored = storage.save(upload.data, upload.content_type, upload.filename)
            description = merge_description(description, extract_text(upload.data, upload.content_type))

        submission = Submission(
            user_id=account.id,
            job_url=str(form.job_url) if form.job_url else None,
            job_description=description,
            company_name=form.company_name,
            company_website=str(form.company_website) if form.company_website else None,
            company_email=form.company_email,
            job_title=form.job_title,
            location=form.location,
            salary_min=form.salary_min,
            salary_max=form.salary_max,
            salary_currency=form.salary_currency,
            notes=form.notes,
            status=ScanStatus.ANALYZING.value,
        )
        if stored is not None:
            submission.file_name = stored.name
            submission.file_original_name = stored.original_name
            submission.file_path = stored.path
            submission.file_size = stored.size
            submission.file_mimetype = stored.content_type

        db.add(submission)
        db.commit()
        db.refresh(submission)
    except Exception:
        db.rollback()
        if stored is not None:
            storage.delete(stored.path)
        raise

    submission_id = submission.id
    try:
        _apply_result(submission, _score(submission))
        db.commit()
    except Exception as e:
        logger.error("Job scan analysis failed", submission_id=submission_id, error=str(e), exc_info=True)
        db.rollback()
        if stored is not None:
            storage.delete(stored.path)
        _mark_failed(db, submission_id)
        raise InternalError("Job scan analysis failed") from e

    db.refresh(submission)
    metrics.increment("jobs.created")
    logger.info(
        "Job scan completed",
        submission_id=submission.id,
        risk_level=submission.risk_level,
        scam_probability=submission.scam_probability,
    )
    return submission


# ============== READ / LIST ==============


def _order_by(sort: str):
    if sort == "risk_level":
        risk_rank = case(RISK_ORDER, value=Submission.risk_level, else_=-1)
        return [risk_rank.asc(), Submission.created_at.desc()]

    column = getattr(Submission, sort.lstrip("-"))
    primary = column.desc() if sort.startswith("-") else column.asc()
    return [primary, Submission.id.desc() if sort.startswith("-") else Submission.id.asc()]


def list_submissions(
    db: Session,
    account: Account,
    page: int = 1,
    limit: int = 10,
    sort: str = "-created_at",
    risk_level: Optional[str] = None,
) -> Tuple[List[Submission], int, Dict[str, Dict[str, int]]]:
    """Page through the account's own scans. Returns (items, total, pagination)."""
    query = db.query(Submission).filter(Submission.user_id == account.id)
    if risk_level:
        query = query.filter(Submission.risk_level == risk_level)

    total = query.count()
    start = (page - 1) * limit
    items = query.order_by(*_order_by(sort)).offset(start).limit(limit).all()

    pagination: Dict[str, Dict[str, int]] = {}
    if start + limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}

    return items, total, pagination


def get_submission(db: Session, submission_id: int, account: Account, now: Optional[datetime] = None) -> Submission:
    """Fetch one scan; the first read marks it viewed."""
    submission = require_owner_or_admin(db, submission_id, account)
    if not submission.report_viewed:
        submission.report_viewed = True
        submission.report_viewed_at = now or utcnow()
        db.commit()
        db.refresh(submission)
    return submission


# ============== DELETE / REPORT ==============


def delete_submission(db: Session, storage: LocalFileStorage, submission_id: int, account: Account) -> None:
    submission = require_owner_or_admin(db, submission_id, account, action="delete")
    if submission.file_path:
        storage.delete(submission.file_path)

    db.delete(submission)
    db.commit()
    metrics.increment("jobs.deleted")
    logger.info("Job scan deleted", submission_id=submission_id, by=account.id)


def report_submission(db: Session, submission_id: int, account: Account, reason: str) -> Submission:
    submission = require_owner_or_admin(db, submission_id, account, action="report")
    submission.is_reported = True
    submission.report_reason = reason
    db.commit()
    db.refresh(submission)
    metrics.increment("jobs.reported")
    logger.info("Job scan reported", submission_id=submission_id, by=account.id)
    return submission
