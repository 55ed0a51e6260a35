"""
Job scan endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from jobguard.api.security import enforce_rate_limit, get_current_account, rate_limit, rate_limit_key
from jobguard.database import get_db
from jobguard.models.account import Account
from jobguard.schemas.job_schemas import (
    JobScanCreated,
    JobScanDetail,
    JobScanForm,
    JobScanSummary,
    ReportRequest,
    RiskLevelOption,
    SortOption,
    WarningFlagOut,
)
from jobguard.services import analytics_service, job_service
from jobguard.services.job_service import UploadedDocument
from jobguard.services.storage_service import LocalFileStorage, get_storage

router = APIRouter(
    prefix="/jobs",
    tags=["jobs"],
    dependencies=[Depends(rate_limit("general"))],
)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limit("scan"))])
async def create_job_scan(
    request: Request,
    job_url: Optional[str] = Form(None),
    job_description: Optional[str] = Form(None),
    company_name: Optional[str] = Form(None),
    company_website: Optional[str] = Form(None),
    company_email: Optional[str] = Form(None),
    job_title: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    salary_min: Optional[str] = Form(None),
    salary_max: Optional[str] = Form(None),
    salary_currency: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    job_file: Optional[UploadFile] = File(None),
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    """Submit a posting by URL, text and/or an uploaded document; it is scored immediately."""
    form = JobScanForm(
        job_url=job_url,
        job_description=job_description,
        company_name=company_name,
        company_website=company_website,
        company_email=company_email,
        job_title=job_title,
        location=location,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_currency=salary_currency,
        notes=notes,
    )

    upload = None
    if job_file is not None and job_file.filename:
        enforce_rate_limit(request, "upload", rate_limit_key(request, account))
        upload = UploadedDocument(
            filename=job_file.filename,
            content_type=(job_file.content_type or "").split(";")[0].strip().lower(),
            data=await job_file.read(),
        )

    submission = job_service.create_submission(db, storage, account, form, upload)
    created = JobScanCreated(
        id=submission.id,
        job_title=submission.job_title,
        company_name=submission.company_name,
        risk_level=submission.risk_level,
        scam_probability=submission.scam_probability,
        status=submission.status,
        warning_flags=[WarningFlagOut.model_validate(flag) for flag in submission.detected_flags],
        created_at=submission.created_at,
    )
    return {
        "success": True,
        "message": "Job scan completed successfully",
        "data": {"job_scan": created},
    }


@router.get("")
def list_job_scans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: SortOption = Query("-created_at"),
    risk_level: Optional[RiskLevelOption] = Query(None),
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    items, total, pagination = job_service.list_submissions(db, account, page, limit, sort, risk_level)
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "pagination": pagination,
        "data": {"job_scans": [JobScanSummary.model_validate(item) for item in items]},
    }


@router.get("/stats")
def public_stats(db: Session = Depends(get_db)):
    """Public totals by risk level."""
    return {"success": True, "data": {"stats": analytics_service.public_stats(db)}}


@router.get("/{scan_id}")
def get_job_scan(
    scan_id: int,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    submission = job_service.get_submission(db, scan_id, account)
    return {"success": True, "data": {"job_scan": JobScanDetail.from_submission(submission)}}


@router.delete("/{scan_id}")
def delete_job_scan(
    scan_id: int,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    job_service.delete_submission(db, storage, scan_id, account)
    return {"success": True, "message": "Job scan deleted successfully", "data": {}}


@router.post("/{scan_id}/report")
def report_job_scan(
    scan_id: int,
    payload: ReportRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    job_service.report_submission(db, scan_id, account, payload.reason)
    return {
        "success": True,
        "message": "Job reported successfully. Thank you for helping keep our community safe!",
        "data": {},
    }
