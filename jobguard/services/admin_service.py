"""
Admin dashboard rollups and paginated listings of accounts and scans.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from jobguard.models.account import Account
from jobguard.models.submission import RiskLevel, ScanStatus, Submission
from jobguard.utils.preprocessing import utcnow

RECENT_SCANS = 10
TOP_COMPANIES = 10
GROWTH_DAYS = 7
ACTIVE_USER_DAYS = 30


def _owner_summary(account: Optional[Account]) -> Optional[Dict[str, Any]]:
    if account is None:
        return None
    return {
        "id": account.id,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "email": account.email,
    }


def _counts_by(db: Session, column, keys: List[str]) -> Dict[str, int]:
    counts = {key: 0 for key in keys}
    for value, count in db.query(column, func.count(Submission.id)).group_by(column).all():
        if value:
            counts[value] = int(count)
    return counts


def _daily_growth(db: Session, created_at, since: datetime) -> List[Dict[str, Any]]:
    day = func.date(created_at)
    rows = (
        db.query(day, func.count())
        .filter(created_at >= since)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    return [{"date": str(value), "count": int(count)} for value, count in rows]


def dashboard(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()

    average = db.query(func.avg(Submission.scam_probability)).scalar()
    overview = {
        "total_users": db.query(func.count(Account.id)).scalar(),
        "total_scans": db.query(func.count(Submission.id)).scalar(),
        "verified_users": db.query(func.count(Account.id)).filter(Account.is_verified.is_(True)).scalar(),
        "active_users": db.query(func.count(Account.id))
        .filter(Account.last_login >= now - timedelta(days=ACTIVE_USER_DAYS))
        .scalar(),
        "average_scam_probability": round(float(average), 2) if average is not None else 0.0,
    }

    recent = (
        db.query(Submission)
        .options(joinedload(Submission.owner))
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .limit(RECENT_SCANS)
        .all()
    )

    company_count = func.count(Submission.id)
    top_companies = (
        db.query(Submission.company_name, company_count, func.avg(Submission.scam_probability))
        .filter(Submission.company_name.isnot(None), Submission.company_name != "")
        .group_by(Submission.company_name)
        .order_by(company_count.desc(), Submission.company_name.asc())
        .limit(TOP_COMPANIES)
        .all()
    )

    since = now - timedelta(days=GROWTH_DAYS)
    return {
        "overview": overview,
        "risk_levels": _counts_by(db, Submission.risk_level, [level.value for level in RiskLevel]),
        "status_counts": _counts_by(db, Submission.status, [status.value for status in ScanStatus]),
        "recent_scans": [
            {
                "id": scan.id,
                "company_name": scan.company_name,
                "job_title": scan.job_title,
                "risk_level": scan.risk_level,
                "scam_probability": scan.scam_probability,
                "created_at": scan.created_at,
                "user": _owner_summary(scan.owner),
            }
            for scan in recent
        ],
        "user_growth": _daily_growth(db, Account.created_at, since),
        "scan_growth": _daily_growth(db, Submission.created_at, since),
        "top_companies": [
            {
                "company_name": name,
                "count": int(count),
                "average_scam_probability": round(float(avg), 2) if avg is not None else 0.0,
            }
            for name, count, avg in top_companies
        ],
    }


def _page_info(page: int, limit: int, total: int) -> Dict[str, int]:
    return {"page": page, "pages": math.ceil(total / limit) if total else 0}


def list_accounts(db: Session, page: int = 1, limit: int = 20) -> Tuple[List[Account], int, Dict[str, int]]:
    query = db.query(Account)
    total = query.count()
    accounts = (
        query.order_by(Account.created_at.desc(), Account.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return accounts, total, _page_info(page, limit, total)


def list_scans(db: Session, page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], int, Dict[str, int]]:
    query = db.query(Submission)
    total = query.count()
    scans = (
        query.options(joinedload(Submission.owner))
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    items = [
        {
            "id": scan.id,
            "job_title": scan.job_title,
            "company_name": scan.company_name,
            "job_url": scan.job_url,
            "risk_level": scan.risk_level,
            "scam_probability": scan.scam_probability,
            "status": scan.status,
            "is_reported": scan.is_reported,
            "created_at": scan.created_at,
            "user": _owner_summary(scan.owner),
        }
        for scan in scans
    ]
    return items, total, _page_info(page, limit, total)
