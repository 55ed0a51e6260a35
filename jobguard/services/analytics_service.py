"""
Read-only rollups over job scans.

Every query takes an optional owner scope and an inclusive created_at range.
Top-K flag rankings order by count descending, then category name.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, extract, func
from sqlalchemy.orm import Query, Session

from jobguard.models.submission import RiskLevel, ScanStatus, Submission, WarningFlag
from jobguard.utils.preprocessing import utcnow

ELEVATED_RISK = (RiskLevel.MEDIUM.value, RiskLevel.HIGH.value)
MONTH_BUCKETS = 12
TOP_FLAGS = 5
MAX_ALERTS = 50


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _average(value) -> float:
    return round(float(value), 2) if value is not None else 0.0


def _scoped(
    query: Query,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Query:
    if user_id is not None:
        query = query.filter(Submission.user_id == user_id)
    if start_date is not None:
        query = query.filter(Submission.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Submission.created_at <= end_date)
    return query


def one_year_before(now: datetime) -> datetime:
    try:
        return now.replace(year=now.year - 1)
    except ValueError:  # Feb 29
        return now.replace(year=now.year - 1, day=28)


# ============== BUILDING BLOCKS ==============


def risk_summary(
    db: Session,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    query = db.query(
        func.count(Submission.id),
        _count_where(Submission.risk_level == RiskLevel.HIGH.value),
        _count_where(Submission.risk_level == RiskLevel.MEDIUM.value),
        _count_where(Submission.risk_level == RiskLevel.LOW.value),
        func.avg(Submission.scam_probability),
        _count_where(Submission.is_reported.is_(True)),
    )
    total, high, medium, low, average, reported = _scoped(query, user_id, start_date, end_date).one()
    return {
        "total_scans": int(total),
        "high_risk": int(high),
        "medium_risk": int(medium),
        "low_risk": int(low),
        "average_scam_probability": _average(average),
        "reported": int(reported),
    }


def monthly_buckets(
    db: Session,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    newest_first: bool = True,
    limit: Optional[int] = MONTH_BUCKETS,
) -> List[Dict[str, int]]:
    year = extract("year", Submission.created_at)
    month = extract("month", Submission.created_at)
    query = db.query(
        year.label("year"),
        month.label("month"),
        func.count(Submission.id),
        _count_where(Submission.risk_level == RiskLevel.HIGH.value),
        _count_where(Submission.risk_level == RiskLevel.MEDIUM.value),
        _count_where(Submission.risk_level == RiskLevel.LOW.value),
    )
    query = _scoped(query, user_id, start_date, end_date).group_by(year, month)
    if newest_first:
        query = query.order_by(year.desc(), month.desc())
    else:
        query = query.order_by(year.asc(), month.asc())
    if limit:
        query = query.limit(limit)

    return [
        {
            "year": int(row_year),
            "month": int(row_month),
            "total_scans": int(total),
            "high_risk": int(high),
            "medium_risk": int(medium),
            "low_risk": int(low),
        }
        for row_year, row_month, total, high, medium, low in query.all()
    ]


def flag_counts(
    db: Session,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    elevated_only: bool = False,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    count = func.count(WarningFlag.id)
    query = (
        db.query(WarningFlag.type, count)
        .join(Submission, WarningFlag.submission_id == Submission.id)
        .filter(WarningFlag.detected.is_(True))
    )
    if elevated_only:
        query = query.filter(Submission.risk_level.in_(ELEVATED_RISK))
    query = (
        _scoped(query, user_id, start_date, end_date)
        .group_by(WarningFlag.type)
        .order_by(count.desc(), WarningFlag.type.asc())
    )
    if limit:
        query = query.limit(limit)
    return [{"type": flag_type, "count": int(n)} for flag_type, n in query.all()]


# ============== ENDPOINT ROLLUPS ==============


def user_analytics(
    db: Session,
    user_id: int,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    summary = risk_summary(db, user_id, start_date, end_date)
    return {
        "summary": {
            "total_scans": summary["total_scans"],
            "high_risk_scans": summary["high_risk"],
            "medium_risk_scans": summary["medium_risk"],
            "low_risk_scans": summary["low_risk"],
            "average_scam_probability": summary["average_scam_probability"],
        },
        "scans_by_month": [
            {
                "year": bucket["year"],
                "month": bucket["month"],
                "count": bucket["total_scans"],
                "high_risk": bucket["high_risk"],
            }
            for bucket in monthly_buckets(db, user_id, start_date, end_date)
        ],
        "top_warning_flags": flag_counts(db, user_id, start_date, end_date, limit=TOP_FLAGS),
    }


def global_analytics(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    summary = risk_summary(db, None, start_date, end_date)
    return {
        "global_stats": {
            "total_scans": summary["total_scans"],
            "scams_detected": summary["high_risk"],
            "safe_jobs": summary["low_risk"],
            "flagged_for_review": summary["medium_risk"],
            "average_scam_probability": summary["average_scam_probability"],
            "reported_jobs": summary["reported"],
        },
        "scam_type_distribution": flag_counts(db, None, start_date, end_date, elevated_only=True),
        "monthly_trends": [
            {
                "year": bucket["year"],
                "month": bucket["month"],
                "total_scans": bucket["total_scans"],
                "scams_detected": bucket["high_risk"],
                "safe_jobs": bucket["low_risk"],
            }
            for bucket in monthly_buckets(db, None, start_date, end_date)
        ],
    }


def trends(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Last twelve months, oldest month first."""
    since = one_year_before(now or utcnow())
    return {
        "monthly_trends": [
            {
                "year": bucket["year"],
                "month": bucket["month"],
                "total_scans": bucket["total_scans"],
                "scams_detected": bucket["high_risk"],
                "safe_jobs": bucket["low_risk"],
                "flagged_jobs": bucket["medium_risk"],
            }
            for bucket in monthly_buckets(db, start_date=since, newest_first=False, limit=None)
        ],
        "scam_type_distribution": flag_counts(db, start_date=since, elevated_only=True, limit=TOP_FLAGS),
    }


def recent_alerts(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """Public feed of completed medium/high scans. No owner data, no file or analysis details."""
    limit = max(1, min(limit, MAX_ALERTS))
    scans = (
        db.query(Submission)
        .filter(
            Submission.risk_level.in_(ELEVATED_RISK),
            Submission.status == ScanStatus.COMPLETED.value,
        )
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": scan.id,
            "company": scan.company_name or "Unknown Company",
            "job_title": scan.job_title or "Untitled Position",
            "location": scan.location or "Remote",
            "risk_level": scan.risk_level,
            "scam_probability": scan.scam_probability,
            "warning_flags": [
                {"type": flag.type, "severity": flag.severity, "description": flag.description}
                for flag in scan.detected_flags
            ],
            "detected_at": scan.created_at,
        }
        for scan in scans
    ]


def public_stats(db: Session) -> Dict[str, Any]:
    summary = risk_summary(db)
    return {
        "total_scans": summary["total_scans"],
        "high_risk": summary["high_risk"],
        "medium_risk": summary["medium_risk"],
        "low_risk": summary["low_risk"],
        "average_scam_probability": summary["average_scam_probability"],
    }


def account_scan_stats(db: Session, user_id: int) -> Dict[str, int]:
    summary = risk_summary(db, user_id)
    return {"total_scans": summary["total_scans"], "high_risk_scans": summary["high_risk"]}
