from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jobguard.api.security import get_current_account, rate_limit, require_admin
from jobguard.database import get_db
from jobguard.errors import ValidationError
from jobguard.models.account import Account
from jobguard.services import analytics_service

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(rate_limit("general"))],
)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; aware query values are shifted to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.replace(tzinfo=None) - value.utcoffset()


def date_range(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            "start_date must not be after end_date",
            errors=[{"field": "start_date", "message": "start_date must not be after end_date"}],
        )
    return start_date, end_date


@router.get("/user")
def user_analytics(
    dates=Depends(date_range),
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    start_date, end_date = dates
    return {"success": True, "data": analytics_service.user_analytics(db, account.id, start_date, end_date)}


@router.get("/global", dependencies=[Depends(require_admin)])
def global_analytics(dates=Depends(date_range), db: Session = Depends(get_db)):
    start_date, end_date = dates
    return {"success": True, "data": analytics_service.global_analytics(db, start_date, end_date)}


@router.get("/trends")
def trends(db: Session = Depends(get_db)):
    return {"success": True, "data": analytics_service.trends(db)}


@router.get("/alerts")
def alerts(
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
):
    items = analytics_service.recent_alerts(db, limit)
    return {"success": True, "count": len(items), "data": {"alerts": items}}
