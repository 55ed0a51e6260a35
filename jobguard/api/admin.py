"""
Admin API endpoints for JobGuard management.

Includes:
- Dashboard rollups
- Account and scan listings
- Metrics and monitoring
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from jobguard.api.security import rate_limit, require_admin
from jobguard.database import get_db
from jobguard.schemas.auth_schemas import AccountOut
from jobguard.services import admin_service
from jobguard.utils.logging_config import metrics


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(rate_limit("general")), Depends(require_admin)],
)


# ============== DASHBOARD ==============


@router.get("/dashboard")
def get_dashboard(db: Session = Depends(get_db)):
    """Overview counts, risk/status breakdowns, recent scans, growth and top companies."""
    return {"success": True, "data": admin_service.dashboard(db)}


# ============== LISTINGS ==============


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    accounts, total, page_info = admin_service.list_accounts(db, page, limit)
    return {
        "success": True,
        "count": len(accounts),
        "total": total,
        **page_info,
        "data": [AccountOut.model_validate(account) for account in accounts],
    }


@router.get("/scans")
def list_scans(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    scans, total, page_info = admin_service.list_scans(db, page, limit)
    return {
        "success": True,
        "count": len(scans),
        "total": total,
        **page_info,
        "data": scans,
    }


# ============== METRICS ==============


@router.get("/metrics")
def get_metrics():
    """Get current application metrics."""
    return {"success": True, "data": metrics.get_stats()}


@router.post("/metrics/reset")
def reset_metrics():
    """Reset all metrics (use with caution)."""
    metrics.reset()
    return {"success": True, "message": "Metrics reset", "data": {}}
