from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from jobguard.api.security import get_current_account, rate_limit
from jobguard.config import settings
from jobguard.database import get_db
from jobguard.models.account import Account
from jobguard.schemas.auth_schemas import AccountOut, ProfileOut, UpdateProfileRequest
from jobguard.services import account_service, analytics_service

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(rate_limit("general"))],
)


@router.get("/profile")
def get_profile(account: Account = Depends(get_current_account), db: Session = Depends(get_db)):
    profile = ProfileOut(
        **AccountOut.model_validate(account).model_dump(),
        stats=analytics_service.account_scan_stats(db, account.id),
    )
    return {"success": True, "data": {"user": profile}}


@router.put("/profile")
def update_profile(
    payload: UpdateProfileRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    account = account_service.update_profile(
        db,
        account,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
    )
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": AccountOut.model_validate(account)},
    }


@router.delete("/account")
def delete_account(
    response: Response,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    account_service.delete_account(db, account)
    response.delete_cookie(settings.cookie_name)
    return {"success": True, "message": "Account deleted successfully", "data": {}}
