"""
Authentication endpoints: registration, login, session, password flows
and Google sign-in.
"""

import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from jobguard.api.security import get_current_account, rate_limit, skip_rate_limit
from jobguard.config import settings
from jobguard.database import get_db
from jobguard.errors import ForbiddenError, ProviderError, ValidationError
from jobguard.models.account import Account
from jobguard.schemas.auth_schemas import (
    AccountOut,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
)
from jobguard.services import auth_service
from jobguard.services.email_service import Mailer, get_mailer, password_reset_email, send_email_quietly
from jobguard.services.oauth_service import GoogleOAuthClient, get_oauth_client
from jobguard.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

OAUTH_STATE_COOKIE = "oauth_state"

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(rate_limit("general"))],
)


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=int(timedelta(days=settings.cookie_expire_days).total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def token_response(response: Response, account: Account, message: Optional[str] = None) -> dict:
    """Issue a session token in the body and as an http-only cookie."""
    token = auth_service.create_access_token(account)
    set_session_cookie(response, token)
    body = {
        "success": True,
        "data": {"token": token, "user": AccountOut.model_validate(account)},
    }
    if message:
        body["message"] = message
    return body


# ============== LOCAL ACCOUNTS ==============


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limit("auth"))])
def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    account = auth_service.register(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    skip_rate_limit(request, "auth")
    return token_response(response, account)


@router.post("/login", dependencies=[Depends(rate_limit("auth"))])
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    account = auth_service.authenticate(db, payload.email, payload.password)
    skip_rate_limit(request, "auth")
    return token_response(response, account)


@router.post("/logout")
def logout(response: Response, account: Account = Depends(get_current_account)):
    response.delete_cookie(settings.cookie_name)
    return {"success": True, "message": "User logged out successfully", "data": {}}


@router.get("/me")
def me(account: Account = Depends(get_current_account)):
    return {"success": True, "data": {"user": AccountOut.model_validate(account)}}


# ============== PASSWORDS ==============


@router.post("/forgotpassword", dependencies=[Depends(rate_limit("reset"))])
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    token = auth_service.forgot_password(db, payload.email)
    reset_url = str(request.url_for("reset_password", token=token))
    background_tasks.add_task(send_email_quietly, mailer, password_reset_email(payload.email, reset_url))
    return {"success": True, "message": "Email sent", "data": {}}


@router.put("/resetpassword/{token}", name="reset_password")
def reset_password(token: str, payload: ResetPasswordRequest, response: Response, db: Session = Depends(get_db)):
    account = auth_service.reset_password(db, token, payload.password)
    return token_response(response, account, message="Password reset successful")


@router.put("/updatepassword")
def update_password(
    payload: UpdatePasswordRequest,
    response: Response,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    account = auth_service.update_password(db, account, payload.current_password, payload.new_password)
    return token_response(response, account, message="Password updated successfully")


# ============== GOOGLE ==============


@router.get("/google")
def google_login(oauth: GoogleOAuthClient = Depends(get_oauth_client)):
    if not (oauth.client_id and oauth.client_secret):
        raise ValidationError("Google sign-in is not configured")

    state = secrets.token_urlsafe(16)
    redirect = RedirectResponse(oauth.authorization_url(state), status_code=status.HTTP_302_FOUND)
    redirect.set_cookie(OAUTH_STATE_COOKIE, state, max_age=600, httponly=True, samesite="lax")
    return redirect


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    db: Session = Depends(get_db),
):
    failure_url = f"{settings.client_url}/login?error=google_auth_failed"
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)

    try:
        if not code or not state or state != expected_state:
            raise ProviderError("Invalid OAuth callback")
        profile = await oauth.fetch_profile(code)
        account = auth_service.login_with_external_identity(db, profile)
    except (ProviderError, ForbiddenError) as e:
        logger.warning("Google sign-in failed", error=e.message)
        return RedirectResponse(failure_url, status_code=status.HTTP_302_FOUND)

    token = auth_service.create_access_token(account)
    redirect = RedirectResponse(
        f"{settings.client_url}/auth/callback?token={token}",
        status_code=status.HTTP_302_FOUND,
    )
    set_session_cookie(redirect, token)
    redirect.delete_cookie(OAUTH_STATE_COOKIE)
    return redirect
