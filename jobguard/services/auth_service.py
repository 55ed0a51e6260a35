"""
Credential and session policy.

Passwords are hashed with passlib (PBKDF2-SHA256, configurable rounds).
Session tokens are HS256 JWTs carrying the account id, email and role.

Lockout: every failed password check is recorded with one conditional
UPDATE, so concurrent attempts cannot lose increments. The configured
failure that reaches max_login_attempts sets lock_until; while locked no
attempt changes the row. Once the lock has elapsed the next failure starts
counting from 1 again and a success resets the counter.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import and_, case, literal, null, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.types import DateTime

from jobguard.config import settings
from jobguard.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    LockedError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from jobguard.models.account import Account, AccountStatus, AuthProvider
from jobguard.utils.logging_config import StructuredLogger, metrics
from jobguard.utils.preprocessing import normalize_email, utcnow

logger = StructuredLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
TOKEN_EXPIRED = "Token expired, please login again"

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=settings.password_hash_rounds,
)


# ============== PASSWORDS ==============


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


# ============== SESSION TOKENS ==============


def create_access_token(account: Account, expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    claims = {
        "sub": str(account.id),
        "email": account.email,
        "role": account.role,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry. Raises AuthError."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError(TOKEN_EXPIRED)
    except JWTError:
        raise AuthError()

    if not payload.get("sub"):
        raise AuthError()
    return payload


def resolve_token_account(db: Session, token: str, now: Optional[datetime] = None) -> Account:
    """Account behind a session token; must exist, be active and unlocked."""
    payload = decode_access_token(token)
    try:
        account_id = int(payload["sub"])
    except ValueError:
        raise AuthError()

    account = db.get(Account, account_id)
    if account is None:
        raise NotFoundError("User not found")
    if not account.is_active:
        raise ForbiddenError("Your account has been suspended or deleted")
    if account.is_locked(now):
        raise LockedError()
    return account


# ============== REGISTRATION / LOGIN ==============


def get_account_by_email(db: Session, email: str) -> Optional[Account]:
    return db.query(Account).filter(Account.email == normalize_email(email)).first()


def register(db: Session, email: str, password: str, first_name: str, last_name: str) -> Account:
    email = normalize_email(email)
    if get_account_by_email(db, email) is not None:
        raise ConflictError("User already exists with this email")

    account = Account(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=hash_password(password),
        auth_provider=AuthProvider.LOCAL.value,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise ConflictError("User already exists with this email")
    db.refresh(account)

    metrics.increment("auth.register")
    logger.info("Account registered", account_id=account.id)
    return account


def record_failed_login(db: Session, account: Account, now: Optional[datetime] = None) -> bool:
    """
    Count one failed password check atomically.

    Returns True when this failure locked the account. Raises LockedError if
    the account was already locked when the UPDATE ran.
    """
    now = now or utcnow()
    new_lock_until = now + timedelta(minutes=settings.lock_duration_minutes)
    lock_expired = and_(Account.lock_until.isnot(None), Account.lock_until <= now)

    stmt = (
        update(Account)
        .where(
            Account.id == account.id,
            or_(Account.lock_until.is_(None), Account.lock_until <= now),
        )
        .values(
            failed_login_attempts=case(
                (lock_expired, 1),
                else_=Account.failed_login_attempts + 1,
            ),
            lock_until=case(
                (lock_expired, null()),
                (
                    Account.failed_login_attempts + 1 >= settings.max_login_attempts,
                    literal(new_lock_until, DateTime),
                ),
                else_=Account.lock_until,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    db.refresh(account)

    if result.rowcount == 0:
        raise LockedError()

    metrics.increment("auth.login.failed")
    locked = account.is_locked(now)
    if locked:
        metrics.increment("auth.lockout")
        logger.warning("Account locked", account_id=account.id, lock_until=account.lock_until)
    else:
        logger.warning("Login failed", account_id=account.id, attempts=account.failed_login_attempts)
    return locked


def record_successful_login(db: Session, account: Account, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    db.execute(
        update(Account)
        .where(Account.id == account.id)
        .values(failed_login_attempts=0, lock_until=None, last_login=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(account)
    metrics.increment("auth.login.success")


def authenticate(db: Session, email: str, password: str, now: Optional[datetime] = None) -> Account:
    """
    Check credentials.

    Raises AuthError for an unknown email, an inactive account or a wrong
    password, and LockedError while the account is locked (checked before
    the password).
    """
    now = now or utcnow()
    account = get_account_by_email(db, email)
    if account is None or not account.is_active:
        raise AuthError(INVALID_CREDENTIALS)

    if account.is_locked(now):
        raise LockedError()

    if not verify_password(password, account.password_hash):
        record_failed_login(db, account, now)
        raise AuthError(INVALID_CREDENTIALS)

    record_successful_login(db, account, now)
    return account


# ============== PASSWORD RESET ==============


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def forgot_password(db: Session, email: str, now: Optional[datetime] = None) -> str:
    """Issue a reset token; only its hash is stored. Returns the raw token."""
    now = now or utcnow()
    account = get_account_by_email(db, email)
    if account is None:
        raise NotFoundError("There is no user with that email")

    token = secrets.token_hex(20)
    account.reset_token_hash = hash_reset_token(token)
    account.reset_token_expires = now + timedelta(minutes=settings.reset_token_expire_minutes)
    db.commit()

    metrics.increment("auth.reset.requested")
    logger.info("Password reset requested", account_id=account.id)
    return token


def reset_password(db: Session, token: str, new_password: str, now: Optional[datetime] = None) -> Account:
    """Consume a reset token with one conditional UPDATE; single use."""
    now = now or utcnow()
    token_hash = hash_reset_token(token)

    account = db.query(Account).filter(Account.reset_token_hash == token_hash).first()
    if account is None:
        raise ValidationError("Invalid or expired reset token")

    result = db.execute(
        update(Account)
        .where(
            Account.id == account.id,
            Account.reset_token_hash == token_hash,
            Account.reset_token_expires > now,
        )
        .values(
            password_hash=hash_password(new_password),
            reset_token_hash=None,
            reset_token_expires=None,
            failed_login_attempts=0,
            lock_until=None,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount == 0:
        raise ValidationError("Invalid or expired reset token")

    db.refresh(account)
    metrics.increment("auth.reset.completed")
    logger.info("Password reset completed", account_id=account.id)
    return account


def update_password(db: Session, account: Account, current_password: str, new_password: str) -> Account:
    if not verify_password(current_password, account.password_hash):
        raise AuthError("Password is incorrect")

    account.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(account)
    logger.info("Password updated", account_id=account.id)
    return account


# ============== EXTERNAL IDENTITY ==============


@dataclass
class ExternalProfile:
    provider: str
    external_id: str
    email: Optional[str]
    first_name: str = ""
    last_name: str = ""
    avatar: Optional[str] = None


def login_with_external_identity(db: Session, profile: ExternalProfile, now: Optional[datetime] = None) -> Account:
    """
    Resolve an external identity to an account.

    Lookup order: linked external id, then an account with the same email
    and no external identity (linked, local password kept), otherwise a new
    verified account without a password.
    """
    now = now or utcnow()
    if not profile.external_id:
        raise ProviderError("No account id returned by the identity provider")
    if not profile.email:
        raise ProviderError("No email address returned by the identity provider")

    account = db.query(Account).filter(Account.external_id == profile.external_id).first()

    if account is None:
        account = get_account_by_email(db, profile.email)
        if account is not None:
            if account.external_id:
                raise ProviderError("This email is linked to a different external account")
            account.external_id = profile.external_id
            if not account.password_hash:
                account.auth_provider = profile.provider
            if profile.avatar:
                account.avatar = profile.avatar
            logger.info("External identity linked", account_id=account.id, provider=profile.provider)
        else:
            account = Account(
                email=normalize_email(profile.email),
                first_name=profile.first_name or "User",
                last_name=profile.last_name or "",
                avatar=profile.avatar,
                auth_provider=profile.provider,
                external_id=profile.external_id,
                is_verified=True,
            )
            db.add(account)
            logger.info("Account created from external identity", provider=profile.provider)

    if account.account_status != AccountStatus.ACTIVE.value:
        db.rollback()
        raise ForbiddenError("Your account has been suspended or deleted")

    account.last_login = now
    db.commit()
    db.refresh(account)
    metrics.increment("auth.login.external")
    return account
