"""
Profile management for the signed-in account.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobguard.errors import ConflictError
from jobguard.models.account import Account, AccountStatus
from jobguard.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)

EMAIL_TAKEN = "Email is already in use"


def update_profile(
    db: Session,
    account: Account,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
) -> Account:
    """Apply the provided fields; omitted fields are left untouched."""
    if email is not None and email != account.email:
        taken = db.query(Account.id).filter(Account.email == email, Account.id != account.id).first()
        if taken:
            raise ConflictError(EMAIL_TAKEN)
        account.email = email
    if first_name is not None:
        account.first_name = first_name
    if last_name is not None:
        account.last_name = last_name

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(EMAIL_TAKEN)
    db.refresh(account)
    logger.info("Profile updated", account_id=account.id)
    return account


def delete_account(db: Session, account: Account) -> None:
    """Soft delete: the row and its scans are kept."""
    account.account_status = AccountStatus.DELETED.value
    db.commit()
    metrics.increment("accounts.deleted")
    logger.info("Account deleted", account_id=account.id)
