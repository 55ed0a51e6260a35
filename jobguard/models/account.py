"""
Account model: identity, credentials, role and lockout state.
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from jobguard.database import Base
from jobguard.utils.preprocessing import utcnow


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"  # soft delete, row is kept


class AuthProvider(str, enum.Enum):
    LOCAL = "local"
    GOOGLE = "google"


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR external_id IS NOT NULL",
            name="ck_accounts_has_credential",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Identity
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True, index=True)  # always lower-cased
    avatar = Column(String(500), nullable=True)

    # Credentials: local password, external identity, or both once linked
    password_hash = Column(String(255), nullable=True)
    auth_provider = Column(String(20), nullable=False, default=AuthProvider.LOCAL.value)
    external_id = Column(String(255), nullable=True, unique=True)

    role = Column(String(10), nullable=False, default=Role.USER.value)
    account_status = Column(String(10), nullable=False, default=AccountStatus.ACTIVE.value)
    is_verified = Column(Boolean, nullable=False, default=False)

    # Lockout accounting
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)

    # Password reset (only the SHA-256 of the token is stored)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def is_locked(self, now=None) -> bool:
        now = now or utcnow()
        return self.lock_until is not None and self.lock_until > now

    def __repr__(self):
        return f"<Account(id={self.id}, email='{self.email}', role='{self.role}')>"
