import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
PASSWORD_RULES = (re.compile(r"[a-z]"), re.compile(r"[A-Z]"), re.compile(r"\d"))


def check_name(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    if not 2 <= len(value) <= 50:
        raise ValueError(f"{label} must be between 2 and 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(f"{label} can only contain letters")
    return value


def check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not all(pattern.search(value) for pattern in PASSWORD_RULES):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


# ============== REQUESTS ==============


class RegisterRequest(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        return check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: str) -> str:
        return check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return check_password(v)


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else v.lower()


# ============== RESPONSES ==============


class AccountOut(BaseModel):
    """Public view of an account. Never includes credentials or lockout state."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    role: str
    avatar: Optional[str] = None
    auth_provider: str
    is_verified: bool
    account_status: str
    last_login: Optional[datetime] = None
    created_at: datetime


class AccountStats(BaseModel):
    total_scans: int
    high_risk_scans: int


class ProfileOut(AccountOut):
    stats: AccountStats
