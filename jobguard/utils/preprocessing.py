from datetime import datetime, timezone
from typing import Optional


def normalize_text(text: Optional[str]) -> str:
    """Lower-case description text for keyword matching. Length is preserved."""
    return (text or "").lower()


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def email_domain(email: Optional[str]) -> Optional[str]:
    normalized = normalize_email(email)
    if "@" not in normalized:
        return None
    return normalized.split("@", 1)[1] or None


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Strip a form value; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
