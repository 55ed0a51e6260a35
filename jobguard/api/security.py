"""
Security dependencies for the API: session authentication, role checks
and per-policy rate limiting.
"""

import threading
import time
from collections import defaultdict
from typing import Dict, Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from jobguard.config import settings
from jobguard.database import get_db
from jobguard.errors import AuthError, ForbiddenError, JobGuardError, RateLimitError
from jobguard.models.account import Account
from jobguard.services.auth_service import resolve_token_account
from jobguard.utils.logging_config import StructuredLogger, metrics, user_id_var

logger = StructuredLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ============== AUTHENTICATION ==============


def get_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.cookie_name) or None


def get_current_account(
    request: Request,
    token: Optional[str] = Depends(get_token),
    db: Session = Depends(get_db),
) -> Account:
    if not token:
        raise AuthError()
    account = resolve_token_account(db, token)
    request.state.account_id = account.id
    user_id_var.set(str(account.id))
    return account


def get_optional_account(
    token: Optional[str] = Depends(get_token),
    db: Session = Depends(get_db),
) -> Optional[Account]:
    """Like get_current_account, but anonymous (or invalid) callers get None."""
    if not token:
        return None
    try:
        return resolve_token_account(db, token)
    except JobGuardError:
        return None


def require_admin(account: Account = Depends(get_current_account)) -> Account:
    if not account.is_admin:
        raise ForbiddenError(f"User role '{account.role}' is not authorized to access this route")
    return account


# ============== RATE LIMITING ==============


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.
    Counts are per process; run a shared store in front for multiple workers.
    """

    def __init__(self):
        self._requests: dict = defaultdict(list)
        self._lock = threading.Lock()

    def _clean_old_requests(self, key: str, window: int):
        now = time.time()
        self._requests[key] = [ts for ts in self._requests[key] if now - ts < window]

    def is_allowed(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Check and record a request.

        Returns:
            (allowed: bool, remaining: int)
        """
        with self._lock:
            self._clean_old_requests(key, window)
            current_count = len(self._requests[key])
            if current_count >= limit:
                return False, 0

            self._requests[key].append(time.time())
            return True, limit - current_count - 1

    def release(self, key: str):
        """Forget the most recent request recorded for a key."""
        with self._lock:
            if self._requests[key]:
                self._requests[key].pop()

    def get_retry_after(self, key: str, window: int) -> int:
        """Seconds until the oldest request in the window expires."""
        if not self._requests[key]:
            return 0
        oldest = min(self._requests[key])
        return max(1, int(window - (time.time() - oldest)))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()

POLICY_MESSAGES = {
    "general": "Too many requests from this IP, please try again later.",
    "auth": "Too many authentication attempts, please try again after 15 minutes.",
    "scan": "Too many scan requests. Please try again later.",
    "upload": "Too many file uploads, please try again later.",
    "reset": "Too many password reset requests, please try again after an hour.",
}


def get_policy(name: str) -> Tuple[int, int]:
    """(limit, window seconds), read from settings on every call."""
    policies: Dict[str, Tuple[int, int]] = {
        "general": (settings.rate_limit_requests, settings.rate_limit_window),
        "auth": (settings.rate_limit_auth_requests, settings.rate_limit_auth_window),
        "scan": (settings.rate_limit_scan_requests, settings.rate_limit_scan_window),
        "upload": (settings.rate_limit_upload_requests, settings.rate_limit_upload_window),
        "reset": (settings.rate_limit_reset_requests, settings.rate_limit_reset_window),
    }
    return policies[name]


def rate_limit_key(request: Request, account: Optional[Account] = None) -> str:
    if account is not None:
        return f"user:{account.id}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def enforce_rate_limit(request: Request, policy: str, key: str):
    limit, window = get_policy(policy)
    if limit <= 0:
        return  # policy disabled

    bucket = f"{policy}:{key}"
    allowed, remaining = rate_limiter.is_allowed(bucket, limit, window)

    request.state.rate_limit_limit = limit
    request.state.rate_limit_remaining = remaining

    if not allowed:
        retry_after = rate_limiter.get_retry_after(bucket, window)
        metrics.increment(f"rate_limit.{policy}.rejected")
        logger.warning("Rate limit exceeded", policy=policy, key=key, retry_after=retry_after)
        raise RateLimitError(
            POLICY_MESSAGES[policy],
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    if not hasattr(request.state, "rate_limit_buckets"):
        request.state.rate_limit_buckets = {}
    request.state.rate_limit_buckets[policy] = bucket


def skip_rate_limit(request: Request, policy: str):
    """Uncount a request that succeeded, for policies that only count failures."""
    bucket = getattr(request.state, "rate_limit_buckets", {}).get(policy)
    if bucket:
        rate_limiter.release(bucket)


def rate_limit(policy: str):
    """Dependency factory: limit by account id when authenticated, else client address."""
    def dependency(request: Request, account: Optional[Account] = Depends(get_optional_account)):
        enforce_rate_limit(request, policy, rate_limit_key(request, account))
    return dependency
