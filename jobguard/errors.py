"""
Application error taxonomy.

Services raise these; the API layer renders them as
{"success": false, "error": "..."} with the matching status code.

JobGuardError (500)
├── ValidationError (400)
│   └── ConflictError (400)
├── AuthError (401)
│   └── ProviderError (401)
├── ForbiddenError (403)
├── NotFoundError (404)
├── LockedError (423)
├── RateLimitError (429)
└── InternalError (500)
"""

from typing import Dict, List, Optional


class JobGuardError(Exception):
    status_code: int = 500
    default_message: str = "Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(JobGuardError):
    """Malformed or missing input. May carry per-field messages."""

    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(ValidationError):
    default_message = "Resource already exists"


class AuthError(JobGuardError):
    status_code = 401
    default_message = "Not authorized to access this route"


class ProviderError(AuthError):
    default_message = "External identity provider error"


class ForbiddenError(JobGuardError):
    status_code = 403
    default_message = "Not authorized to access this resource"


class NotFoundError(JobGuardError):
    status_code = 404
    default_message = "Resource not found"


class LockedError(JobGuardError):
    status_code = 423
    default_message = (
        "Your account has been locked due to multiple failed login attempts. "
        "Please try again later."
    )


class RateLimitError(JobGuardError):
    status_code = 429
    default_message = "Too many requests, please try again later."

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.headers = headers or {}


class InternalError(JobGuardError):
    status_code = 500
