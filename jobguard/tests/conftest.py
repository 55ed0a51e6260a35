import os

# Must be set before jobguard.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobguard.api.security import rate_limiter
from jobguard.api.server import app
from jobguard.config import settings
from jobguard.database import enable_sqlite_foreign_keys, get_db, init_db
from jobguard.models.account import Role
from jobguard.models.submission import ScanStatus, Submission, WarningFlag
from jobguard.services import auth_service
from jobguard.services.auth_service import ExternalProfile
from jobguard.services.email_service import get_mailer
from jobguard.services.oauth_service import GoogleOAuthClient, get_oauth_client
from jobguard.services.risk_service import score_job_posting
from jobguard.services.storage_service import LocalFileStorage, get_storage
from jobguard.utils.logging_config import metrics
from jobguard.utils.preprocessing import utcnow

DEFAULT_PASSWORD = "Password1"

SCAM_DESCRIPTION = (
    "URGENT: make money fast! Act now, limited spots available for motivated "
    "people who want to work from home every single day."
)

SAFE_DESCRIPTION = (
    "We are hiring a senior backend engineer to design and maintain services in "
    "Python, working with a friendly team in our Berlin office."
)


class RecordingMailer:
    """Collects outgoing mail instead of sending it."""

    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)


class FakeOAuthClient(GoogleOAuthClient):
    """Google client that returns a canned profile instead of calling Google."""

    def __init__(self):
        super().__init__(
            client_id="test-client-id",
            client_secret="test-client-secret",
            redirect_uri="http://testserver/api/v1/auth/google/callback",
        )
        self.profile = ExternalProfile(
            provider="google",
            external_id="google-123",
            email="olive@acme-corp.com",
            first_name="Olive",
            last_name="Auth",
            avatar="https://cdn.acme-corp.com/olive.png",
        )
        self.error = None
        self.codes = []

    async def fetch_profile(self, code: str) -> ExternalProfile:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return self.profile


@pytest.fixture(autouse=True)
def reset_runtime_state(monkeypatch):
    """Fresh limiter and metrics; limits high enough not to interfere."""
    rate_limiter.reset()
    metrics.reset()
    for name in ("rate_limit_requests", "rate_limit_auth_requests", "rate_limit_scan_requests",
                 "rate_limit_upload_requests", "rate_limit_reset_requests"):
        monkeypatch.setattr(settings, name, 1000)
    yield
    rate_limiter.reset()


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def oauth():
    return FakeOAuthClient()


@pytest.fixture
def client(session_factory, storage, mailer, oauth):
    """FastAPI test client wired to the test database and fakes."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_oauth_client] = lambda: oauth
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============== ACCOUNTS ==============


@pytest.fixture
def make_account(db):
    """Factory: register an account directly through the service."""

    def _make(email="user@acme-corp.com", password=DEFAULT_PASSWORD, role=Role.USER.value,
              first_name="Test", last_name="User"):
        account = auth_service.register(db, email, password, first_name, last_name)
        if role != Role.USER.value:
            account.role = role
            db.commit()
            db.refresh(account)
        return account

    return _make


@pytest.fixture
def user(make_account):
    return make_account()


@pytest.fixture
def other_user(make_account):
    return make_account(email="other@acme-corp.com", first_name="Other")


@pytest.fixture
def admin(make_account):
    return make_account(email="admin@acme-corp.com", role=Role.ADMIN.value, first_name="Admin")


def bearer(account, expires_delta=None):
    return {"Authorization": f"Bearer {auth_service.create_access_token(account, expires_delta)}"}


@pytest.fixture
def headers_for():
    """Bearer headers for any account."""
    return bearer


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def other_headers(other_user):
    return bearer(other_user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


# ============== SUBMISSIONS ==============


@pytest.fixture
def make_submission(db):
    """Factory: persist a scored submission without going through the API."""

    def _make(owner, description=SCAM_DESCRIPTION, company_email=None, company_website=None,
              status=ScanStatus.COMPLETED.value, created_at=None, **fields):
        result = score_job_posting(description, company_email, company_website)
        submission = Submission(
            user_id=owner.id,
            job_description=description,
            company_email=company_email,
            company_website=company_website,
            risk_level=result.risk_level,
            scam_probability=result.scam_probability,
            analysis_results=result.details,
            status=status,
            created_at=created_at or utcnow(),
            **fields,
        )
        submission.warning_flags = [
            WarningFlag(position=i, type=f.type, severity=f.severity, description=f.description, detected=True)
            for i, f in enumerate(result.flags)
        ]
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    return _make


@pytest.fixture
def days_ago():
    def _days_ago(days):
        return utcnow() - timedelta(days=days)
    return _days_ago


@pytest.fixture
def scam_description():
    """Posting that trips the salary and pressure rules only."""
    return SCAM_DESCRIPTION


@pytest.fixture
def safe_description():
    """Posting long and specific enough to trip no text rule."""
    return SAFE_DESCRIPTION
