"""
Database engine and session management.

SQLite by default for local development; any SQLAlchemy URL works through
the DATABASE_URL setting.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from jobguard.config import settings


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        # FastAPI serves sync endpoints from a thread pool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


def enable_sqlite_foreign_keys(target_engine):
    """Turn on FK enforcement for every new SQLite connection."""

    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

if settings.database_url.startswith("sqlite"):
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables. Models must be imported so they register on Base."""
    from jobguard.models import account, submission  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
