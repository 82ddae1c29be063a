"""
Regulatory Authorization Engine - Database Configuration

Case records, attachments, role grants and the transition log live in one
SQLAlchemy database. PostgreSQL in deployment; SQLite is accepted for local
runs and tests.
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Default: the regauth database on a local PostgreSQL, connecting as $USER
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/regauth"
)
SQL_ECHO = os.getenv("REGAUTH_SQL_ECHO", "false").lower() == "true"


def engine_options(url: str) -> dict:
    """
    Extra create_engine arguments for a database URL.

    SQLite connections are shared with FastAPI's worker threads; an
    in-memory SQLite database must also stay on a single connection or
    every session would see an empty schema.
    """
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, echo=SQL_ECHO, **engine_options(DATABASE_URL))

# One session per request / script run; commits are explicit (CaseStore.commit)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency - a session that is closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the case, attachment, role and transition-log tables if missing."""
    from .models import db_models  # noqa: F401  (registers tables on Base.metadata)
    Base.metadata.create_all(bind=engine)
