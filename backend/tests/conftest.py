"""
Shared fixtures for the authorization workflow tests.

Cases live in an in-memory SQLite database; role grants and the audit trail
are in-memory collaborators. Time is always passed explicitly as DAY_0 + n.
"""
import os

# Must be set before regauth.database creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from regauth.database import Base
from regauth.models.db_models import ActorRole, AttachmentKind, CaseKind
from regauth.services.workflow import (
    DeadlineTracker,
    InMemoryAuditTrail,
    StaticActorAuthorization,
    WorkflowEngine,
)


DAY_0 = datetime(2025, 1, 6, 9, 0, 0)

APPLICANT = "provider-001"
OTHER_APPLICANT = "provider-002"
AUTHORITY = "national-authority"
OVERSIGHT = "oversight-body"
STRANGER = "unregistered-actor"

# Windows used by the lifecycle scenarios
SCENARIO_CONFIG = {
    CaseKind.LICENSING_APPLICATION: {
        "acknowledgment_days": 5,
        "review_days": 90,
        "information_request_cutoff_days": 60,
        "suspension_days": 30,
        "cross_border_suspension_days": 30,
        "notification_days": 2,
    },
    CaseKind.QUALIFYING_ACQUISITION: {
        "acknowledgment_days": 2,
        "review_days": 60,
        "information_request_cutoff_days": 50,
        "suspension_days": 20,
        "cross_border_suspension_days": 30,
        "notification_days": 2,
    },
}

LICENSING_EVIDENCE = {
    AttachmentKind.PROGRAMME_OF_OPERATIONS: "sha256:programme",
    AttachmentKind.FITNESS_PROOF: "sha256:fitness",
    AttachmentKind.RISK_MANAGEMENT_PROOF: "sha256:risk",
}

ACQUISITION_EVIDENCE = {
    AttachmentKind.FITNESS_PROOF: "sha256:acquirer-fitness",
    AttachmentKind.FUNDING_SOURCE_PROOF: "sha256:funding",
}


def day(n: float) -> datetime:
    """Timestamp n days after DAY_0."""
    return DAY_0 + timedelta(days=n)


@pytest.fixture
def fixed_timestamp():
    return DAY_0


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    """Database session bound to the in-memory engine."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def authorization():
    return StaticActorAuthorization({
        APPLICANT: [ActorRole.APPLICANT],
        OTHER_APPLICANT: [ActorRole.APPLICANT],
        AUTHORITY: [ActorRole.DECISION_AUTHORITY],
        OVERSIGHT: [ActorRole.OVERSIGHT_AUTHORITY],
    })


@pytest.fixture
def audit_trail():
    return InMemoryAuditTrail()


@pytest.fixture
def tracker():
    return DeadlineTracker(SCENARIO_CONFIG)


@pytest.fixture
def engine(db, authorization, audit_trail, tracker):
    return WorkflowEngine(
        db,
        authorization=authorization,
        audit_trail=audit_trail,
        tracker=tracker,
    )


@pytest.fixture
def submitted_case(engine):
    """Licensing application submitted on day 0 with the completeness evidence."""
    result = engine.submit(
        actor_id=APPLICANT,
        case_kind=CaseKind.LICENSING_APPLICATION,
        target_entity="Example Custody Services",
        attachments=LICENSING_EVIDENCE,
        now=day(0),
    )
    return result["case_key"]


@pytest.fixture
def confirmed_case(engine, submitted_case):
    """Acknowledged on day 0 (review expiry day 90) and complete on day 1."""
    engine.acknowledge(submitted_case, AUTHORITY, now=day(0))
    engine.confirm_completeness(submitted_case, AUTHORITY, now=day(1))
    return submitted_case
