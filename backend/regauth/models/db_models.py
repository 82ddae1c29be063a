"""
Regulatory Authorization Engine - SQLAlchemy ORM Models
Persistent storage for authorization cases, evidence and the transition log
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, DateTime, Boolean, ForeignKey, UniqueConstraint,
    Index, text, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS FOR THE AUTHORIZATION WORKFLOW
# =============================================================================

class CaseKind(str, Enum):
    """Workflow variants sharing the deadline-bound engine."""
    LICENSING_APPLICATION = "LICENSING_APPLICATION"
    QUALIFYING_ACQUISITION = "QUALIFYING_ACQUISITION"


class CasePhase(str, Enum):
    """States in the authorization state machine."""
    SUBMITTED = "SUBMITTED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    COMPLETENESS_CONFIRMED = "COMPLETENESS_CONFIRMED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DEEMED_APPROVED = "DEEMED_APPROVED"


class CaseOutcome(str, Enum):
    """Decision outcome. Written exactly once."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DEEMED_APPROVED = "DEEMED_APPROVED"
    REJECTED = "REJECTED"


class ActorRole(str, Enum):
    """Roles answered by ActorAuthorization."""
    APPLICANT = "APPLICANT"
    DECISION_AUTHORITY = "DECISION_AUTHORITY"
    OVERSIGHT_AUTHORITY = "OVERSIGHT_AUTHORITY"


class AttachmentKind(str, Enum):
    """Named evidence kinds. Presence is checked, content never is."""
    PROGRAMME_OF_OPERATIONS = "PROGRAMME_OF_OPERATIONS"
    FITNESS_PROOF = "FITNESS_PROOF"
    RISK_MANAGEMENT_PROOF = "RISK_MANAGEMENT_PROOF"
    FUNDING_SOURCE_PROOF = "FUNDING_SOURCE_PROOF"
    CONSULTATION_PROOF = "CONSULTATION_PROOF"
    ADDITIONAL_INFORMATION = "ADDITIONAL_INFORMATION"


# Phase order used to enforce forward-only movement
PHASE_ORDER = {
    CasePhase.SUBMITTED: 0,
    CasePhase.ACKNOWLEDGED: 1,
    CasePhase.COMPLETENESS_CONFIRMED: 2,
    CasePhase.APPROVED: 3,
    CasePhase.REJECTED: 3,
    CasePhase.DEEMED_APPROVED: 3,
}

TERMINAL_PHASES = {
    CasePhase.APPROVED,
    CasePhase.REJECTED,
    CasePhase.DEEMED_APPROVED,
}


# =============================================================================
# ACTOR GRANTS
# =============================================================================

class ActorRoleDB(Base):
    """
    Role grant for an actor.
    Read by DatabaseActorAuthorization; administered outside this system.
    """
    __tablename__ = "actor_roles"
    __table_args__ = (
        UniqueConstraint("actor_id", "role", name="uq_actor_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String(255), nullable=False, index=True)
    role = Column(SQLEnum(ActorRole), nullable=False)
    granted_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# CASE RECORD
# =============================================================================

class CaseDB(Base):
    """
    One licensing application or acquisition notification under assessment.
    Never deleted - decided cases persist as the audit-relevant terminal state.
    """
    __tablename__ = "cases"
    __table_args__ = (
        # At most one live (undecided) case per subject and workflow variant
        Index(
            "uq_live_case_per_subject",
            "subject_key",
            "case_kind",
            unique=True,
            postgresql_where=text("outcome = 'PENDING'"),
            sqlite_where=text("outcome = 'PENDING'"),
        ),
    )

    case_key = Column(String(36), primary_key=True)  # UUID
    case_kind = Column(SQLEnum(CaseKind), nullable=False)
    subject_key = Column(String(255), nullable=False, index=True)  # Applicant / acquirer
    target_entity = Column(String(255), nullable=False)
    cross_border = Column(Boolean, default=False, nullable=False)

    # State Machine
    phase = Column(SQLEnum(CasePhase), nullable=False, default=CasePhase.SUBMITTED)
    outcome = Column(SQLEnum(CaseOutcome), nullable=False, default=CaseOutcome.PENDING)
    outcome_reason_ref = Column(String(255), nullable=True)  # Required for REJECTED
    flagged_issue_ref = Column(String(255), nullable=True)   # Bars approval when set

    # Phase timestamps (write-once)
    submitted_at = Column(DateTime, nullable=False)
    acknowledged_at = Column(DateTime, nullable=True)
    completeness_confirmed_at = Column(DateTime, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    notified_at = Column(DateTime, nullable=True)

    # Deadlines
    review_expiry = Column(DateTime, nullable=True)  # Set on acknowledgment, grows by tolling only
    suspension_start = Column(DateTime, nullable=True)
    suspension_end = Column(DateTime, nullable=True)
    information_requests = Column(Integer, nullable=False, default=0)

    notified_to_oversight = Column(Boolean, nullable=False, default=False)

    # Compare-and-set counter
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    attachments = relationship(
        "CaseAttachmentDB", back_populates="case", cascade="all, delete-orphan"
    )
    transitions = relationship(
        "TransitionLogDB", back_populates="case", order_by="TransitionLogDB.id"
    )

    @property
    def is_suspended(self) -> bool:
        return self.suspension_start is not None

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def attachment_kinds(self) -> set:
        return {a.kind for a in self.attachments}


class CaseAttachmentDB(Base):
    """
    Evidentiary reference attached to a case.
    Flat store keyed by (case_key, kind); a resubmission replaces the reference.
    """
    __tablename__ = "case_attachments"
    __table_args__ = (
        UniqueConstraint("case_key", "kind", name="uq_case_attachment_kind"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_key = Column(String(36), ForeignKey("cases.case_key"), nullable=False, index=True)
    kind = Column(SQLEnum(AttachmentKind), nullable=False)
    reference = Column(String(255), nullable=False)  # Content-addressed reference
    submitted_by = Column(String(255), nullable=False)
    submitted_at = Column(DateTime, nullable=False)

    case = relationship("CaseDB", back_populates="attachments")


class TransitionLogDB(Base):
    """
    Immutable log of case transitions.
    Append-only - one row per successful workflow operation.
    """
    __tablename__ = "transition_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_key = Column(String(36), ForeignKey("cases.case_key"), nullable=False, index=True)

    operation = Column(String(50), nullable=False)
    from_phase = Column(SQLEnum(CasePhase), nullable=True)  # NULL for submission
    to_phase = Column(SQLEnum(CasePhase), nullable=False)
    actor = Column(String(255), nullable=False)
    occurred_at = Column(DateTime, nullable=False)

    # Timestamps (immutable)
    created_at = Column(DateTime, default=datetime.utcnow)

    case = relationship("CaseDB", back_populates="transitions")
