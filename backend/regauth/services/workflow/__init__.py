"""
Authorization Workflow Services

Deadline-bound approval workflow shared by licensing applications and
qualifying acquisition notifications:
- ActorAuthorization: role checks per operation
- CaseStore: keyed persistence with compare-and-set updates
- DeadlineTracker: window arithmetic and suspension tolling
- WorkflowEngine: phase transitions
- AuditTrail: transition notices
"""

from .actor_authorization import (
    ActorAuthorization,
    StaticActorAuthorization,
    DatabaseActorAuthorization,
)
from .audit_trail import AuditTrail, TransitionNotice, TransitionLogAuditTrail, InMemoryAuditTrail
from .case_store import CaseStore
from .deadline_tracker import DeadlineTracker, WindowEvent, DEADLINE_CONFIG
from .errors import (
    WorkflowError,
    Unauthorized,
    CaseNotFound,
    DuplicateCase,
    InvalidPhase,
    WindowExpired,
    SuspensionConflict,
    MissingPrerequisite,
    AlreadyDecided,
    StaleCase,
)
from .workflow_engine import WorkflowEngine, PHASE_CONFIG

__all__ = [
    'ActorAuthorization',
    'StaticActorAuthorization',
    'DatabaseActorAuthorization',
    'AuditTrail',
    'TransitionNotice',
    'TransitionLogAuditTrail',
    'InMemoryAuditTrail',
    'CaseStore',
    'DeadlineTracker',
    'WindowEvent',
    'DEADLINE_CONFIG',
    'WorkflowEngine',
    'PHASE_CONFIG',
    # Errors
    'WorkflowError',
    'Unauthorized',
    'CaseNotFound',
    'DuplicateCase',
    'InvalidPhase',
    'WindowExpired',
    'SuspensionConflict',
    'MissingPrerequisite',
    'AlreadyDecided',
    'StaleCase',
]
