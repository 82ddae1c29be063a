"""Regulatory Authorization Engine - Data Models"""
from .db_models import (
    # Enums
    CaseKind, CasePhase, CaseOutcome, ActorRole, AttachmentKind,
    PHASE_ORDER, TERMINAL_PHASES,
    # Tables
    ActorRoleDB, CaseDB, CaseAttachmentDB, TransitionLogDB,
)

__all__ = [
    "CaseKind", "CasePhase", "CaseOutcome", "ActorRole", "AttachmentKind",
    "PHASE_ORDER", "TERMINAL_PHASES",
    "ActorRoleDB", "CaseDB", "CaseAttachmentDB", "TransitionLogDB",
]
