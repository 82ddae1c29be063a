"""
Audit Trail

Receives one immutable transition notice per successful workflow operation.
The engine hands the notice over after its commit; how the notice is stored
or broadcast is the trail's concern, not the state machine's.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.db_models import CasePhase, TransitionLogDB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionNotice:
    """
    Record of one transition.

    from_phase is None for the submission that creates the case. Operations
    that leave the phase unchanged (information requests, notification)
    carry from_phase == to_phase.
    """
    case_key: str
    from_phase: Optional[CasePhase]
    to_phase: CasePhase
    timestamp: datetime
    actor: str
    operation: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["from_phase"] = self.from_phase.value if self.from_phase else None
        data["to_phase"] = self.to_phase.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


class AuditTrail:
    """Collaborator interface: anything with record(notice)."""

    def record(self, notice: TransitionNotice) -> None:
        raise NotImplementedError


class TransitionLogAuditTrail(AuditTrail):
    """Appends notices to the transition_log table."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def record(self, notice: TransitionNotice) -> None:
        log_entry = TransitionLogDB(
            case_key=notice.case_key,
            operation=notice.operation,
            from_phase=notice.from_phase,
            to_phase=notice.to_phase,
            actor=notice.actor,
            occurred_at=notice.timestamp,
        )
        self.db.add(log_entry)
        self.db.commit()


class InMemoryAuditTrail(AuditTrail):
    """Keeps notices in a list. Used by tests and dry runs."""

    def __init__(self):
        self.notices: List[TransitionNotice] = []

    def record(self, notice: TransitionNotice) -> None:
        logger.debug(f"Transition notice: {notice.to_dict()}")
        self.notices.append(notice)
