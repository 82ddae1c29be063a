"""
Workflow Engine

Deterministic state machine for authorization cases.
Orchestrates actor authorization, the case store, deadline arithmetic and
the audit trail.

AUTHORITY MODEL:
- APPLICANT: submit, attach evidence, answer information requests
- DECISION_AUTHORITY: acknowledge, confirm completeness, flag issues,
  request information, decide, notify the oversight authority
- ANY RECOGNIZED ACTOR: finalize a deemed approval

Every operation is all-or-nothing: guards run against the timestamp of the
current call, the case is mutated, and the store commits with a
compare-and-set. Any failure rolls the session back and re-raises. A
transition notice goes to the audit trail only after the commit; a trail
failure is logged and leaves the committed transition in place.

Deadlines are evaluated lazily. Nothing flips a case to DEEMED_APPROVED
when its clock lapses; the case stays PENDING until someone calls
finalize_deemed_approval.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ...models.db_models import (
    ActorRole, AttachmentKind, CaseAttachmentDB, CaseDB, CaseKind,
    CaseOutcome, CasePhase, PHASE_ORDER,
)
from .actor_authorization import ActorAuthorization, DatabaseActorAuthorization
from .audit_trail import AuditTrail, TransitionLogAuditTrail, TransitionNotice
from .case_store import CaseStore
from .deadline_tracker import DeadlineTracker, WindowEvent
from .errors import (
    AlreadyDecided, InvalidPhase, MissingPrerequisite, SuspensionConflict,
    Unauthorized, WindowExpired, WorkflowError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PHASE CONFIGURATION
# =============================================================================

PHASE_CONFIG = {
    CasePhase.SUBMITTED: {
        "description": "Application or notification received",
        "allowed_transitions": [CasePhase.ACKNOWLEDGED],
        "entry_authority": ActorRole.APPLICANT,
    },
    CasePhase.ACKNOWLEDGED: {
        "description": "Receipt acknowledged, review clock running",
        # Silence also covers an authority that never confirmed completeness
        "allowed_transitions": [
            CasePhase.COMPLETENESS_CONFIRMED,
            CasePhase.DEEMED_APPROVED,
        ],
        "entry_authority": ActorRole.DECISION_AUTHORITY,
    },
    CasePhase.COMPLETENESS_CONFIRMED: {
        "description": "File complete, under assessment",
        "allowed_transitions": [
            CasePhase.APPROVED,
            CasePhase.REJECTED,
            CasePhase.DEEMED_APPROVED,
        ],
        "entry_authority": ActorRole.DECISION_AUTHORITY,
    },
    CasePhase.APPROVED: {
        "description": "Authorization granted",
        "allowed_transitions": [],  # Terminal state
        "entry_authority": ActorRole.DECISION_AUTHORITY,
    },
    CasePhase.REJECTED: {
        "description": "Authorization refused",
        "allowed_transitions": [],  # Terminal state
        "entry_authority": ActorRole.DECISION_AUTHORITY,
    },
    CasePhase.DEEMED_APPROVED: {
        "description": "Review window lapsed without a decision",
        "allowed_transitions": [],  # Terminal state
        "entry_authority": None,  # Any recognized actor
    },
}

# Evidence only the decision authority may attach
AUTHORITY_ATTACHMENTS = {AttachmentKind.CONSULTATION_PROOF}


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the case tables store times."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _normalize(now: Optional[datetime]) -> datetime:
    if now is None:
        return utcnow()
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


# =============================================================================
# WORKFLOW ENGINE
# =============================================================================

class WorkflowEngine:
    """
    Authorization workflow for licensing applications and qualifying
    acquisition notifications.

    Core Principles:
    - Phases only move forward
    - review_expiry only grows, and only by tolling
    - The outcome is written once
    - Every window check uses the timestamp of the current call
    """

    def __init__(
        self,
        db_session: Session,
        authorization: ActorAuthorization = None,
        audit_trail: AuditTrail = None,
        tracker: DeadlineTracker = None,
    ):
        """Initialize with database session and collaborators."""
        self.db = db_session
        self.store = CaseStore(db_session)
        self.authorization = authorization or DatabaseActorAuthorization(db_session)
        self.audit_trail = audit_trail or TransitionLogAuditTrail(db_session)
        self.tracker = tracker or DeadlineTracker()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @contextmanager
    def _operation(self, operation: str, case_key: str = None):
        """Roll back everything the operation touched if any guard fails."""
        try:
            yield
        except WorkflowError as e:
            self.store.rollback()
            logger.warning(f"{operation} rejected for case {case_key}: {e.code} - {e.message}")
            raise
        except Exception:
            self.store.rollback()
            logger.exception(f"{operation} failed for case {case_key}")
            raise

    def _require_role(self, actor_id: str, role: ActorRole, case_key: str = None) -> None:
        if not self.authorization.is_authorized(actor_id, role):
            raise Unauthorized(f"Actor {actor_id} lacks role {role.value}", case_key=case_key)

    def _require_subject(self, case: CaseDB, actor_id: str) -> None:
        self._require_role(actor_id, ActorRole.APPLICANT, case.case_key)
        if case.subject_key != actor_id:
            raise Unauthorized(
                f"Actor {actor_id} is not the subject of case {case.case_key}",
                case_key=case.case_key,
            )

    def _require_recognized(self, actor_id: str, case_key: str = None) -> None:
        if not self.authorization.is_recognized(actor_id):
            raise Unauthorized(f"Actor {actor_id} is not a recognized actor", case_key=case_key)

    def _require_undecided(self, case: CaseDB) -> None:
        if case.outcome != CaseOutcome.PENDING or case.is_terminal:
            raise AlreadyDecided(
                f"Case {case.case_key} already decided: {case.outcome.value}",
                case_key=case.case_key,
            )

    def _require_phase(self, case: CaseDB, allowed: tuple, operation: str) -> None:
        if case.phase not in allowed:
            raise InvalidPhase(
                f"Cannot {operation} while case is {case.phase.value}",
                case_key=case.case_key,
            )

    def _require_not_before_last_event(self, case: CaseDB, now: datetime) -> None:
        recorded = [
            case.submitted_at, case.acknowledged_at, case.completeness_confirmed_at,
            case.decided_at, case.notified_at, case.suspension_start,
        ]
        latest = max(t for t in recorded if t is not None)
        if now < latest:
            raise InvalidPhase(
                f"Operation time {now.isoformat()} precedes last recorded event {latest.isoformat()}",
                case_key=case.case_key,
            )

    def _require_attachments(self, case: CaseDB, required, purpose: str) -> None:
        missing = [kind.value for kind in required if kind not in case.attachment_kinds()]
        if missing:
            raise MissingPrerequisite(
                f"Missing attachments for {purpose}: {', '.join(missing)}",
                case_key=case.case_key,
            )

    def _advance(self, case: CaseDB, to_phase: CasePhase) -> None:
        """Move to to_phase if the phase table allows it."""
        allowed = PHASE_CONFIG[case.phase]["allowed_transitions"]
        if to_phase not in allowed or PHASE_ORDER[to_phase] <= PHASE_ORDER[case.phase]:
            raise InvalidPhase(
                f"Cannot transition from {case.phase.value} to {to_phase.value}",
                case_key=case.case_key,
            )
        case.phase = to_phase

    def _put_attachment(
        self, case: CaseDB, kind: AttachmentKind, reference: str, actor_id: str, now: datetime
    ) -> None:
        if not reference or not reference.strip():
            raise MissingPrerequisite(
                f"Empty reference for {kind.value}", case_key=case.case_key
            )
        for attachment in case.attachments:
            if attachment.kind == kind:
                attachment.reference = reference.strip()
                attachment.submitted_by = actor_id
                attachment.submitted_at = now
                break
        else:
            case.attachments.append(CaseAttachmentDB(
                kind=kind,
                reference=reference.strip(),
                submitted_by=actor_id,
                submitted_at=now,
            ))
        # Touch the case row so the version check covers evidence changes
        case.updated_at = now

    def _record(
        self,
        case: CaseDB,
        from_phase: Optional[CasePhase],
        actor_id: str,
        operation: str,
        now: datetime,
    ) -> None:
        """
        Hand the transition notice to the audit trail.

        Runs after the case commit, so the transition already stands. A trail
        failure is logged and does not reach the caller.
        """
        notice = TransitionNotice(
            case_key=case.case_key,
            from_phase=from_phase,
            to_phase=case.phase,
            timestamp=now,
            actor=actor_id,
            operation=operation,
        )
        try:
            self.audit_trail.record(notice)
        except Exception:
            self.store.rollback()
            logger.exception(
                f"Audit trail failed for case {case.case_key} ({operation}); transition was applied"
            )

    def _commit(
        self,
        case: CaseDB,
        from_phase: Optional[CasePhase],
        actor_id: str,
        operation: str,
        now: datetime,
    ) -> Dict[str, Any]:
        self.store.commit(case)
        self._record(case, from_phase, actor_id, operation, now)

        logger.info(
            f"Case {case.case_key}: {operation} by {actor_id} "
            f"({from_phase.value if from_phase else '-'} -> {case.phase.value})"
        )
        return self._case_summary(case, now)

    def _case_summary(self, case: CaseDB, now: datetime) -> Dict[str, Any]:
        def iso(value):
            return value.isoformat() if value else None

        return {
            "case_key": case.case_key,
            "case_kind": case.case_kind.value,
            "subject_key": case.subject_key,
            "target_entity": case.target_entity,
            "cross_border": case.cross_border,
            "phase": case.phase.value,
            "outcome": case.outcome.value,
            "outcome_reason_ref": case.outcome_reason_ref,
            "flagged_issue_ref": case.flagged_issue_ref,
            "submitted_at": iso(case.submitted_at),
            "acknowledged_at": iso(case.acknowledged_at),
            "completeness_confirmed_at": iso(case.completeness_confirmed_at),
            "decided_at": iso(case.decided_at),
            "notified_at": iso(case.notified_at),
            "review_expiry": iso(case.review_expiry),
            "suspension": {
                "start": iso(case.suspension_start),
                "end": iso(case.suspension_end),
                "active": self.tracker.is_suspension_active(case, now),
            } if case.is_suspended else None,
            "information_requests": case.information_requests,
            "attachments": {a.kind.value: a.reference for a in case.attachments},
            "notified_to_oversight": case.notified_to_oversight,
            "deemed_approval_available": self.tracker.is_deemed_approved(case, now),
            "days_remaining": self.tracker.days_remaining(case, now),
        }

    # =========================================================================
    # APPLICANT OPERATIONS
    # =========================================================================

    def submit(
        self,
        actor_id: str,
        case_kind: CaseKind,
        target_entity: str,
        cross_border: bool = False,
        attachments: Dict[AttachmentKind, str] = None,
        now: datetime = None,
    ) -> Dict[str, Any]:
        """
        Open a case for the calling applicant.

        The caller becomes the subject. Fails with DuplicateCase while the
        caller has an undecided case of the same kind.
        """
        now = _normalize(now)
        with self._operation("submit"):
            self._require_role(actor_id, ActorRole.APPLICANT)

            case = CaseDB(
                case_key=str(uuid4()),
                case_kind=case_kind,
                subject_key=actor_id,
                target_entity=target_entity,
                cross_border=cross_border,
                phase=CasePhase.SUBMITTED,
                outcome=CaseOutcome.PENDING,
                submitted_at=now,
                information_requests=0,
                notified_to_oversight=False,
            )
            for kind, reference in (attachments or {}).items():
                if kind in AUTHORITY_ATTACHMENTS:
                    raise Unauthorized(f"Applicants cannot attach {kind.value}")
                self._put_attachment(case, kind, reference, actor_id, now)

            self.store.create(case)

        self._record(case, None, actor_id, "submit", now)
        logger.info(f"Case {case.case_key} submitted by {actor_id} ({case_kind.value})")
        return self._case_summary(case, now)

    def attach(
        self,
        case_key: str,
        actor_id: str,
        kind: AttachmentKind,
        reference: str,
        now: datetime = None,
    ) -> Dict[str, Any]:
        """
        Attach or replace an evidence reference.

        Consultation proof comes from the decision authority; every other
        kind comes from the case subject.
        """
        now = _normalize(now)
        with self._operation("attach", case_key):
            if kind in AUTHORITY_ATTACHMENTS:
                self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
                case = self.store.get(case_key)
            else:
                case = self.store.get(case_key)
                self._require_subject(case, actor_id)
            self._require_undecided(case)
            self._require_not_before_last_event(case, now)

            self._put_attachment(case, kind, reference, actor_id, now)
            return self._commit(case, case.phase, actor_id, "attach", now)

    def submit_additional_info(
        self,
        case_key: str,
        actor_id: str,
        reference: str,
        now: datetime = None,
    ) -> Dict[str, Any]:
        """
        Answer an open information request.

        Closes the suspension and extends review_expiry by exactly the time
        the clock was paused. After the suspension end this fails with
        SuspensionConflict and the suspension stays on the record.
        """
        now = _normalize(now)
        with self._operation("submit_additional_info", case_key):
            case = self.store.get(case_key)
            self._require_subject(case, actor_id)
            self._require_undecided(case)
            self._require_not_before_last_event(case, now)

            tolled = self.tracker.close_suspension(case, now)
            self._put_attachment(
                case, AttachmentKind.ADDITIONAL_INFORMATION, reference, actor_id, now
            )
            logger.info(f"Case {case_key}: review expiry tolled by {tolled}")
            return self._commit(case, case.phase, actor_id, "submit_additional_info", now)

    # =========================================================================
    # DECISION AUTHORITY OPERATIONS
    # =========================================================================

    def acknowledge(self, case_key: str, actor_id: str, now: datetime = None) -> Dict[str, Any]:
        """Acknowledge receipt and start the review clock."""
        now = _normalize(now)
        with self._operation("acknowledge", case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            self._require_phase(case, (CasePhase.SUBMITTED,), "acknowledge")
            self._require_not_before_last_event(case, now)
            if not self.tracker.is_within_window(case, WindowEvent.ACKNOWLEDGMENT, now):
                deadline = self.tracker.window_deadline(case, WindowEvent.ACKNOWLEDGMENT)
                raise WindowExpired(
                    f"Acknowledgment window closed {deadline.isoformat()}", case_key=case_key
                )

            from_phase = case.phase
            self._advance(case, CasePhase.ACKNOWLEDGED)
            case.acknowledged_at = now
            case.review_expiry = self.tracker.initial_review_expiry(case, now)
            return self._commit(case, from_phase, actor_id, "acknowledge", now)

    def confirm_completeness(
        self, case_key: str, actor_id: str, now: datetime = None
    ) -> Dict[str, Any]:
        """Confirm the file holds every evidence kind the variant requires."""
        now = _normalize(now)
        with self._operation("confirm_completeness", case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            self._require_phase(case, (CasePhase.ACKNOWLEDGED,), "confirm completeness")
            self._require_not_before_last_event(case, now)
            config = self.tracker.get_config(case.case_kind)
            self._require_attachments(case, config["completeness_attachments"], "completeness")

            from_phase = case.phase
            self._advance(case, CasePhase.COMPLETENESS_CONFIRMED)
            case.completeness_confirmed_at = now
            return self._commit(case, from_phase, actor_id, "confirm_completeness", now)

    def flag_issue(
        self, case_key: str, actor_id: str, reference: str, now: datetime = None
    ) -> Dict[str, Any]:
        """Record a flagged issue. A flagged case can be rejected but not approved."""
        now = _normalize(now)
        with self._operation("flag_issue", case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            self._require_not_before_last_event(case, now)
            if not reference or not reference.strip():
                raise MissingPrerequisite("Flagged issue needs a reference", case_key=case_key)

            case.flagged_issue_ref = reference.strip()
            case.updated_at = now
            return self._commit(case, case.phase, actor_id, "flag_issue", now)

    def request_additional_info(
        self,
        case_key: str,
        actor_id: str,
        duration_days: int = None,
        now: datetime = None,
    ) -> Dict[str, Any]:
        """
        Suspend the review clock pending additional information.

        duration_days defaults to the variant's statutory suspension (longer
        for cross-border parties) and may not exceed it.
        """
        now = _normalize(now)
        with self._operation("request_additional_info", case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            config = self.tracker.get_config(case.case_kind)
            self._require_phase(
                case, tuple(config["information_request_phases"]), "request additional information"
            )
            self._require_not_before_last_event(case, now)

            if not self.tracker.is_within_window(case, WindowEvent.INFORMATION_REQUEST, now):
                cutoff = self.tracker.window_deadline(case, WindowEvent.INFORMATION_REQUEST)
                raise WindowExpired(
                    f"Information requests closed {cutoff.isoformat()}", case_key=case_key
                )
            if not self.tracker.is_within_window(case, WindowEvent.DECISION, now):
                raise WindowExpired(
                    f"Review window closed {case.review_expiry.isoformat()}", case_key=case_key
                )
            if self.tracker.is_suspension_active(case, now):
                raise SuspensionConflict(
                    f"Suspension already open until {case.suspension_end.isoformat()}",
                    case_key=case_key,
                )
            limit = config["max_information_requests"]
            if limit is not None and case.information_requests >= limit:
                raise SuspensionConflict(
                    f"Information request limit ({limit}) reached", case_key=case_key
                )

            maximum = self.tracker.suspension_duration(case)
            duration = maximum if duration_days is None else timedelta(days=duration_days)
            if duration <= timedelta(0) or duration > maximum:
                raise SuspensionConflict(
                    f"Suspension must be between 1 and {maximum.days} days", case_key=case_key
                )

            self.tracker.discard_lapsed_suspension(case, now)
            self.tracker.open_suspension(case, now, duration)
            case.information_requests = case.information_requests + 1
            return self._commit(case, case.phase, actor_id, "request_additional_info", now)

    def decide(
        self,
        case_key: str,
        actor_id: str,
        approve: bool,
        reason_ref: str = None,
        now: datetime = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject.

        Only possible before review_expiry and while no suspension is
        running. After expiry this fails with WindowExpired; the case is then
        open to finalize_deemed_approval instead.
        """
        now = _normalize(now)
        operation = "approve" if approve else "reject"
        with self._operation(operation, case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            self._require_phase(case, (CasePhase.COMPLETENESS_CONFIRMED,), operation)
            self._require_not_before_last_event(case, now)
            if self.tracker.is_suspension_active(case, now):
                raise SuspensionConflict(
                    f"Cannot decide while suspended until {case.suspension_end.isoformat()}",
                    case_key=case_key,
                )
            if not self.tracker.is_within_window(case, WindowEvent.DECISION, now):
                raise WindowExpired(
                    f"Review window closed {case.review_expiry.isoformat()}; "
                    f"finalize the deemed approval instead",
                    case_key=case_key,
                )

            from_phase = case.phase
            if approve:
                config = self.tracker.get_config(case.case_kind)
                self._require_attachments(case, config["approval_attachments"], "approval")
                if case.flagged_issue_ref:
                    raise MissingPrerequisite(
                        f"Flagged issue {case.flagged_issue_ref} bars approval",
                        case_key=case_key,
                    )
                self._advance(case, CasePhase.APPROVED)
                case.outcome = CaseOutcome.APPROVED
            else:
                if not reason_ref or not reason_ref.strip():
                    raise MissingPrerequisite("Rejection needs a reason reference", case_key=case_key)
                self._advance(case, CasePhase.REJECTED)
                case.outcome = CaseOutcome.REJECTED
                case.outcome_reason_ref = reason_ref.strip()

            self.tracker.discard_lapsed_suspension(case, now)
            case.decided_at = now
            return self._commit(case, from_phase, actor_id, operation, now)

    def notify_oversight(self, case_key: str, actor_id: str, now: datetime = None) -> Dict[str, Any]:
        """Record that the decision was notified to the oversight authority."""
        now = _normalize(now)
        with self._operation("notify_oversight", case_key):
            self._require_role(actor_id, ActorRole.DECISION_AUTHORITY, case_key)
            case = self.store.get(case_key)
            if case.outcome == CaseOutcome.PENDING:
                raise InvalidPhase(f"Case {case_key} has no decision to notify", case_key=case_key)
            if case.notified_to_oversight:
                raise InvalidPhase(f"Case {case_key} already notified", case_key=case_key)
            self._require_not_before_last_event(case, now)
            if not self.tracker.is_within_window(case, WindowEvent.NOTIFICATION, now):
                deadline = self.tracker.window_deadline(case, WindowEvent.NOTIFICATION)
                raise WindowExpired(
                    f"Notification window closed {deadline.isoformat()}", case_key=case_key
                )

            case.notified_to_oversight = True
            case.notified_at = now
            return self._commit(case, case.phase, actor_id, "notify_oversight", now)

    # =========================================================================
    # DEEMED APPROVAL
    # =========================================================================

    def finalize_deemed_approval(
        self, case_key: str, actor_id: str, now: datetime = None
    ) -> Dict[str, Any]:
        """
        Record silence as approval once the review window has lapsed.

        Callable by any recognized actor. An explicit decision taken before
        expiry always wins: once the outcome is set this fails with
        AlreadyDecided.
        """
        now = _normalize(now)
        with self._operation("finalize_deemed_approval", case_key):
            self._require_recognized(actor_id, case_key)
            case = self.store.get(case_key)
            self._require_undecided(case)
            self._require_not_before_last_event(case, now)

            if not self.tracker.is_deemed_approved(case, now):
                if case.review_expiry is None:
                    raise InvalidPhase(
                        f"Review clock not started for case {case_key}", case_key=case_key
                    )
                if self.tracker.is_suspension_active(case, now):
                    raise SuspensionConflict(
                        f"Review clock suspended until {case.suspension_end.isoformat()}",
                        case_key=case_key,
                    )
                raise InvalidPhase(
                    f"Review window runs until {case.review_expiry.isoformat()}",
                    case_key=case_key,
                )

            from_phase = case.phase
            self._advance(case, CasePhase.DEEMED_APPROVED)
            self.tracker.discard_lapsed_suspension(case, now)
            case.outcome = CaseOutcome.DEEMED_APPROVED
            case.decided_at = now
            return self._commit(case, from_phase, actor_id, "finalize_deemed_approval", now)

    # =========================================================================
    # READS
    # =========================================================================

    def get_case(self, case_key: str) -> CaseDB:
        return self.store.get(case_key)

    def case_status(self, case_key: str, now: datetime = None) -> Dict[str, Any]:
        """Case summary with deemed approval evaluated for `now`. Never mutates."""
        now = _normalize(now)
        return self._case_summary(self.store.get(case_key), now)

    def is_deemed_approved(self, case_key: str, now: datetime = None) -> bool:
        return self.tracker.is_deemed_approved(self.store.get(case_key), _normalize(now))

    def transition_history(self, case_key: str) -> List[Dict[str, Any]]:
        self.store.get(case_key)
        return [
            {
                "operation": entry.operation,
                "from_phase": entry.from_phase.value if entry.from_phase else None,
                "to_phase": entry.to_phase.value,
                "actor": entry.actor,
                "timestamp": entry.occurred_at.isoformat(),
            }
            for entry in self.store.transitions(case_key)
        ]

    def upcoming_deadlines(self, now: datetime = None, days_ahead: int = 7) -> List[Dict[str, Any]]:
        """Undecided cases whose review expiry falls before now + days_ahead, overdue ones included."""
        now = _normalize(now)
        cutoff = now + timedelta(days=days_ahead)

        return [
            {
                "case_key": case.case_key,
                "case_kind": case.case_kind.value,
                "target_entity": case.target_entity,
                "review_expiry": case.review_expiry.isoformat(),
                "days_remaining": self.tracker.days_remaining(case, now),
                "suspended": self.tracker.is_suspension_active(case, now),
                "deemed_approval_available": self.tracker.is_deemed_approved(case, now),
            }
            for case in self.store.list_due_before(cutoff)
        ]
