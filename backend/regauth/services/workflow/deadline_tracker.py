"""
Deadline Tracker

Pure deadline arithmetic over a case record.
Computes whether a statutory window has elapsed, applies suspension
tolling and extends the review expiry.

Key behaviors:
- Windows are per workflow variant (licensing / qualifying acquisition)
- A closed suspension is folded entirely into review_expiry
- Deemed approval is a derived read. Nothing here runs on a timer; a case
  stays PENDING in storage until an actor next touches it.

All timestamps are naive UTC datetimes supplied by the caller for the
operation being evaluated.
"""
import os
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from ...models.db_models import AttachmentKind, CaseDB, CaseKind, CaseOutcome, CasePhase
from .errors import SuspensionConflict


class WindowEvent(str, Enum):
    """Time-gated events checked by is_within_window."""
    ACKNOWLEDGMENT = "ACKNOWLEDGMENT"
    INFORMATION_REQUEST = "INFORMATION_REQUEST"
    DECISION = "DECISION"
    NOTIFICATION = "NOTIFICATION"


def _days(kind: CaseKind, window: str, default: int) -> int:
    """Window length in days, overridable via REGAUTH_<KIND>_<WINDOW>_DAYS."""
    return int(os.getenv(f"REGAUTH_{kind.value}_{window}_DAYS", default))


# =============================================================================
# DEADLINE CONFIGURATION
# =============================================================================

DEADLINE_CONFIG = {
    CaseKind.LICENSING_APPLICATION: {
        "acknowledgment_days": _days(CaseKind.LICENSING_APPLICATION, "ACKNOWLEDGMENT", 5),
        "review_days": _days(CaseKind.LICENSING_APPLICATION, "REVIEW", 40),
        "information_request_cutoff_days": _days(CaseKind.LICENSING_APPLICATION, "INFORMATION_REQUEST", 40),
        "suspension_days": _days(CaseKind.LICENSING_APPLICATION, "SUSPENSION", 20),
        "cross_border_suspension_days": _days(CaseKind.LICENSING_APPLICATION, "CROSS_BORDER_SUSPENSION", 20),
        "notification_days": _days(CaseKind.LICENSING_APPLICATION, "NOTIFICATION", 2),
        "max_information_requests": None,
        "information_request_phases": (CasePhase.COMPLETENESS_CONFIRMED,),
        "completeness_attachments": (
            AttachmentKind.PROGRAMME_OF_OPERATIONS,
            AttachmentKind.FITNESS_PROOF,
            AttachmentKind.RISK_MANAGEMENT_PROOF,
        ),
        "approval_attachments": (
            AttachmentKind.FITNESS_PROOF,
            AttachmentKind.CONSULTATION_PROOF,
        ),
        "description": "Authorization application assessment",
    },
    CaseKind.QUALIFYING_ACQUISITION: {
        "acknowledgment_days": _days(CaseKind.QUALIFYING_ACQUISITION, "ACKNOWLEDGMENT", 2),
        "review_days": _days(CaseKind.QUALIFYING_ACQUISITION, "REVIEW", 60),
        "information_request_cutoff_days": _days(CaseKind.QUALIFYING_ACQUISITION, "INFORMATION_REQUEST", 50),
        "suspension_days": _days(CaseKind.QUALIFYING_ACQUISITION, "SUSPENSION", 20),
        "cross_border_suspension_days": _days(CaseKind.QUALIFYING_ACQUISITION, "CROSS_BORDER_SUSPENSION", 30),
        "notification_days": _days(CaseKind.QUALIFYING_ACQUISITION, "NOTIFICATION", 2),
        # The assessment may be interrupted only once
        "max_information_requests": 1,
        "information_request_phases": (CasePhase.ACKNOWLEDGED, CasePhase.COMPLETENESS_CONFIRMED),
        "completeness_attachments": (
            AttachmentKind.FITNESS_PROOF,
            AttachmentKind.FUNDING_SOURCE_PROOF,
        ),
        "approval_attachments": (
            AttachmentKind.FITNESS_PROOF,
            AttachmentKind.CONSULTATION_PROOF,
        ),
        "description": "Qualifying holding acquisition assessment",
    },
}


# =============================================================================
# DEADLINE TRACKER
# =============================================================================

class DeadlineTracker:
    """
    Deadline arithmetic for authorization cases.

    Holds only configuration; every method works on the case and the
    timestamp it is given.
    """

    def __init__(self, config: Optional[Dict[CaseKind, Dict[str, Any]]] = None):
        merged = {kind: dict(values) for kind, values in DEADLINE_CONFIG.items()}
        for kind, overrides in (config or {}).items():
            merged.setdefault(kind, {}).update(overrides)
        self.config = merged

    def get_config(self, kind: CaseKind) -> Dict[str, Any]:
        """Get configuration for a workflow variant."""
        return self.config[kind]

    # =========================================================================
    # WINDOWS
    # =========================================================================

    def window_deadline(self, case: CaseDB, event: WindowEvent) -> Optional[datetime]:
        """
        Absolute deadline for a window, or None when its reference
        timestamp has not been set yet.
        """
        config = self.get_config(case.case_kind)

        if event == WindowEvent.ACKNOWLEDGMENT:
            reference, days = case.submitted_at, config["acknowledgment_days"]
        elif event == WindowEvent.INFORMATION_REQUEST:
            reference, days = case.acknowledged_at, config["information_request_cutoff_days"]
        elif event == WindowEvent.NOTIFICATION:
            reference, days = case.decided_at, config["notification_days"]
        elif event == WindowEvent.DECISION:
            return case.review_expiry
        else:
            raise ValueError(f"Unknown window event: {event}")

        if reference is None:
            return None
        return reference + timedelta(days=days)

    def is_within_window(self, case: CaseDB, event: WindowEvent, now: datetime) -> bool:
        """True iff now <= reference + window length."""
        deadline = self.window_deadline(case, event)
        if deadline is None:
            return False
        return now <= deadline

    def initial_review_expiry(self, case: CaseDB, acknowledged_at: datetime) -> datetime:
        config = self.get_config(case.case_kind)
        return acknowledged_at + timedelta(days=config["review_days"])

    def suspension_duration(self, case: CaseDB) -> timedelta:
        """Variant suspension length; cross-border parties get the longer one."""
        config = self.get_config(case.case_kind)
        if case.cross_border:
            return timedelta(days=config["cross_border_suspension_days"])
        return timedelta(days=config["suspension_days"])

    # =========================================================================
    # SUSPENSION / TOLLING
    # =========================================================================

    def is_suspension_active(self, case: CaseDB, now: datetime) -> bool:
        """
        A suspension pauses the clock only until its end. Past the end it has
        lapsed: it still sits on the record (nobody resumed it) but the clock
        runs as if it had never been opened.
        """
        return case.is_suspended and now <= case.suspension_end

    def open_suspension(self, case: CaseDB, now: datetime, duration: timedelta) -> None:
        """Pause the decision clock from now until now + duration."""
        if self.is_suspension_active(case, now):
            raise SuspensionConflict(
                f"Suspension already open until {case.suspension_end.isoformat()}",
                case_key=case.case_key,
            )
        case.suspension_start = now
        case.suspension_end = now + duration

    def close_suspension(self, case: CaseDB, now: datetime) -> timedelta:
        """
        Resume the clock, extending review_expiry by the time it was paused.

        Resuming after the suspension end is refused and the suspension stays
        on the record: the party loses the benefit of tolling.

        Returns the tolled duration.
        """
        if not case.is_suspended:
            raise SuspensionConflict("No suspension is open", case_key=case.case_key)
        if now < case.suspension_start:
            raise SuspensionConflict(
                f"Resume at {now.isoformat()} precedes suspension start {case.suspension_start.isoformat()}",
                case_key=case.case_key,
            )
        if now > case.suspension_end:
            raise SuspensionConflict(
                f"Suspension ended {case.suspension_end.isoformat()}; resume refused",
                case_key=case.case_key,
            )

        tolled = now - case.suspension_start
        case.review_expiry = case.review_expiry + tolled
        case.suspension_start = None
        case.suspension_end = None
        return tolled

    def discard_lapsed_suspension(self, case: CaseDB, now: datetime) -> bool:
        """Drop a lapsed suspension without tolling. Returns True if one was dropped."""
        if case.is_suspended and not self.is_suspension_active(case, now):
            case.suspension_start = None
            case.suspension_end = None
            return True
        return False

    # =========================================================================
    # DERIVED READS
    # =========================================================================

    def is_deemed_approved(self, case: CaseDB, now: datetime) -> bool:
        """Silence past the review expiry counts as approval."""
        if case.outcome != CaseOutcome.PENDING:
            return False
        if case.review_expiry is None or self.is_suspension_active(case, now):
            return False
        return now > case.review_expiry

    def days_remaining(self, case: CaseDB, now: datetime) -> Optional[int]:
        """Whole days until review expiry (negative when overdue)."""
        if case.review_expiry is None:
            return None
        return (case.review_expiry - now).days
