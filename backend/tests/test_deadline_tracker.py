"""
Deadline Tracker - Window and Tolling Tests

Tests verify:
1. Window checks measured from the right reference timestamp
2. Suspension open / close and exact tolling arithmetic
3. Resume after the suspension end is refused
4. Deemed approval as a lazy derived read
5. Variant configuration (cross-border suspension, env defaults)
"""
import pytest
from datetime import timedelta

from regauth.models.db_models import CaseDB, CaseKind, CaseOutcome, CasePhase
from regauth.services.workflow import DeadlineTracker, SuspensionConflict, WindowEvent
from regauth.services.workflow.deadline_tracker import DEADLINE_CONFIG

from conftest import SCENARIO_CONFIG, day


def make_case(**overrides) -> CaseDB:
    """Transient case record; never added to a session."""
    values = dict(
        case_key="case-1",
        case_kind=CaseKind.LICENSING_APPLICATION,
        subject_key="provider-001",
        target_entity="Example Custody Services",
        cross_border=False,
        phase=CasePhase.SUBMITTED,
        outcome=CaseOutcome.PENDING,
        submitted_at=day(0),
        information_requests=0,
        notified_to_oversight=False,
    )
    values.update(overrides)
    return CaseDB(**values)


@pytest.fixture
def acknowledged_case():
    return make_case(
        phase=CasePhase.COMPLETENESS_CONFIRMED,
        acknowledged_at=day(0),
        completeness_confirmed_at=day(1),
        review_expiry=day(90),
    )


# =============================================================================
# TEST: WINDOWS
# =============================================================================

class TestWindows:
    """Tests for is_within_window."""

    def test_acknowledgment_window_measured_from_submission(self, tracker):
        """Day 4 and day 5 are inside a 5-day window, day 6 is not."""
        case = make_case()

        assert tracker.is_within_window(case, WindowEvent.ACKNOWLEDGMENT, day(4))
        assert tracker.is_within_window(case, WindowEvent.ACKNOWLEDGMENT, day(5))
        assert not tracker.is_within_window(case, WindowEvent.ACKNOWLEDGMENT, day(6))

    def test_decision_window_uses_review_expiry(self, tracker, acknowledged_case):
        assert tracker.is_within_window(acknowledged_case, WindowEvent.DECISION, day(90))
        assert not tracker.is_within_window(
            acknowledged_case, WindowEvent.DECISION, day(90) + timedelta(seconds=1)
        )

    def test_information_request_cutoff_from_acknowledgment(self, tracker, acknowledged_case):
        assert tracker.is_within_window(acknowledged_case, WindowEvent.INFORMATION_REQUEST, day(60))
        assert not tracker.is_within_window(acknowledged_case, WindowEvent.INFORMATION_REQUEST, day(61))

    def test_notification_window_from_decision(self, tracker):
        case = make_case(decided_at=day(10), outcome=CaseOutcome.APPROVED)

        assert tracker.is_within_window(case, WindowEvent.NOTIFICATION, day(12))
        assert not tracker.is_within_window(case, WindowEvent.NOTIFICATION, day(13))

    def test_unset_reference_is_never_within_window(self, tracker):
        """No acknowledgment yet means no information-request window."""
        case = make_case()

        assert tracker.window_deadline(case, WindowEvent.INFORMATION_REQUEST) is None
        assert not tracker.is_within_window(case, WindowEvent.INFORMATION_REQUEST, day(1))

    def test_initial_review_expiry(self, tracker):
        case = make_case()
        assert tracker.initial_review_expiry(case, day(4)) == day(94)


# =============================================================================
# TEST: SUSPENSION / TOLLING
# =============================================================================

class TestSuspension:
    """Tests for open_suspension / close_suspension."""

    def test_open_sets_window(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        assert acknowledged_case.suspension_start == day(40)
        assert acknowledged_case.suspension_end == day(70)
        assert acknowledged_case.is_suspended

    def test_second_open_is_rejected(self, tracker, acknowledged_case):
        """No stacking: the first suspension is left untouched."""
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        with pytest.raises(SuspensionConflict):
            tracker.open_suspension(acknowledged_case, day(45), timedelta(days=30))

        assert acknowledged_case.suspension_start == day(40)
        assert acknowledged_case.suspension_end == day(70)

    def test_close_tolls_exactly_the_paused_time(self, tracker, acknowledged_case):
        """Opened day 40, closed day 65 → expiry 90 + 25 = 115."""
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        tolled = tracker.close_suspension(acknowledged_case, day(65))

        assert tolled == timedelta(days=25)
        assert acknowledged_case.review_expiry == day(115)
        assert acknowledged_case.suspension_start is None
        assert acknowledged_case.suspension_end is None

    def test_close_on_the_last_day_is_allowed(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        tracker.close_suspension(acknowledged_case, day(70))

        assert acknowledged_case.review_expiry == day(120)

    def test_close_after_end_is_refused_and_suspension_stays(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        with pytest.raises(SuspensionConflict):
            tracker.close_suspension(acknowledged_case, day(75))

        assert acknowledged_case.review_expiry == day(90)
        assert acknowledged_case.suspension_start == day(40)
        assert acknowledged_case.suspension_end == day(70)

    def test_close_before_start_is_refused(self, tracker, acknowledged_case):
        """Negative tolling would shrink the review expiry."""
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        with pytest.raises(SuspensionConflict):
            tracker.close_suspension(acknowledged_case, day(30))

        assert acknowledged_case.review_expiry == day(90)
        assert acknowledged_case.suspension_start == day(40)

    def test_close_without_suspension(self, tracker, acknowledged_case):
        with pytest.raises(SuspensionConflict):
            tracker.close_suspension(acknowledged_case, day(10))

    def test_lapsed_suspension_is_not_active(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        assert tracker.is_suspension_active(acknowledged_case, day(70))
        assert not tracker.is_suspension_active(acknowledged_case, day(71))

    def test_discard_lapsed_suspension_does_not_toll(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(40), timedelta(days=30))

        assert not tracker.discard_lapsed_suspension(acknowledged_case, day(60))
        assert tracker.discard_lapsed_suspension(acknowledged_case, day(80))
        assert acknowledged_case.suspension_start is None
        assert acknowledged_case.review_expiry == day(90)


# =============================================================================
# TEST: DEEMED APPROVAL
# =============================================================================

class TestDeemedApproval:
    """Tests for the derived deemed-approval read."""

    def test_not_before_expiry(self, tracker, acknowledged_case):
        assert not tracker.is_deemed_approved(acknowledged_case, day(90))

    def test_strictly_after_expiry(self, tracker, acknowledged_case):
        assert tracker.is_deemed_approved(acknowledged_case, day(90) + timedelta(seconds=1))

    def test_not_while_suspension_running(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(80), timedelta(days=30))

        assert not tracker.is_deemed_approved(acknowledged_case, day(95))

    def test_lapsed_suspension_does_not_block(self, tracker, acknowledged_case):
        tracker.open_suspension(acknowledged_case, day(80), timedelta(days=20))

        assert tracker.is_deemed_approved(acknowledged_case, day(101))

    def test_not_once_decided(self, tracker, acknowledged_case):
        acknowledged_case.outcome = CaseOutcome.REJECTED

        assert not tracker.is_deemed_approved(acknowledged_case, day(200))

    def test_not_before_acknowledgment(self, tracker):
        assert not tracker.is_deemed_approved(make_case(), day(500))

    def test_read_does_not_mutate(self, tracker, acknowledged_case):
        tracker.is_deemed_approved(acknowledged_case, day(200))

        assert acknowledged_case.outcome == CaseOutcome.PENDING
        assert acknowledged_case.phase == CasePhase.COMPLETENESS_CONFIRMED

    def test_days_remaining(self, tracker, acknowledged_case):
        assert tracker.days_remaining(acknowledged_case, day(80)) == 10
        assert tracker.days_remaining(acknowledged_case, day(92)) == -2
        assert tracker.days_remaining(make_case(), day(1)) is None


# =============================================================================
# TEST: CONFIGURATION
# =============================================================================

class TestConfiguration:
    """Tests for variant configuration."""

    def test_cross_border_acquirer_gets_longer_suspension(self, tracker):
        domestic = make_case(case_kind=CaseKind.QUALIFYING_ACQUISITION)
        foreign = make_case(case_kind=CaseKind.QUALIFYING_ACQUISITION, cross_border=True)

        assert tracker.suspension_duration(domestic) == timedelta(days=20)
        assert tracker.suspension_duration(foreign) == timedelta(days=30)

    def test_overrides_merge_with_defaults(self):
        tracker = DeadlineTracker({CaseKind.LICENSING_APPLICATION: {"review_days": 90}})
        config = tracker.get_config(CaseKind.LICENSING_APPLICATION)

        assert config["review_days"] == 90
        assert config["completeness_attachments"] == (
            DEADLINE_CONFIG[CaseKind.LICENSING_APPLICATION]["completeness_attachments"]
        )

    def test_overrides_do_not_leak_into_module_config(self):
        DeadlineTracker(SCENARIO_CONFIG)

        assert DEADLINE_CONFIG[CaseKind.QUALIFYING_ACQUISITION]["max_information_requests"] == 1
        assert "review_days" in DEADLINE_CONFIG[CaseKind.LICENSING_APPLICATION]
