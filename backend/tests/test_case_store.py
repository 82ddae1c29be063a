"""
Tests for CaseStore.

Covers:
1. Keyed lookup and CaseNotFound
2. One live case per subject and kind
3. Compare-and-set on concurrent updates (two sessions, one file database)
4. Open case listing for deadline monitoring
5. Engine options per database URL
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from regauth.database import Base, engine_options
from regauth.models.db_models import CaseDB, CaseKind, CaseOutcome, CasePhase
from regauth.services.workflow import CaseNotFound, CaseStore, DuplicateCase, StaleCase

from conftest import APPLICANT, OTHER_APPLICANT, day


def new_case(case_key, subject_key=APPLICANT, case_kind=CaseKind.LICENSING_APPLICATION, **overrides):
    values = dict(
        case_key=case_key,
        case_kind=case_kind,
        subject_key=subject_key,
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
def store(db):
    return CaseStore(db)


# =============================================================================
# TEST: LOOKUP AND CREATE
# =============================================================================

class TestCreateAndGet:

    def test_get_unknown_case(self, store):
        with pytest.raises(CaseNotFound) as exc_info:
            store.get("missing")

        assert exc_info.value.case_key == "missing"
        assert exc_info.value.to_dict()["error"] == "CASE_NOT_FOUND"

    def test_create_then_get(self, store):
        store.create(new_case("case-1"))

        case = store.get("case-1")
        assert case.subject_key == APPLICANT
        assert case.version == 1

    def test_second_live_case_rejected(self, store):
        store.create(new_case("case-1"))

        with pytest.raises(DuplicateCase) as exc_info:
            store.create(new_case("case-2"))

        assert exc_info.value.case_key == "case-1"

    def test_other_subject_is_independent(self, store):
        store.create(new_case("case-1"))
        store.create(new_case("case-2", subject_key=OTHER_APPLICANT))

        assert store.find_live(OTHER_APPLICANT, CaseKind.LICENSING_APPLICATION).case_key == "case-2"

    def test_decided_case_is_not_live(self, store):
        store.create(new_case("case-1"))
        case = store.get("case-1")
        case.outcome = CaseOutcome.REJECTED
        case.phase = CasePhase.REJECTED
        store.commit(case)

        store.create(new_case("case-2"))

        assert store.find_live(APPLICANT, CaseKind.LICENSING_APPLICATION).case_key == "case-2"

    def test_unique_index_backs_the_lookup(self, db, store, monkeypatch):
        """A submission that slips past find_live still hits the index."""
        store.create(new_case("case-1"))
        monkeypatch.setattr(store, "find_live", lambda subject_key, case_kind: None)

        with pytest.raises(DuplicateCase):
            store.create(new_case("case-2"))

        assert db.query(CaseDB).count() == 1


# =============================================================================
# TEST: COMPARE-AND-SET
# =============================================================================

class TestCompareAndSet:

    @pytest.fixture
    def sessions(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'cases.db'}")
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        first, second = factory(), factory()
        yield first, second
        first.close()
        second.close()
        engine.dispose()

    def test_version_increments(self, store):
        store.create(new_case("case-1"))
        case = store.get("case-1")

        case.information_requests = 1
        store.commit(case)

        assert store.get("case-1").version == 2

    def test_lost_race_raises_stale_case(self, sessions):
        first, second = sessions
        CaseStore(first).create(new_case("case-1"))

        mine = CaseStore(first).get("case-1")
        theirs = CaseStore(second).get("case-1")

        theirs.phase = CasePhase.ACKNOWLEDGED
        theirs.acknowledged_at = day(1)
        CaseStore(second).commit(theirs)

        mine.phase = CasePhase.ACKNOWLEDGED
        mine.acknowledged_at = day(2)
        with pytest.raises(StaleCase):
            CaseStore(first).commit(mine)

        first.expire_all()
        assert CaseStore(first).get("case-1").acknowledged_at == day(1)


# =============================================================================
# TEST: LISTING
# =============================================================================

class TestListing:

    def test_list_open_skips_unacknowledged_and_decided(self, store):
        store.create(new_case("waiting"))
        store.create(new_case(
            "running", subject_key=OTHER_APPLICANT,
            phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(1), review_expiry=day(91),
        ))
        store.create(new_case(
            "done", case_kind=CaseKind.QUALIFYING_ACQUISITION,
            phase=CasePhase.APPROVED, outcome=CaseOutcome.APPROVED,
            acknowledged_at=day(1), review_expiry=day(61), decided_at=day(5),
        ))

        assert [c.case_key for c in store.list_open()] == ["running"]
        assert store.list_open(CaseKind.QUALIFYING_ACQUISITION) == []

    def test_list_due_before(self, store):
        store.create(new_case(
            "soon", phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(0), review_expiry=day(10),
        ))
        store.create(new_case(
            "later", subject_key=OTHER_APPLICANT,
            phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(0), review_expiry=day(40),
        ))

        assert [c.case_key for c in store.list_due_before(day(15))] == ["soon"]

    def test_list_due_before_filters_kind_and_orders_by_expiry(self, store):
        store.create(new_case(
            "acq-late", case_kind=CaseKind.QUALIFYING_ACQUISITION,
            phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(0), review_expiry=day(12),
        ))
        store.create(new_case(
            "acq-early", subject_key=OTHER_APPLICANT, case_kind=CaseKind.QUALIFYING_ACQUISITION,
            phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(0), review_expiry=day(8),
        ))
        store.create(new_case(
            "lic", phase=CasePhase.ACKNOWLEDGED, acknowledged_at=day(0), review_expiry=day(9),
        ))

        due = store.list_due_before(day(12), CaseKind.QUALIFYING_ACQUISITION)

        assert [c.case_key for c in due] == ["acq-early", "acq-late"]
        assert [c.case_key for c in store.list_due_before(day(9))] == ["acq-early", "lic"]


# =============================================================================
# TEST: ENGINE OPTIONS
# =============================================================================

class TestEngineOptions:

    def test_in_memory_sqlite_shares_one_connection(self):
        options = engine_options("sqlite://")

        assert options["poolclass"] is StaticPool
        assert options["connect_args"] == {"check_same_thread": False}

    def test_file_sqlite_uses_default_pool(self):
        assert "poolclass" not in engine_options("sqlite:///cases.db")

    def test_postgres_pings_connections(self):
        assert engine_options("postgresql://regauth@localhost:5432/regauth") == {"pool_pre_ping": True}
