"""
Case Store

Keyed persistence for case records.

Every update is a compare-and-set: the cases row carries a version column
(SQLAlchemy version_id_col), so the UPDATE only applies if nobody else has
committed since this operation read the row. A lost race rolls the whole
operation back.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...models.db_models import CaseDB, CaseKind, CaseOutcome, TransitionLogDB
from .errors import CaseNotFound, DuplicateCase, StaleCase

logger = logging.getLogger(__name__)


class CaseStore:
    """Keyed lookup, create-if-absent and atomic update for CaseDB rows."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def get(self, case_key: str) -> CaseDB:
        case = self.db.query(CaseDB).filter(CaseDB.case_key == case_key).first()
        if case is None:
            raise CaseNotFound(f"Case {case_key} not found", case_key=case_key)
        return case

    def find_live(self, subject_key: str, case_kind: CaseKind) -> Optional[CaseDB]:
        """The undecided case for a subject, if any."""
        return self.db.query(CaseDB).filter(
            CaseDB.subject_key == subject_key,
            CaseDB.case_kind == case_kind,
            CaseDB.outcome == CaseOutcome.PENDING,
        ).first()

    def create(self, case: CaseDB) -> CaseDB:
        """
        Insert a new case. Fails with DuplicateCase if the subject already
        has a live case of the same kind; the partial unique index catches
        a concurrent submission that slipped past the lookup.
        """
        existing = self.find_live(case.subject_key, case.case_kind)
        if existing is not None:
            raise DuplicateCase(
                f"Subject {case.subject_key} already has live case {existing.case_key}",
                case_key=existing.case_key,
            )

        self.db.add(case)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateCase(
                f"Subject {case.subject_key} already has a live {case.case_kind.value} case"
            )
        return case

    def commit(self, case: CaseDB) -> CaseDB:
        """Apply pending changes to the case atomically."""
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Concurrent update detected on case {case.case_key}")
            raise StaleCase(
                f"Case {case.case_key} was modified by another operation",
                case_key=case.case_key,
            )
        return case

    def rollback(self) -> None:
        """Discard any partial mutation of the current operation."""
        self.db.rollback()

    def _open_query(self, case_kind: CaseKind = None):
        query = self.db.query(CaseDB).filter(
            CaseDB.outcome == CaseOutcome.PENDING,
            CaseDB.review_expiry.isnot(None),
        )
        if case_kind is not None:
            query = query.filter(CaseDB.case_kind == case_kind)
        return query

    def list_open(self, case_kind: CaseKind = None) -> List[CaseDB]:
        """Undecided cases with a running review clock."""
        return self._open_query(case_kind).order_by(CaseDB.review_expiry).all()

    def list_due_before(self, cutoff: datetime, case_kind: CaseKind = None) -> List[CaseDB]:
        """Undecided cases whose review expiry is at or before cutoff."""
        return self._open_query(case_kind).filter(
            CaseDB.review_expiry <= cutoff
        ).order_by(CaseDB.review_expiry).all()

    def transitions(self, case_key: str) -> List[TransitionLogDB]:
        return self.db.query(TransitionLogDB).filter(
            TransitionLogDB.case_key == case_key
        ).order_by(TransitionLogDB.id).all()
