from datetime import timezone

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.db_models import Assessment, AssessmentSession, Question, Response, User, utcnow

from conftest import CANDIDATE_ID


def test_default_timestamps_are_utc_aware():
    assert utcnow().tzinfo is timezone.utc
    assert User(id="u").created_at.tzinfo is timezone.utc
    assert AssessmentSession(user_id="u", assessment_id=1).started_at.tzinfo is timezone.utc


def test_aware_timestamps_persist(db):
    a = Assessment(title="T", category="C", difficulty="beginner", duration=10)
    db.add(a)
    db.commit()
    s = AssessmentSession(user_id=CANDIDATE_ID, assessment_id=a.id, status="completed", completed_at=utcnow())
    db.add(s)
    db.commit()
    db.refresh(s)
    assert s.completed_at is not None


def test_timestamp_columns_are_timezone_aware():
    for table in (User, Assessment, Question, AssessmentSession, Response):
        for col in table.__table__.columns:
            if col.name.endswith("_at"):
                assert col.type.timezone is True, f"{table.__tablename__}.{col.name}"


def test_child_rows_cascade_with_their_parent():
    q_fk = next(iter(Question.__table__.c.assessment_id.foreign_keys))
    r_fk = next(iter(Response.__table__.c.session_id.foreign_keys))
    assert q_fk.ondelete == "CASCADE"
    assert r_fk.ondelete == "CASCADE"


@pytest.mark.parametrize("row", [
    lambda a: Question(assessment_id=a.id, type="essay", question="q", points=1, order=1),
    lambda a: Question(assessment_id=a.id, type="text", question="q", points=0, order=1),
    lambda a: AssessmentSession(user_id=CANDIDATE_ID, assessment_id=a.id, status="archived"),
])
def test_check_constraints(db, make_assessment, row):
    a, _ = make_assessment([])
    db.add(row(a))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_assessment_duration_must_be_positive(db):
    db.add(Assessment(title="T", category="C", difficulty="beginner", duration=0))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
