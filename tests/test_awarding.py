import pytest

from points_engine.extensions import db
from points_engine.models import PointsLedger
from points_engine.services.awarding import ALREADY_AWARDED, award_points
from points_engine.services.rules import CandidateEntry, attendance_candidate, exam_pass_candidate

from tests.helpers import ledger


def test_award_writes_one_entry(session, student, notify, sent):
    candidate = exam_pass_candidate("attempt-1")

    result = award_points(session, student.id, candidate, notify=notify)

    assert result.awarded
    (entry,) = ledger(session, user_id=student.id)
    assert (entry.points, entry.reason, entry.source_type, entry.source_id) == (100, "exam_passed", "exam", "attempt-1")
    assert entry.awarded_by == "system"
    assert sent == [result.entry]


def test_second_award_for_same_fact_is_skipped(session, student, notify, sent):
    candidate = attendance_candidate("att-1", "present", "2024-03-04")

    first = award_points(session, student.id, candidate, notify=notify)
    second = award_points(session, student.id, candidate, notify=notify)

    assert first.awarded
    assert not second.awarded
    assert second.skipped == ALREADY_AWARDED
    assert len(ledger(session, user_id=student.id, source_id="att-1")) == 1
    assert len(sent) == 1


def test_dedup_is_enforced_by_the_store_not_a_prior_read(session, student):
    # Another worker commits the same fact through its own session.
    other = db.new_session()
    other.add(PointsLedger(
        user_id=student.id, points=10, reason="attendance_present_2024-03-04",
        source_type="attendance", source_id="att-1",
    ))
    other.commit()
    other.close()

    result = award_points(session, student.id, attendance_candidate("att-1", "present", "2024-03-04"))

    assert result.skipped == ALREADY_AWARDED
    assert len(ledger(session, source_id="att-1")) == 1


def test_same_source_for_another_user_is_a_separate_fact(session, student):
    candidate = exam_pass_candidate("attempt-1")

    assert award_points(session, student.id, candidate).awarded
    assert award_points(session, "stu-other", candidate).awarded


def test_failed_notification_keeps_the_entry(session, student):
    def broken(entry):
        raise RuntimeError("mail server down")

    result = award_points(session, student.id, exam_pass_candidate("attempt-2"), notify=broken)

    assert result.awarded
    assert len(ledger(session, source_id="attempt-2")) == 1


def test_actor_is_recorded(session, student):
    result = award_points(session, student.id, exam_pass_candidate("attempt-3"), awarded_by="tutor-7")
    assert result.entry.awarded_by == "tutor-7"


def test_zero_point_candidates_are_refused(session, student):
    with pytest.raises(ValueError):
        award_points(session, student.id, CandidateEntry(0, "attendance_late_2024-03-04", "attendance", "att-9"))
    assert ledger(session, user_id=student.id) == []


def test_uncommitted_award_does_not_notify(session, student, notify, sent):
    result = award_points(session, student.id, exam_pass_candidate("attempt-4"), notify=notify, commit=False)
    session.commit()

    assert result.awarded
    assert sent == []
