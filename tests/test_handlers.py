from datetime import date, datetime, timedelta, timezone

import pytest

from points_engine.models import AssignmentTemplate, Cohort, LoginEvent, User
from points_engine.schemas.triggers import LifecycleTrigger
from points_engine.services.handlers import (
    PayloadError,
    award_event,
    process_attendance,
    process_login_streak,
    process_quiz_result,
    process_submission_timing,
    record_exam_pass,
    record_login,
    sweep_login_streaks,
)
from points_engine.services.schedule import assignment_dates

from tests.helpers import add_logins, days_back, ledger

D = date(2024, 3, 14)


def trigger(entity_id, data, *, event_type="create", old_data=None):
    return LifecycleTrigger.model_validate(
        {"event": {"type": event_type, "entity_id": entity_id}, "data": data, "old_data": old_data}
    )


# --- attendance ---------------------------------------------------------------

def test_attendance_duplicate_delivery_awards_once(session, student, notify, sent):
    data = {"student_user_id": student.id, "status": "present", "date": "2024-03-04", "cohort_id": "c1"}

    first = process_attendance(session, trigger("att-1", data), notify=notify)
    second = process_attendance(session, trigger("att-1", data), notify=notify)

    assert first == {"awarded": 10, "student_user_id": student.id, "status": "present"}
    assert second == {"skipped": "already awarded"}
    assert len(ledger(session, source_id="att-1")) == 1
    assert len(sent) == 1


def test_late_attendance_never_creates_entries(session, student):
    data = {"student_user_id": student.id, "status": "Late", "date": "2024-03-04"}

    assert process_attendance(session, trigger("att-2", data)) == {"skipped": "late - no points"}
    assert ledger(session, user_id=student.id) == []


def test_attendance_without_data_is_skipped(session):
    assert process_attendance(session, trigger("att-3", None)) == {"skipped": "no data"}


def test_attendance_with_unknown_status_is_a_payload_error(session, student):
    data = {"student_user_id": student.id, "status": "excused", "date": "2024-03-04"}
    with pytest.raises(PayloadError):
        process_attendance(session, trigger("att-4", data))


# --- quiz ---------------------------------------------------------------------

def test_quiz_awards_each_named_place(session, notify, sent):
    data = {"week_number": 3, "first_place_user_id": "u1", "second_place_user_id": "u2"}

    response = process_quiz_result(session, trigger("qr-1", data), notify=notify)

    assert response["awarded"] == [
        {"user_id": "u1", "position": "first", "points": 75},
        {"user_id": "u2", "position": "second", "points": 50},
    ]
    assert {e.source_id for e in ledger(session, source_type="achievement")} == {"quiz_qr-1_first", "quiz_qr-1_second"}
    assert len(sent) == 2


def test_final_quiz_redelivery(session):
    data = {"week_number": 8, "first_place_user_id": "u1", "second_place_user_id": "u2"}

    first = process_quiz_result(session, trigger("qr-8", data))
    again = process_quiz_result(session, trigger("qr-8", data))

    assert [a["points"] for a in first["awarded"]] == [400, 200]
    assert again["awarded"] == []
    assert [a["position"] for a in again["already_awarded"]] == ["first", "second"]
    assert len(ledger(session, source_type="achievement")) == 2


def test_quiz_winner_correction_moves_the_points(session):
    old = {"week_number": 2, "first_place_user_id": "u1", "second_place_user_id": "u2"}
    new = {"week_number": 2, "first_place_user_id": "u2", "second_place_user_id": "u1"}
    process_quiz_result(session, trigger("qr-2", old))

    process_quiz_result(session, trigger("qr-2", new, event_type="update", old_data=old))

    assert [e.points for e in ledger(session, user_id="u1")] == [50]
    assert [e.points for e in ledger(session, user_id="u2")] == [75]


def test_quiz_without_winners(session):
    assert process_quiz_result(session, trigger("qr-3", {"week_number": 1})) == {"skipped": "no placements"}


# --- submission timing ----------------------------------------------------------

@pytest.fixture(name="assignment")
def assignment_fixture(session, student):
    session.add_all([
        Cohort(id="cohort-1", name="Spring", start_date=date(2024, 1, 1)),
        AssignmentTemplate(id="tmpl-3", title="Week 3 brief", week_number=3),
    ])
    session.commit()
    _, due = assignment_dates(date(2024, 1, 1), 3)
    return due


def submission(student_id, submitted_at, **overrides):
    data = {
        "user_id": student_id,
        "cohort_id": "cohort-1",
        "assignment_template_id": "tmpl-3",
        "submission_kind": "assignment",
        "status": "submitted",
        "submitted_date": submitted_at.isoformat(),
    }
    data.update(overrides)
    return data


def test_submission_before_deadline_then_resubmitted(session, student, assignment):
    data = submission(student.id, assignment - timedelta(hours=1))

    response = process_submission_timing(session, trigger("sub-1", data))
    resubmitted = process_submission_timing(
        session, trigger("sub-1", data, event_type="update", old_data=dict(data)),
    )

    assert response["awarded"] == 10
    assert response["is_on_time"] is True
    (entry,) = ledger(session, source_id="submission_timing_sub-1")
    assert entry.reason == "assignment_submitted_on_time"
    assert resubmitted == {"skipped": "already submitted before"}
    assert len(ledger(session, user_id=student.id)) == 1


def test_late_submission_is_penalised_once(session, student, assignment):
    data = submission(student.id, assignment + timedelta(minutes=5))

    response = process_submission_timing(session, trigger("sub-2", data))
    duplicate = process_submission_timing(session, trigger("sub-2", data))

    assert response["awarded"] == -15
    assert duplicate == {"skipped": "timing points already awarded"}


def test_draft_becoming_submitted_is_timed(session, student, assignment):
    data = submission(student.id, assignment - timedelta(days=1))
    old = dict(data, status="draft")

    response = process_submission_timing(session, trigger("sub-3", data, event_type="update", old_data=old))

    assert response["awarded"] == 10


@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"submission_kind": "project"}, "not an assignment"),
        ({"status": "draft"}, "not submitted"),
        ({"assignment_template_id": None}, "no assignment template id"),
        ({"assignment_template_id": "missing"}, "template not found"),
        ({"cohort_id": None}, "missing week_number or cohort_id"),
        ({"cohort_id": "missing"}, "cohort not found"),
    ],
)
def test_submission_skips(session, student, assignment, overrides, reason):
    data = submission(student.id, assignment, **overrides)
    assert process_submission_timing(session, trigger("sub-4", data)) == {"skipped": reason}
    assert ledger(session, user_id=student.id) == []


def test_submission_without_date_uses_now(session, student, assignment):
    data = submission(student.id, assignment)
    data.pop("submitted_date")

    response = process_submission_timing(session, trigger("sub-5", data), now=assignment + timedelta(days=3))

    assert response["awarded"] == -15


# --- logins and streaks ---------------------------------------------------------

def test_login_streak_request_path(session, student):
    add_logins(session, student.id, days_back(D, 0, 1, 2, 3, 4, 5, 6))

    response = process_login_streak(session, student.id, reference_date=D)

    assert response == {"awarded": 10, "reasons": ["7_day_login_streak_bonus"], "streak_length": 7}
    (entry,) = ledger(session, user_id=student.id)
    assert entry.source_id == "streak_7_2024-03-14"


def test_absence_penalty_request_path(session, student):
    add_logins(session, student.id, days_back(D, 3))

    response = process_login_streak(session, student.id, reference_date=D)

    assert response["awarded"] == -15
    assert ledger(session, user_id=student.id)[0].source_id == "absence_3day_2024-03-14"


def test_no_milestone(session, student):
    add_logins(session, student.id, days_back(D, 2))
    assert process_login_streak(session, student.id, reference_date=D)["skipped"] == "no streak milestone today"


def test_request_path_and_sweep_agree_on_one_award(session, student):
    add_logins(session, student.id, days_back(D, *range(7)))

    event_path = process_login_streak(session, student.id, reference_date=D)
    sweep = sweep_login_streaks(session, reference_date=D)

    assert event_path["awarded"] == 10
    assert sweep["results"] == []
    assert len(ledger(session, user_id=student.id, source_type="bonus")) == 1


def test_sweep_covers_active_students_only(session, student):
    session.add_all([
        User(id="stu-absent", email="grace@example.com", app_role="student"),
        User(id="stu-gone", email="alan@example.com", app_role="student", is_active=False),
        User(id="tutor-1", email="tutor@example.com", app_role="tutor"),
        User(id="stu-new", email="new@example.com", app_role="student"),
    ])
    session.commit()
    add_logins(session, student.id, days_back(D, *range(14)))
    add_logins(session, "stu-absent", days_back(D, 3, 4))
    add_logins(session, "stu-gone", days_back(D, *range(7)))
    add_logins(session, "tutor-1", days_back(D, *range(7)))

    response = sweep_login_streaks(session, reference_date=D)

    assert response["processed"] == 3
    assert response["reference_date"] == "2024-03-14"
    assert sorted((r["student_id"], r["awarded"]) for r in response["results"]) == [
        ("stu-absent", -15), ("stu-ada", 10),
    ]
    assert response["errors"] == []
    assert ledger(session, user_id="stu-gone") == []


def test_record_login_pays_daily_bonus_once(session, student, notify, sent):
    at = datetime(2024, 3, 14, 8, 0, tzinfo=timezone.utc)

    first = record_login(session, student.id, login_time=at, notify=notify)
    second = record_login(session, student.id, login_time=at + timedelta(hours=3), notify=notify)

    assert first["login_recorded"] is True
    assert first["daily_login"] == 5
    assert second == {
        "login_recorded": False,
        "daily_login": 0,
        "streak": {"skipped": "no streak milestone today", "streak_length": 1},
    }
    assert len(session.query(LoginEvent).filter_by(user_id=student.id).all()) == 1
    assert [e.reason for e in ledger(session, user_id=student.id)] == ["daily_login"]


def test_seventh_login_triggers_streak(session, student):
    add_logins(session, student.id, days_back(D, 1, 2, 3, 4, 5, 6))

    response = record_login(session, student.id, login_time=datetime(2024, 3, 14, 7, 0, tzinfo=timezone.utc))

    assert response["streak"]["awarded"] == 10
    assert sorted(e.reason for e in ledger(session, user_id=student.id)) == [
        "7_day_login_streak_bonus", "daily_login",
    ]


def test_record_login_for_unknown_user(session):
    assert record_login(session, "nobody") == {"skipped": "user not found"}


# --- exams and the facade -------------------------------------------------------

def test_exam_pass_is_credited_once(session, student):
    assert record_exam_pass(session, "attempt-1", student.id) == {
        "awarded": 100, "attempt_id": "attempt-1", "user_id": student.id,
    }
    assert record_exam_pass(session, "attempt-1", student.id) == {"skipped": "already awarded"}
    assert record_exam_pass(session, "attempt-2", "nobody") == {"skipped": "student not found"}


def test_facade_attendance_records_actor(session, student):
    data = {"record_id": "att-9", "student_user_id": student.id, "status": "absent", "date": "2024-03-05"}

    response = award_event(session, "attendance", data, awarded_by="tutor-1")

    assert response["awarded"] == -10
    assert ledger(session, source_id="att-9")[0].awarded_by == "tutor-1"


def test_facade_quiz_and_streak(session, student):
    quiz = award_event(session, "quiz", {"quiz_result_id": "qr-5", "week_number": 8, "first_place_user_id": student.id})
    streak = award_event(session, "login_streak", {"user_id": student.id})

    assert quiz["awarded"][0]["points"] == 400
    assert streak["skipped"] == "no streak milestone today"


def test_facade_rejects_unknown_event_and_missing_ids(session):
    with pytest.raises(PayloadError):
        award_event(session, "birthday", {})
    with pytest.raises(PayloadError):
        award_event(session, "attendance", {"status": "present"})
