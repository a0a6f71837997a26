# tests/test_dashboard.py
from conftest import COURSE, LEARNER, LESSONS
from hub_progress.certificates import ensure_certificate
from hub_progress.dashboard import get_learner_overview, get_progress_color, get_progress_label
from hub_progress.progress import mark_complete


def test_progress_label():
    assert get_progress_label(100) == "COMPLETE"
    assert get_progress_label(75) == "IN PROGRESS"
    assert get_progress_label(25) == "STARTED"
    assert get_progress_label(0) == "NOT STARTED"


def test_progress_color():
    assert get_progress_color(100) == "green"
    assert get_progress_color(0) == "red"


def test_overview_empty_without_enrollments(course_db):
    assert get_learner_overview(course_db, LEARNER) == []


def test_overview_reports_progress(enrolled_db):
    mark_complete(enrolled_db, LEARNER, "lc-l1")
    [row] = get_learner_overview(enrolled_db, LEARNER)
    assert row["course_id"] == COURSE
    assert row["percent"] == 25
    assert row["completed_lessons"] == 1
    assert row["verification_code"] is None


def test_overview_includes_certificate(enrolled_db):
    for lesson_id in LESSONS:
        mark_complete(enrolled_db, LEARNER, lesson_id)
    code = ensure_certificate(enrolled_db, LEARNER, COURSE).certificate.verification_code
    [row] = get_learner_overview(enrolled_db, LEARNER)
    assert row["is_complete"] is True
    assert row["label"] == "COMPLETE"
    assert row["verification_code"] == code
