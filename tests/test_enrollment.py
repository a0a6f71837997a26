# tests/test_enrollment.py
import pytest

from conftest import COURSE, LEARNER
from hub_progress.db import get_connection
from hub_progress.enrollment import enroll, get_enrollment, is_enrolled, list_enrollments
from hub_progress.errors import NotFound


def test_enroll_creates_record(course_db):
    enrollment = enroll(course_db, LEARNER, COURSE)
    assert enrollment.learner_id == LEARNER
    assert enrollment.course_id == COURSE
    assert enrollment.enrolled_at


def test_enroll_twice_returns_existing(course_db):
    first = enroll(course_db, LEARNER, COURSE)
    second = enroll(course_db, LEARNER, COURSE)
    assert second == first
    conn = get_connection(course_db)
    assert conn.execute("SELECT COUNT(*) FROM enrollments").fetchone()[0] == 1
    conn.close()


def test_enroll_creates_no_progress_rows(course_db):
    enroll(course_db, LEARNER, COURSE)
    conn = get_connection(course_db)
    assert conn.execute("SELECT COUNT(*) FROM lesson_progress").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM certificates").fetchone()[0] == 0
    conn.close()


def test_enroll_unknown_course(course_db):
    with pytest.raises(NotFound):
        enroll(course_db, LEARNER, "nope")


def test_is_enrolled(course_db):
    assert is_enrolled(course_db, LEARNER, COURSE) is False
    enroll(course_db, LEARNER, COURSE)
    assert is_enrolled(course_db, LEARNER, COURSE) is True


def test_get_enrollment_missing(course_db):
    assert get_enrollment(course_db, LEARNER, COURSE) is None


def test_list_enrollments_per_learner(course_db):
    enroll(course_db, LEARNER, COURSE)
    enroll(course_db, "someone-else", COURSE)
    assert [e.course_id for e in list_enrollments(course_db, LEARNER)] == [COURSE]
