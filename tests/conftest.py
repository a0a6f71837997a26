import pytest

from hub_progress.catalog import import_course, seed_sample_course
from hub_progress.db import init_db
from hub_progress.enrollment import enroll

LEARNER = "educator-1"
COURSE = "leading-change"
LESSONS = ["lc-l1", "lc-l2", "lc-l3", "lc-l4"]


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_hub.db")
    return db_path


@pytest.fixture
def course_db(tmp_db):
    """Database holding the four-lesson sample course."""
    init_db(tmp_db)
    seed_sample_course(tmp_db)
    return tmp_db


@pytest.fixture
def enrolled_db(course_db):
    """Sample course with LEARNER enrolled."""
    enroll(course_db, LEARNER, COURSE)
    return course_db


def make_course(db_path, course_id, lesson_count):
    """Import a flat course with the given number of lessons."""
    import_course(db_path, {
        "id": course_id,
        "title": f"Course {course_id}",
        "lessons": [{"id": f"{course_id}-l{i}", "title": f"Lesson {i}"} for i in range(1, lesson_count + 1)],
    })
    return [f"{course_id}-l{i}" for i in range(1, lesson_count + 1)]
