# tests/test_aggregator.py
import pytest

from conftest import COURSE, LEARNER, LESSONS, make_course
from hub_progress.aggregator import calculate_percent, get_progress
from hub_progress.db import get_connection, init_db
from hub_progress.enrollment import enroll
from hub_progress.errors import NotFound
from hub_progress.progress import mark_complete, mark_in_progress, toggle


def test_no_progress_is_zero(enrolled_db):
    progress = get_progress(enrolled_db, LEARNER, COURSE)
    assert progress.percent == 0
    assert progress.is_complete is False
    assert progress.total_lessons == 4
    assert progress.lesson_status == {lid: "not_started" for lid in LESSONS}


def test_lesson_status_in_course_order(enrolled_db):
    mark_complete(enrolled_db, LEARNER, "lc-l3")
    progress = get_progress(enrolled_db, LEARNER, COURSE)
    assert list(progress.lesson_status) == LESSONS
    assert progress.lesson_status["lc-l3"] == "completed"


@pytest.mark.parametrize("total", [1, 3, 4, 6, 7])
def test_percent_matches_rounded_share(tmp_db, total):
    init_db(tmp_db)
    lessons = make_course(tmp_db, "c", total)
    enroll(tmp_db, LEARNER, "c")
    expected = {1: [0, 100], 3: [0, 33, 67, 100], 4: [0, 25, 50, 75, 100],
                6: [0, 17, 33, 50, 67, 83, 100], 7: [0, 14, 29, 43, 57, 71, 86, 100]}[total]
    assert get_progress(tmp_db, LEARNER, "c").percent == expected[0]
    for k, lesson_id in enumerate(lessons, 1):
        mark_complete(tmp_db, LEARNER, lesson_id)
        assert get_progress(tmp_db, LEARNER, "c").percent == expected[k]


def test_calculate_percent_rounds_half_up():
    assert calculate_percent(1, 8) == 13  # 12.5
    assert calculate_percent(3, 8) == 38  # 37.5
    assert calculate_percent(1, 3) == 33
    assert calculate_percent(2, 3) == 67


def test_calculate_percent_empty_course():
    assert calculate_percent(0, 0) == 0


def test_calculate_percent_only_complete_reaches_100():
    assert calculate_percent(199, 200) == 99
    assert calculate_percent(200, 200) == 100
    assert calculate_percent(399, 400) == 99
    assert calculate_percent(400, 400) == 100


def test_in_progress_does_not_count(enrolled_db):
    mark_in_progress(enrolled_db, LEARNER, "lc-l1")
    progress = get_progress(enrolled_db, LEARNER, COURSE)
    assert progress.percent == 0
    assert progress.lesson_status["lc-l1"] == "in_progress"


def test_empty_course_never_complete(tmp_db):
    init_db(tmp_db)
    make_course(tmp_db, "empty", 0)
    progress = get_progress(tmp_db, LEARNER, "empty")
    assert progress.percent == 0
    assert progress.is_complete is False


def test_toggle_twice_leaves_percent_unchanged(enrolled_db):
    mark_complete(enrolled_db, LEARNER, "lc-l1")
    before = get_progress(enrolled_db, LEARNER, COURSE).percent
    toggle(enrolled_db, LEARNER, "lc-l2")
    toggle(enrolled_db, LEARNER, "lc-l2")
    assert get_progress(enrolled_db, LEARNER, COURSE).percent == before


def test_module_breakdown(enrolled_db):
    mark_complete(enrolled_db, LEARNER, "lc-l1")
    mark_complete(enrolled_db, LEARNER, "lc-l3")
    modules = get_progress(enrolled_db, LEARNER, COURSE).modules
    assert [(m.module_id, m.completed_lessons, m.total_lessons) for m in modules] == [
        ("lc-m1", 1, 2), ("lc-m2", 1, 2),
    ]


def test_progress_is_per_learner(enrolled_db):
    enroll(enrolled_db, "other", COURSE)
    mark_complete(enrolled_db, "other", "lc-l1")
    assert get_progress(enrolled_db, LEARNER, COURSE).percent == 0
    assert get_progress(enrolled_db, "other", COURSE).percent == 25


def test_get_progress_does_not_write(enrolled_db):
    get_progress(enrolled_db, LEARNER, COURSE)
    conn = get_connection(enrolled_db)
    assert conn.execute("SELECT COUNT(*) FROM lesson_progress").fetchone()[0] == 0
    conn.close()


def test_unknown_course(enrolled_db):
    with pytest.raises(NotFound):
        get_progress(enrolled_db, LEARNER, "nope")
