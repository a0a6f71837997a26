"""Course completion derived from lesson progress.

Nothing here writes. Percent complete is recomputed from the lesson_progress
rows on every call instead of being stored as a counter.
"""
from hub_progress.catalog import fetch_course_lessons
from hub_progress.db import connect
from hub_progress.errors import NotFound
from hub_progress.models import COMPLETED, NOT_STARTED, CourseProgress, ModuleProgress


def calculate_percent(completed: int, total: int) -> int:
    """Whole-number percentage, halves rounded up. Zero lessons means 0%.

    Only a fully completed course reports 100; from 200 lessons on, rounding alone
    would otherwise show 100 with a lesson still open.
    """
    if total <= 0:
        return 0
    percent = (200 * completed + total) // (2 * total)
    if completed < total:
        return min(percent, 99)
    return percent


def get_progress(db_path: str, learner_id: str, course_id: str) -> CourseProgress:
    with connect(db_path) as conn:
        if conn.execute("SELECT 1 FROM courses WHERE id = ?", (course_id,)).fetchone() is None:
            raise NotFound(f"course {course_id} not found")
        lessons = fetch_course_lessons(conn, course_id)
        rows = conn.execute(
            """SELECT lp.lesson_id, lp.status FROM lesson_progress lp
            JOIN lessons l ON lp.lesson_id = l.id
            WHERE lp.learner_id = ? AND l.course_id = ?""",
            (learner_id, course_id),
        ).fetchall()
        module_rows = conn.execute(
            "SELECT id, title FROM modules WHERE course_id = ? ORDER BY sort_order, id",
            (course_id,),
        ).fetchall()

    statuses = {r["lesson_id"]: r["status"] for r in rows}
    lesson_status = {lesson.id: statuses.get(lesson.id, NOT_STARTED) for lesson in lessons}
    completed = sum(1 for s in lesson_status.values() if s == COMPLETED)
    total = len(lessons)
    percent = calculate_percent(completed, total)

    modules = {m["id"]: ModuleProgress(module_id=m["id"], title=m["title"]) for m in module_rows}
    for lesson in lessons:
        if lesson.module_id is None:
            mod = modules.setdefault(None, ModuleProgress(module_id=None, title="Ungrouped"))
        else:
            mod = modules[lesson.module_id]
        mod.total_lessons += 1
        if lesson_status[lesson.id] == COMPLETED:
            mod.completed_lessons += 1

    return CourseProgress(
        learner_id=learner_id,
        course_id=course_id,
        percent=percent,
        is_complete=percent == 100,
        completed_lessons=completed,
        total_lessons=total,
        lesson_status=lesson_status,
        modules=list(modules.values()),
    )
