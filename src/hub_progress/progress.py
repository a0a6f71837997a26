"""Per-learner lesson completion state.

A lesson is either completed or not. ``in_progress`` is a display hint set by
content that has been started; it never counts toward completion. A learner
with no row for a lesson has not started it.
"""
import logging

from hub_progress.db import connect, timestamp
from hub_progress.enrollment import require_enrollment
from hub_progress.errors import NotFound
from hub_progress.models import COMPLETED, IN_PROGRESS, NOT_STARTED, LessonProgress

logger = logging.getLogger(__name__)


def _resolve_lesson(conn, lesson_id: str, course_id: str | None = None):
    row = conn.execute("SELECT id, course_id FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
    if row is None:
        raise NotFound(f"lesson {lesson_id} not found")
    if course_id is not None and row["course_id"] != course_id:
        raise NotFound(f"lesson {lesson_id} not found in course {course_id}")
    return row


def _fetch(conn, learner_id: str, lesson_id: str, course_id: str) -> LessonProgress:
    row = conn.execute(
        "SELECT * FROM lesson_progress WHERE learner_id = ? AND lesson_id = ?",
        (learner_id, lesson_id),
    ).fetchone()
    if row is None:
        return LessonProgress(learner_id=learner_id, lesson_id=lesson_id, course_id=course_id)
    return LessonProgress(
        learner_id=row["learner_id"],
        lesson_id=row["lesson_id"],
        course_id=row["course_id"],
        status=row["status"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )


def complete_lesson(conn, learner_id: str, lesson_id: str, course_id: str) -> bool:
    """Set a lesson completed inside an open transaction.

    Returns False when it was already completed; the original completed_at is kept.
    """
    now = timestamp()
    cursor = conn.execute(
        """INSERT INTO lesson_progress (learner_id, lesson_id, course_id, status, completed_at, updated_at)
        VALUES (?, ?, ?, 'completed', ?, ?)
        ON CONFLICT(learner_id, lesson_id) DO UPDATE
        SET status = 'completed', completed_at = excluded.completed_at, updated_at = excluded.updated_at
        WHERE lesson_progress.status != 'completed'""",
        (learner_id, lesson_id, course_id, now, now),
    )
    return cursor.rowcount > 0


def _clear_lesson(conn, learner_id: str, lesson_id: str) -> bool:
    cursor = conn.execute(
        """UPDATE lesson_progress SET status = 'not_started', completed_at = NULL, updated_at = ?
        WHERE learner_id = ? AND lesson_id = ? AND status != 'not_started'""",
        (timestamp(), learner_id, lesson_id),
    )
    return cursor.rowcount > 0


def mark_complete(db_path: str, learner_id: str, lesson_id: str, course_id: str | None = None) -> LessonProgress:
    with connect(db_path) as conn:
        lesson = _resolve_lesson(conn, lesson_id, course_id)
        require_enrollment(conn, learner_id, lesson["course_id"])
        if complete_lesson(conn, learner_id, lesson_id, lesson["course_id"]):
            logger.info("%s completed lesson %s", learner_id, lesson_id)
        else:
            logger.debug("Lesson %s already completed by %s", lesson_id, learner_id)
        return _fetch(conn, learner_id, lesson_id, lesson["course_id"])


def mark_incomplete(db_path: str, learner_id: str, lesson_id: str, course_id: str | None = None) -> LessonProgress:
    with connect(db_path) as conn:
        lesson = _resolve_lesson(conn, lesson_id, course_id)
        require_enrollment(conn, learner_id, lesson["course_id"])
        if _clear_lesson(conn, learner_id, lesson_id):
            logger.info("%s reopened lesson %s", learner_id, lesson_id)
        return _fetch(conn, learner_id, lesson_id, lesson["course_id"])


def toggle(db_path: str, learner_id: str, lesson_id: str, course_id: str | None = None) -> LessonProgress:
    """Flip a lesson between completed and not started."""
    # Hold the write lock across the read so two toggles cannot both see the same state.
    with connect(db_path, immediate=True) as conn:
        lesson = _resolve_lesson(conn, lesson_id, course_id)
        require_enrollment(conn, learner_id, lesson["course_id"])
        current = _fetch(conn, learner_id, lesson_id, lesson["course_id"])
        if current.status == COMPLETED:
            _clear_lesson(conn, learner_id, lesson_id)
        else:
            complete_lesson(conn, learner_id, lesson_id, lesson["course_id"])
        updated = _fetch(conn, learner_id, lesson_id, lesson["course_id"])
    logger.info("%s toggled lesson %s: %s -> %s", learner_id, lesson_id, current.status, updated.status)
    return updated


def mark_in_progress(db_path: str, learner_id: str, lesson_id: str, course_id: str | None = None) -> LessonProgress:
    """Flag a not-started lesson as started. Completed lessons are left alone."""
    now = timestamp()
    with connect(db_path) as conn:
        lesson = _resolve_lesson(conn, lesson_id, course_id)
        require_enrollment(conn, learner_id, lesson["course_id"])
        conn.execute(
            """INSERT INTO lesson_progress (learner_id, lesson_id, course_id, status, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(learner_id, lesson_id) DO UPDATE
            SET status = excluded.status, updated_at = excluded.updated_at
            WHERE lesson_progress.status = ?""",
            (learner_id, lesson_id, lesson["course_id"], IN_PROGRESS, now, NOT_STARTED),
        )
        return _fetch(conn, learner_id, lesson_id, lesson["course_id"])


def get_lesson_progress(db_path: str, learner_id: str, lesson_id: str) -> LessonProgress:
    with connect(db_path) as conn:
        lesson = _resolve_lesson(conn, lesson_id)
        return _fetch(conn, learner_id, lesson_id, lesson["course_id"])
