"""Learner enrollment records."""
import logging

from hub_progress.db import connect, timestamp
from hub_progress.errors import NotEnrolled, NotFound
from hub_progress.models import Enrollment

logger = logging.getLogger(__name__)


def _from_row(row) -> Enrollment:
    return Enrollment(learner_id=row["learner_id"], course_id=row["course_id"], enrolled_at=row["enrolled_at"])


def enroll(db_path: str, learner_id: str, course_id: str) -> Enrollment:
    """Enroll a learner, or return the existing enrollment."""
    with connect(db_path) as conn:
        course = conn.execute("SELECT id FROM courses WHERE id = ?", (course_id,)).fetchone()
        if course is None:
            raise NotFound(f"course {course_id} not found")
        cursor = conn.execute(
            """INSERT INTO enrollments (learner_id, course_id, enrolled_at) VALUES (?, ?, ?)
            ON CONFLICT(learner_id, course_id) DO NOTHING""",
            (learner_id, course_id, timestamp()),
        )
        row = conn.execute(
            "SELECT * FROM enrollments WHERE learner_id = ? AND course_id = ?",
            (learner_id, course_id),
        ).fetchone()
    if cursor.rowcount:
        logger.info("Enrolled %s in %s", learner_id, course_id)
    else:
        logger.debug("%s already enrolled in %s", learner_id, course_id)
    return _from_row(row)


def get_enrollment(db_path: str, learner_id: str, course_id: str) -> Enrollment | None:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM enrollments WHERE learner_id = ? AND course_id = ?",
            (learner_id, course_id),
        ).fetchone()
    return _from_row(row) if row else None


def is_enrolled(db_path: str, learner_id: str, course_id: str) -> bool:
    return get_enrollment(db_path, learner_id, course_id) is not None


def require_enrollment(conn, learner_id: str, course_id: str) -> None:
    """Raise NotEnrolled unless the learner has joined the course."""
    row = conn.execute(
        "SELECT 1 FROM enrollments WHERE learner_id = ? AND course_id = ?",
        (learner_id, course_id),
    ).fetchone()
    if row is None:
        raise NotEnrolled(f"{learner_id} is not enrolled in {course_id}")


def list_enrollments(db_path: str, learner_id: str) -> list[Enrollment]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM enrollments WHERE learner_id = ? ORDER BY enrolled_at, id",
            (learner_id,),
        ).fetchall()
    return [_from_row(r) for r in rows]
