"""Course completion certificates.

One certificate per learner and course, issued the first time the course is
observed at 100% and kept from then on, even if lessons are reopened later.
"""
import logging
import secrets
import sqlite3
from typing import Callable

from hub_progress.aggregator import calculate_percent, get_progress
from hub_progress.catalog import fetch_course_lessons
from hub_progress.db import connect, timestamp
from hub_progress.errors import IssuanceFailed, NotFound, NotReady
from hub_progress.models import COMPLETED, Certificate, CertificateResult

logger = logging.getLogger(__name__)

# No I/O/0/1, they are too easy to misread on a printed certificate.
CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PREFIX = "TDI-"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def generate_verification_code() -> str:
    """Random code in the form TDI-XXXXXXXX."""
    return CODE_PREFIX + "".join(secrets.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _from_row(row) -> Certificate:
    return Certificate(
        learner_id=row["learner_id"],
        course_id=row["course_id"],
        verification_code=row["verification_code"],
        issued_at=row["issued_at"],
        pd_hours=row["pd_hours"] or 0.0,
    )


def _select_certificate(conn, learner_id: str, course_id: str):
    return conn.execute(
        "SELECT * FROM certificates WHERE learner_id = ? AND course_id = ?",
        (learner_id, course_id),
    ).fetchone()


def get_certificate(db_path: str, learner_id: str, course_id: str) -> Certificate | None:
    with connect(db_path) as conn:
        row = _select_certificate(conn, learner_id, course_id)
    return _from_row(row) if row else None


def list_certificates(db_path: str, learner_id: str) -> list[Certificate]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM certificates WHERE learner_id = ? ORDER BY issued_at DESC, id DESC",
            (learner_id,),
        ).fetchall()
    return [_from_row(r) for r in rows]


def _completion_counts(conn, learner_id: str, course_id: str) -> tuple[int, int]:
    """(completed, total) lessons for a learner, read on the given connection."""
    total = len(fetch_course_lessons(conn, course_id))
    completed = conn.execute(
        """SELECT COUNT(*) FROM lesson_progress lp
        JOIN lessons l ON lp.lesson_id = l.id
        WHERE lp.learner_id = ? AND l.course_id = ? AND lp.status = ?""",
        (learner_id, course_id, COMPLETED),
    ).fetchone()[0]
    return completed, total


def ensure_certificate(
    db_path: str,
    learner_id: str,
    course_id: str,
    code_factory: Callable[[], str] = generate_verification_code,
    max_attempts: int = MAX_CODE_ATTEMPTS,
) -> CertificateResult:
    """Return the learner's certificate for a course, issuing it if needed.

    A certificate that already exists is returned as is. Otherwise completion
    is re-checked against current lesson progress, inside the same write
    transaction as the insert, and a new certificate is issued only at 100%.
    """
    existing = get_certificate(db_path, learner_id, course_id)
    if existing:
        logger.debug("Certificate for %s in %s already issued", learner_id, course_id)
        return CertificateResult(certificate=existing, newly_issued=False)

    progress = get_progress(db_path, learner_id, course_id)
    if not progress.is_complete:
        raise NotReady(
            f"course {course_id} is {progress.percent}% complete for {learner_id}; "
            "a certificate needs 100%"
        )

    for attempt in range(1, max_attempts + 1):
        code = code_factory()
        with connect(db_path, immediate=True) as conn:
            row = _select_certificate(conn, learner_id, course_id)
            if row:
                # Another request issued it while we were checking progress.
                logger.debug("Certificate for %s in %s issued concurrently", learner_id, course_id)
                return CertificateResult(certificate=_from_row(row), newly_issued=False)
            # Lessons can be reopened after the check above; decide again under the lock.
            completed, total = _completion_counts(conn, learner_id, course_id)
            if total == 0 or completed < total:
                raise NotReady(
                    f"course {course_id} is {calculate_percent(completed, total)}% complete "
                    f"for {learner_id}; a certificate needs 100%"
                )
            clash = conn.execute(
                "SELECT 1 FROM certificates WHERE verification_code = ?", (code,)
            ).fetchone()
            if clash:
                logger.warning("Verification code collision on attempt %d, regenerating", attempt)
                continue
            pd_hours = conn.execute(
                "SELECT pd_hours FROM courses WHERE id = ?", (course_id,)
            ).fetchone()["pd_hours"]
            try:
                conn.execute(
                    """INSERT INTO certificates (learner_id, course_id, verification_code, pd_hours, issued_at)
                    VALUES (?, ?, ?, ?, ?)""",
                    (learner_id, course_id, code, pd_hours, timestamp()),
                )
            except sqlite3.IntegrityError:
                row = _select_certificate(conn, learner_id, course_id)
                if row:
                    return CertificateResult(certificate=_from_row(row), newly_issued=False)
                logger.warning("Verification code %s taken on insert, regenerating", code)
                continue
            row = _select_certificate(conn, learner_id, course_id)
        logger.info("Issued certificate %s to %s for %s", code, learner_id, course_id)
        return CertificateResult(certificate=_from_row(row), newly_issued=True)

    logger.error("Gave up generating a verification code after %d attempts", max_attempts)
    raise IssuanceFailed(f"could not generate a unique verification code after {max_attempts} attempts")


def verify_certificate(db_path: str, code: str) -> dict:
    """Public lookup by verification code, with the course it certifies."""
    with connect(db_path) as conn:
        row = conn.execute(
            """SELECT c.*, co.title AS course_title, co.category AS course_category
            FROM certificates c JOIN courses co ON c.course_id = co.id
            WHERE c.verification_code = ?""",
            (normalize_code(code),),
        ).fetchone()
    if row is None:
        raise NotFound(f"no certificate with code {code}")
    return {
        "certificate": _from_row(row),
        "course_title": row["course_title"],
        "course_category": row["course_category"] or "",
    }
