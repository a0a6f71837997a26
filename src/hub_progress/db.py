"""Database initialization and connection management."""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from hub_progress.config import DEFAULT_DB_PATH
from hub_progress.errors import Unavailable

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 10.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    category TEXT DEFAULT '',
    pd_hours REAL DEFAULT 0,
    description TEXT DEFAULT ''
);

CREATE TABLE IF NOT EXISTS modules (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    title TEXT NOT NULL,
    sort_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS lessons (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id),
    module_id TEXT REFERENCES modules(id),
    title TEXT NOT NULL,
    sort_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS quiz_questions (
    id TEXT PRIMARY KEY,
    lesson_id TEXT NOT NULL REFERENCES lessons(id),
    question_type TEXT NOT NULL CHECK (question_type IN
        ('multiple_choice', 'true_false', 'reflection', 'action_step', 'checkpoint')),
    prompt TEXT NOT NULL,
    payload TEXT NOT NULL DEFAULT '{}',
    explanation TEXT,
    sort_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS enrollments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    learner_id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id),
    enrolled_at TEXT NOT NULL,
    UNIQUE(learner_id, course_id)
);

CREATE TABLE IF NOT EXISTS lesson_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    learner_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL REFERENCES lessons(id),
    course_id TEXT NOT NULL REFERENCES courses(id),
    status TEXT NOT NULL DEFAULT 'not_started' CHECK (status IN
        ('not_started', 'in_progress', 'completed')),
    completed_at TEXT,
    updated_at TEXT,
    UNIQUE(learner_id, lesson_id)
);

CREATE TABLE IF NOT EXISTS quiz_responses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    learner_id TEXT NOT NULL,
    question_id TEXT NOT NULL REFERENCES quiz_questions(id),
    lesson_id TEXT NOT NULL REFERENCES lessons(id),
    response TEXT NOT NULL,
    is_correct INTEGER,
    created_at TEXT NOT NULL,
    UNIQUE(learner_id, question_id)
);

CREATE TABLE IF NOT EXISTS certificates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    learner_id TEXT NOT NULL,
    course_id TEXT NOT NULL REFERENCES courses(id),
    verification_code TEXT NOT NULL UNIQUE,
    pd_hours REAL DEFAULT 0,
    issued_at TEXT NOT NULL,
    UNIQUE(learner_id, course_id)
);

CREATE INDEX IF NOT EXISTS idx_lessons_course ON lessons(course_id);
CREATE INDEX IF NOT EXISTS idx_progress_learner_course ON lesson_progress(learner_id, course_id);
CREATE INDEX IF NOT EXISTS idx_responses_learner_lesson ON quiz_responses(learner_id, lesson_id);
"""


def timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def connect(db_path: str = DEFAULT_DB_PATH, immediate: bool = False):
    """Yield a connection for one unit of work.

    Commits on success, rolls back on error and always closes. With
    ``immediate`` the write lock is taken up front so reads inside the block
    see the state the writes will apply to. Store-level failures (locked or
    unreachable database) surface as ``Unavailable``.
    """
    try:
        conn = get_connection(db_path)
    except sqlite3.OperationalError as exc:
        logger.error("Cannot open database %s: %s", db_path, exc)
        raise Unavailable(f"database unavailable: {exc}") from exc
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except sqlite3.OperationalError as exc:
        conn.rollback()
        logger.error("Database operation failed on %s: %s", db_path, exc)
        raise Unavailable(f"database unavailable: {exc}") from exc
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.execute("PRAGMA journal_mode = WAL")
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
