"""Lesson questions, response grading and write-once response storage."""
import logging
from collections.abc import Mapping

from hub_progress.catalog import question_from_row
from hub_progress.db import connect, timestamp
from hub_progress.enrollment import require_enrollment
from hub_progress.errors import NotFound, ValidationFailed
from hub_progress.models import (
    CHECKPOINT_TOKEN,
    ActionStepAnswer, ActionStepQuestion, CheckpointQuestion, MultipleChoiceQuestion,
    Question, QuizResponse, ReflectionQuestion, TrueFalseQuestion,
)
from hub_progress.progress import complete_lesson

logger = logging.getLogger(__name__)


# --- Grading rules (pure) ---


def check_multiple_choice_answer(options: list, position: int) -> bool:
    return 0 <= position < len(options) and options[position].is_correct is True


def check_true_false_answer(correct_answer: str, user_answer: str) -> bool:
    return correct_answer.strip().lower() == user_answer.strip().lower()


def _parse_position(raw) -> int:
    if isinstance(raw, bool):
        raise ValidationFailed("multiple choice answer must be an option position")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdecimal():
        return int(raw.strip())
    raise ValidationFailed(f"multiple choice answer must be an option position, got {raw!r}")


def _parse_true_false(raw) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower()
    raise ValidationFailed(f"true/false answer must be 'true' or 'false', got {raw!r}")


def _parse_action_step(raw) -> ActionStepAnswer:
    if isinstance(raw, ActionStepAnswer):
        answer = raw
    elif isinstance(raw, Mapping) and isinstance(raw.get("completed"), bool):
        notes = raw.get("notes") or ""
        if not isinstance(notes, str):
            raise ValidationFailed("action step notes must be text")
        answer = ActionStepAnswer(completed=raw["completed"], notes=notes)
    else:
        raise ValidationFailed("action step answer needs a completed flag and optional notes")
    if not answer.completed:
        raise ValidationFailed("action step can only be submitted once it is completed")
    return answer


def grade_response(question: Question, raw_response) -> tuple[str, bool | None]:
    """Validate a raw answer for its archetype.

    Returns the text to store and the tri-state correctness. Raises
    ValidationFailed when the answer does not fit the question.
    """
    if isinstance(question, MultipleChoiceQuestion):
        position = _parse_position(raw_response)
        if not 0 <= position < len(question.options):
            raise ValidationFailed(
                f"option {position} does not exist; question has {len(question.options)} options"
            )
        return str(position), check_multiple_choice_answer(question.options, position)

    if isinstance(question, TrueFalseQuestion):
        answer = _parse_true_false(raw_response)
        return answer, check_true_false_answer(question.correct_answer, answer)

    if isinstance(question, ReflectionQuestion):
        if not isinstance(raw_response, str):
            raise ValidationFailed("reflection answer must be text")
        length = len(raw_response.strip())
        if length < question.min_length:
            raise ValidationFailed(
                f"reflection needs at least {question.min_length} characters ({length} given)"
            )
        return raw_response, None

    if isinstance(question, ActionStepQuestion):
        return _parse_action_step(raw_response).to_json(), None

    if isinstance(question, CheckpointQuestion):
        if raw_response != CHECKPOINT_TOKEN:
            raise ValidationFailed(f"checkpoint expects {CHECKPOINT_TOKEN!r}")
        return CHECKPOINT_TOKEN, None

    raise ValidationFailed(f"unsupported question type {type(question).__name__}")


# --- Storage ---


def _response_from_row(row) -> QuizResponse:
    return QuizResponse(
        learner_id=row["learner_id"],
        question_id=row["question_id"],
        lesson_id=row["lesson_id"],
        response=row["response"],
        is_correct=None if row["is_correct"] is None else bool(row["is_correct"]),
        created_at=row["created_at"],
        question_type=row["question_type"],
    )


def _select_response(conn, learner_id: str, question_id: str):
    return conn.execute(
        """SELECT r.*, q.question_type FROM quiz_responses r
        JOIN quiz_questions q ON r.question_id = q.id
        WHERE r.learner_id = ? AND r.question_id = ?""",
        (learner_id, question_id),
    ).fetchone()


def get_question(db_path: str, question_id: str) -> Question:
    with connect(db_path) as conn:
        row = conn.execute("SELECT * FROM quiz_questions WHERE id = ?", (question_id,)).fetchone()
    if row is None:
        raise NotFound(f"question {question_id} not found")
    return question_from_row(row)


def get_lesson_questions(db_path: str, lesson_id: str) -> list[Question]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM quiz_questions WHERE lesson_id = ? ORDER BY sort_order, id",
            (lesson_id,),
        ).fetchall()
    return [question_from_row(r) for r in rows]


def submit_response(db_path: str, learner_id: str, question_id: str, raw_response) -> QuizResponse:
    """Record a learner's answer to a question, once.

    A second submission for the same question returns the first response
    untouched, whatever is sent. A checkpoint acknowledgment also completes
    its lesson in the same transaction.
    """
    with connect(db_path, immediate=True) as conn:
        row = conn.execute("SELECT * FROM quiz_questions WHERE id = ?", (question_id,)).fetchone()
        if row is None:
            raise NotFound(f"question {question_id} not found")
        existing = _select_response(conn, learner_id, question_id)
        if existing:
            logger.debug("%s already answered %s", learner_id, question_id)
            return _response_from_row(existing)

        question = question_from_row(row)
        stored, is_correct = grade_response(question, raw_response)

        course_id = None
        if isinstance(question, CheckpointQuestion):
            course_id = conn.execute(
                "SELECT course_id FROM lessons WHERE id = ?", (question.lesson_id,)
            ).fetchone()["course_id"]
            require_enrollment(conn, learner_id, course_id)

        conn.execute(
            """INSERT INTO quiz_responses (learner_id, question_id, lesson_id, response, is_correct, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(learner_id, question_id) DO NOTHING""",
            (learner_id, question_id, question.lesson_id, stored,
             None if is_correct is None else int(is_correct), timestamp()),
        )
        if course_id is not None:
            complete_lesson(conn, learner_id, question.lesson_id, course_id)
        saved = _select_response(conn, learner_id, question_id)

    logger.info(
        "%s answered %s (%s): correct=%s", learner_id, question_id, question.question_type, is_correct
    )
    return _response_from_row(saved)


def get_user_responses(db_path: str, learner_id: str, lesson_id: str) -> dict[str, QuizResponse]:
    """Responses for a lesson keyed by question id."""
    with connect(db_path) as conn:
        rows = conn.execute(
            """SELECT r.*, q.question_type FROM quiz_responses r
            JOIN quiz_questions q ON r.question_id = q.id
            WHERE r.learner_id = ? AND r.lesson_id = ?""",
            (learner_id, lesson_id),
        ).fetchall()
    return {r["question_id"]: _response_from_row(r) for r in rows}


def get_lesson_score(db_path: str, learner_id: str, lesson_id: str) -> float:
    """Share of graded answers that were correct, as a percentage."""
    with connect(db_path) as conn:
        row = conn.execute(
            """SELECT COUNT(*) as total, SUM(is_correct) as correct FROM quiz_responses
            WHERE learner_id = ? AND lesson_id = ? AND is_correct IS NOT NULL""",
            (learner_id, lesson_id),
        ).fetchone()
    if row["total"] == 0:
        return 0.0
    return round((row["correct"] / row["total"]) * 100, 1)
