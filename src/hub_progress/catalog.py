"""Course structure and question definitions.

The catalog is authored elsewhere and read-only to the progress engine. Courses
are loaded from JSON or YAML files shaped like::

    id: leadership-101
    title: Leading Change
    pd_hours: 3
    modules:
      - id: m1
        title: Foundations
        lessons:
          - id: l1
            title: Why change fails
            questions:
              - id: q1
                type: multiple_choice
                prompt: ...
                options: [{text: A, is_correct: false}, {text: B, is_correct: true}]
"""
import json
import logging
from pathlib import Path

from hub_progress.db import connect
from hub_progress.errors import NotFound, ValidationFailed
from hub_progress.models import (
    ACTION_STEP, CHECKPOINT, MULTIPLE_CHOICE, QUESTION_TYPES, REFLECTION,
    REFLECTION_MIN_LENGTH, TRUE_FALSE,
    ActionStepQuestion, CheckpointQuestion, ChoiceOption, Course, Lesson, Module,
    MultipleChoiceQuestion, Question, ReflectionQuestion, TrueFalseQuestion,
)

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"
SAMPLE_COURSE = CONTENT_DIR / "sample_course.json"


def read_course_file(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix not in (".json", ".yaml", ".yml"):
        raise ValidationFailed(f"unsupported course file type: {suffix or path.name}")
    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationFailed(f"cannot read course file {path.name}: {exc}") from exc
    if suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationFailed(f"{path.name} is not valid JSON: {exc}") from exc
    import yaml
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValidationFailed(f"{path.name} is not valid YAML: {exc}") from exc


# --- Question parsing ---


def _normalize_bool_answer(value, question_id: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower()
    raise ValidationFailed(f"question {question_id}: correct_answer must be true or false")


def build_question(data: dict, lesson_id: str, sort_order: int = 0) -> Question:
    """Turn an authored question mapping into its archetype variant."""
    if not isinstance(data, dict):
        raise ValidationFailed(f"question in lesson {lesson_id} must be a mapping")
    qid = data.get("id")
    qtype = data.get("type") or data.get("question_type")
    prompt = data.get("prompt") or data.get("question_text")
    if not qid or not prompt:
        raise ValidationFailed(f"question in lesson {lesson_id} needs an id and a prompt")
    if qtype not in QUESTION_TYPES:
        raise ValidationFailed(f"question {qid}: unknown type {qtype!r}")
    common = {
        "id": str(qid),
        "lesson_id": lesson_id,
        "prompt": prompt,
        "explanation": data.get("explanation"),
        "sort_order": data.get("sort_order", sort_order),
    }

    if qtype == MULTIPLE_CHOICE:
        raw_options = data.get("options") or []
        if not isinstance(raw_options, list) or not raw_options:
            raise ValidationFailed(f"question {qid}: multiple_choice needs at least one option")
        options = []
        for opt in raw_options:
            if not isinstance(opt, dict) or not opt.get("text"):
                raise ValidationFailed(f"question {qid}: each option needs text")
            options.append(ChoiceOption(text=opt["text"], is_correct=opt.get("is_correct") is True))
        return MultipleChoiceQuestion(options=options, **common)

    if qtype == TRUE_FALSE:
        answer = _normalize_bool_answer(data.get("correct_answer"), qid)
        return TrueFalseQuestion(correct_answer=answer, **common)

    if qtype == REFLECTION:
        min_length = data.get("min_length", REFLECTION_MIN_LENGTH)
        if not isinstance(min_length, int) or isinstance(min_length, bool) or min_length < 0:
            raise ValidationFailed(f"question {qid}: min_length must be a non-negative integer")
        return ReflectionQuestion(min_length=min_length, **common)

    if qtype == ACTION_STEP:
        return ActionStepQuestion(**common)

    takeaways = []
    for item in data.get("takeaways") or []:
        text = item.get("text") if isinstance(item, dict) else item
        if not isinstance(text, str) or not text:
            raise ValidationFailed(f"question {qid}: takeaways must be text")
        takeaways.append(text)
    return CheckpointQuestion(takeaways=takeaways, **common)


def question_from_row(row) -> Question:
    payload = json.loads(row["payload"] or "{}")
    common = {
        "id": row["id"],
        "lesson_id": row["lesson_id"],
        "prompt": row["prompt"],
        "explanation": row["explanation"],
        "sort_order": row["sort_order"],
    }
    qtype = row["question_type"]
    if qtype == MULTIPLE_CHOICE:
        options = [ChoiceOption(o["text"], bool(o.get("is_correct"))) for o in payload.get("options", [])]
        return MultipleChoiceQuestion(options=options, **common)
    if qtype == TRUE_FALSE:
        return TrueFalseQuestion(correct_answer=payload.get("correct_answer", "true"), **common)
    if qtype == REFLECTION:
        return ReflectionQuestion(min_length=payload.get("min_length", REFLECTION_MIN_LENGTH), **common)
    if qtype == ACTION_STEP:
        return ActionStepQuestion(**common)
    return CheckpointQuestion(takeaways=payload.get("takeaways", []), **common)


# --- Import ---


def _entries(value, what: str, owner: str) -> list[dict]:
    """Authored child list; every entry must be a mapping."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailed(f"{owner}: {what} must be a list")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValidationFailed(f"{owner}: each entry in {what} must be a mapping, got {entry!r}")
    return value


def _pd_hours(value, course_id: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ValidationFailed(f"course {course_id}: pd_hours must be a number")
    try:
        hours = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailed(f"course {course_id}: pd_hours must be a number, got {value!r}") from exc
    if not hours >= 0:
        raise ValidationFailed(f"course {course_id}: pd_hours must be zero or more")
    return hours


def import_course(db_path: str, data: dict) -> Course:
    """Insert an authored course with its modules, lessons and questions.

    Rows that already exist are left untouched, so importing twice is harmless.
    """
    if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
        raise ValidationFailed("course needs an id and a title")
    course = Course(
        id=str(data["id"]),
        title=data["title"],
        category=data.get("category", ""),
        pd_hours=_pd_hours(data.get("pd_hours"), str(data["id"])),
        description=data.get("description", ""),
    )

    modules = []
    lessons = []
    questions = []
    for m_index, mod in enumerate(_entries(data.get("modules"), "modules", f"course {course.id}")):
        if not mod.get("id") or not mod.get("title"):
            raise ValidationFailed(f"course {course.id}: module needs an id and a title")
        module = Module(id=str(mod["id"]), course_id=course.id, title=mod["title"],
                        sort_order=mod.get("sort_order", m_index))
        modules.append(module)
        for l_index, les in enumerate(_entries(mod.get("lessons"), "lessons", f"module {module.id}")):
            lessons.append((les, module.id, l_index))
    # Lessons may also sit directly on the course without a module.
    for l_index, les in enumerate(_entries(data.get("lessons"), "lessons", f"course {course.id}")):
        lessons.append((les, None, l_index))

    lesson_rows = []
    for les, module_id, l_index in lessons:
        if not les.get("id") or not les.get("title"):
            raise ValidationFailed(f"course {course.id}: lesson needs an id and a title")
        lesson = Lesson(id=str(les["id"]), course_id=course.id, title=les["title"],
                        module_id=module_id, sort_order=les.get("sort_order", l_index))
        lesson_rows.append(lesson)
        for q_index, q in enumerate(_entries(les.get("questions"), "questions", f"lesson {lesson.id}")):
            questions.append(build_question(q, lesson.id, q_index))

    with connect(db_path) as conn:
        conn.execute(
            "INSERT OR IGNORE INTO courses (id, title, category, pd_hours, description) VALUES (?, ?, ?, ?, ?)",
            (course.id, course.title, course.category, course.pd_hours, course.description),
        )
        for module in modules:
            conn.execute(
                "INSERT OR IGNORE INTO modules (id, course_id, title, sort_order) VALUES (?, ?, ?, ?)",
                (module.id, module.course_id, module.title, module.sort_order),
            )
        for lesson in lesson_rows:
            conn.execute(
                "INSERT OR IGNORE INTO lessons (id, course_id, module_id, title, sort_order) VALUES (?, ?, ?, ?, ?)",
                (lesson.id, lesson.course_id, lesson.module_id, lesson.title, lesson.sort_order),
            )
        for q in questions:
            conn.execute(
                """INSERT OR IGNORE INTO quiz_questions
                (id, lesson_id, question_type, prompt, payload, explanation, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (q.id, q.lesson_id, q.question_type, q.prompt, json.dumps(q.payload()),
                 q.explanation, q.sort_order),
            )
    logger.info(
        "Imported course %s (%d modules, %d lessons, %d questions)",
        course.id, len(modules), len(lesson_rows), len(questions),
    )
    return course


def import_course_file(db_path: str, file_path: str) -> Course:
    return import_course(db_path, read_course_file(file_path))


def seed_sample_course(db_path: str) -> Course:
    """Load the bundled sample course."""
    return import_course_file(db_path, str(SAMPLE_COURSE))


# --- Course-structure provider ---


def _course_from_row(row) -> Course:
    return Course(id=row["id"], title=row["title"], category=row["category"] or "",
                  pd_hours=row["pd_hours"] or 0.0, description=row["description"] or "")


def _lesson_from_row(row) -> Lesson:
    return Lesson(id=row["id"], course_id=row["course_id"], title=row["title"],
                  module_id=row["module_id"], sort_order=row["sort_order"])


def get_course(db_path: str, course_id: str) -> Course:
    with connect(db_path) as conn:
        row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    if row is None:
        raise NotFound(f"course {course_id} not found")
    return _course_from_row(row)


def list_courses(db_path: str) -> list[Course]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM courses ORDER BY title").fetchall()
    return [_course_from_row(r) for r in rows]


def get_lesson(db_path: str, lesson_id: str) -> Lesson:
    with connect(db_path) as conn:
        row = conn.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
    if row is None:
        raise NotFound(f"lesson {lesson_id} not found")
    return _lesson_from_row(row)


def get_course_modules(db_path: str, course_id: str) -> list[Module]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM modules WHERE course_id = ? ORDER BY sort_order, id", (course_id,)
        ).fetchall()
    return [Module(id=r["id"], course_id=r["course_id"], title=r["title"], sort_order=r["sort_order"])
            for r in rows]


def fetch_course_lessons(conn, course_id: str) -> list[Lesson]:
    """Lessons in course order: module order first, then lesson order."""
    rows = conn.execute(
        """SELECT l.* FROM lessons l
        LEFT JOIN modules m ON l.module_id = m.id
        WHERE l.course_id = ?
        ORDER BY COALESCE(m.sort_order, -1), l.sort_order, l.id""",
        (course_id,),
    ).fetchall()
    return [_lesson_from_row(r) for r in rows]


def get_course_lessons(db_path: str, course_id: str) -> list[Lesson]:
    get_course(db_path, course_id)
    with connect(db_path) as conn:
        return fetch_course_lessons(conn, course_id)
