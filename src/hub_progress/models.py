"""Data classes for the course progress domain model."""
import json
from dataclasses import dataclass, field
from typing import Optional, Union

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
LESSON_STATUSES = (NOT_STARTED, IN_PROGRESS, COMPLETED)

MULTIPLE_CHOICE = "multiple_choice"
TRUE_FALSE = "true_false"
REFLECTION = "reflection"
ACTION_STEP = "action_step"
CHECKPOINT = "checkpoint"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, REFLECTION, ACTION_STEP, CHECKPOINT)

CHECKPOINT_TOKEN = "acknowledged"
REFLECTION_MIN_LENGTH = 50


@dataclass
class Course:
    id: str
    title: str
    category: str = ""
    pd_hours: float = 0.0
    description: str = ""


@dataclass
class Module:
    id: str
    course_id: str
    title: str
    sort_order: int = 0


@dataclass
class Lesson:
    id: str
    course_id: str
    title: str
    module_id: Optional[str] = None
    sort_order: int = 0


@dataclass
class Enrollment:
    learner_id: str
    course_id: str
    enrolled_at: str


@dataclass
class LessonProgress:
    learner_id: str
    lesson_id: str
    course_id: str
    status: str = NOT_STARTED
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED


@dataclass
class Certificate:
    learner_id: str
    course_id: str
    verification_code: str
    issued_at: str
    pd_hours: float = 0.0


@dataclass
class CertificateResult:
    certificate: Certificate
    newly_issued: bool


@dataclass
class ModuleProgress:
    module_id: Optional[str]
    title: str
    completed_lessons: int = 0
    total_lessons: int = 0


@dataclass
class CourseProgress:
    learner_id: str
    course_id: str
    percent: int
    is_complete: bool
    completed_lessons: int
    total_lessons: int
    lesson_status: dict = field(default_factory=dict)  # lesson_id -> status, in course order
    modules: list = field(default_factory=list)


# --- Questions: one variant per archetype ---


@dataclass
class ChoiceOption:
    text: str
    is_correct: bool = False


@dataclass
class MultipleChoiceQuestion:
    id: str
    lesson_id: str
    prompt: str
    options: list = field(default_factory=list)  # list[ChoiceOption]
    explanation: Optional[str] = None
    sort_order: int = 0
    question_type: str = MULTIPLE_CHOICE

    def payload(self) -> dict:
        return {"options": [{"text": o.text, "is_correct": o.is_correct} for o in self.options]}


@dataclass
class TrueFalseQuestion:
    id: str
    lesson_id: str
    prompt: str
    correct_answer: str = "true"
    explanation: Optional[str] = None
    sort_order: int = 0
    question_type: str = TRUE_FALSE

    def payload(self) -> dict:
        return {"correct_answer": self.correct_answer}


@dataclass
class ReflectionQuestion:
    id: str
    lesson_id: str
    prompt: str
    min_length: int = REFLECTION_MIN_LENGTH
    explanation: Optional[str] = None
    sort_order: int = 0
    question_type: str = REFLECTION

    def payload(self) -> dict:
        return {"min_length": self.min_length}


@dataclass
class ActionStepQuestion:
    id: str
    lesson_id: str
    prompt: str
    explanation: Optional[str] = None
    sort_order: int = 0
    question_type: str = ACTION_STEP

    def payload(self) -> dict:
        return {}


@dataclass
class CheckpointQuestion:
    id: str
    lesson_id: str
    prompt: str
    takeaways: list = field(default_factory=list)  # list[str]
    explanation: Optional[str] = None
    sort_order: int = 0
    question_type: str = CHECKPOINT

    def payload(self) -> dict:
        return {"takeaways": list(self.takeaways)}


Question = Union[
    MultipleChoiceQuestion,
    TrueFalseQuestion,
    ReflectionQuestion,
    ActionStepQuestion,
    CheckpointQuestion,
]


@dataclass
class ActionStepAnswer:
    completed: bool
    notes: str = ""

    def to_json(self) -> str:
        return json.dumps({"completed": self.completed, "notes": self.notes})

    @classmethod
    def from_json(cls, text: str) -> "ActionStepAnswer":
        data = json.loads(text)
        return cls(completed=bool(data["completed"]), notes=data.get("notes", ""))


@dataclass
class QuizResponse:
    learner_id: str
    question_id: str
    lesson_id: str
    response: str
    is_correct: Optional[bool]
    created_at: str
    question_type: Optional[str] = None

    def action_step(self) -> ActionStepAnswer:
        """Decode a stored action-step response."""
        return ActionStepAnswer.from_json(self.response)
