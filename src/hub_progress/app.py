"""Interactive CLI application."""
import logging
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from hub_progress.aggregator import get_progress
from hub_progress.catalog import (
    get_course, get_course_lessons, import_course_file, list_courses, seed_sample_course,
)
from hub_progress.certificates import ensure_certificate, list_certificates, verify_certificate
from hub_progress.config import load_settings
from hub_progress.dashboard import get_learner_overview, get_progress_color, get_progress_label
from hub_progress.db import init_db
from hub_progress.enrollment import enroll
from hub_progress.errors import ProgressError, Unavailable
from hub_progress.logging_config import configure_logging
from hub_progress.models import (
    CHECKPOINT_TOKEN, ActionStepAnswer, ActionStepQuestion, CheckpointQuestion,
    MultipleChoiceQuestion, ReflectionQuestion, TrueFalseQuestion,
)
from hub_progress.progress import toggle
from hub_progress.quiz import get_lesson_questions, get_user_responses, submit_response

logger = logging.getLogger(__name__)

console = Console()


def show_welcome(learner_id: str):
    console.print(Panel(
        f"[bold]Learning Hub[/bold]\n[dim]Signed in as {learner_id}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("courses", "Your courses and progress"),
        ("enroll", "Join a course"),
        ("lessons", "Mark lessons done or undone"),
        ("quiz", "Answer a lesson's questions"),
        ("progress", "Course progress breakdown"),
        ("certificate", "Claim or view certificates"),
        ("verify", "Check a verification code"),
        ("import", "Load a course file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_error(err: ProgressError) -> None:
    if err.reload:
        console.print(f"[red]{err.message}[/red] [dim]Your view is out of date; reload and try again.[/dim]")
    elif isinstance(err, Unavailable):
        console.print(f"[red]{err.message}[/red] [dim]Safe to retry.[/dim]")
    else:
        console.print(f"[yellow]{err.message}[/yellow]")


def choose_course(db_path: str) -> str | None:
    courses = list_courses(db_path)
    if not courses:
        console.print("[yellow]No courses loaded. Use 'import' first.[/yellow]")
        return None
    for i, c in enumerate(courses, 1):
        console.print(f"  [cyan]{i}[/cyan]) {c.title} [dim]({c.id})[/dim]")
    choice = Prompt.ask("Select course", choices=[str(i) for i in range(1, len(courses) + 1)])
    return courses[int(choice) - 1].id


def choose_lesson(db_path: str, learner_id: str, course_id: str):
    lessons = get_course_lessons(db_path, course_id)
    if not lessons:
        console.print("[yellow]This course has no lessons yet.[/yellow]")
        return None
    progress = get_progress(db_path, learner_id, course_id)
    for i, lesson in enumerate(lessons, 1):
        done = progress.lesson_status.get(lesson.id) == "completed"
        mark = "[green]✓[/green]" if done else " "
        console.print(f"  {mark} [cyan]{i}[/cyan]) {lesson.title}")
    choice = Prompt.ask("Select lesson", choices=[str(i) for i in range(1, len(lessons) + 1)])
    return lessons[int(choice) - 1]


def celebrate_if_complete(db_path: str, learner_id: str, course_id: str) -> None:
    progress = get_progress(db_path, learner_id, course_id)
    if not progress.is_complete:
        return
    result = ensure_certificate(db_path, learner_id, course_id)
    if result.newly_issued:
        console.print(Panel(
            f"[bold green]Course complete![/bold green]\n"
            f"Certificate code: [bold]{result.certificate.verification_code}[/bold]",
            title="Congratulations", border_style="green",
        ))


def ask_question(question):
    """Prompt for an answer in the shape the question's archetype expects."""
    if isinstance(question, MultipleChoiceQuestion):
        for i, opt in enumerate(question.options):
            console.print(f"  [cyan]{i + 1})[/cyan] {opt.text}")
        choice = Prompt.ask("Your answer", choices=[str(i + 1) for i in range(len(question.options))])
        return int(choice) - 1
    if isinstance(question, TrueFalseQuestion):
        return Prompt.ask("True or false", choices=["true", "false"])
    if isinstance(question, ReflectionQuestion):
        console.print(f"[dim]At least {question.min_length} characters.[/dim]")
        return Prompt.ask("Your reflection")
    if isinstance(question, ActionStepQuestion):
        notes = Prompt.ask("Notes (optional)", default="")
        return ActionStepAnswer(completed=True, notes=notes)
    if isinstance(question, CheckpointQuestion):
        for takeaway in question.takeaways:
            console.print(f"  • {takeaway}")
        Prompt.ask("[dim]Press Enter to continue[/dim]", default="")
        return CHECKPOINT_TOKEN
    raise ValueError(f"unknown question {question!r}")


def run_quiz_session(db_path: str, learner_id: str, lesson_id: str) -> tuple[int, int]:
    """Ask every unanswered question in a lesson. Returns (correct, graded)."""
    questions = get_lesson_questions(db_path, lesson_id)
    if not questions:
        console.print("[yellow]No questions in this lesson.[/yellow]")
        return 0, 0
    answered = get_user_responses(db_path, learner_id, lesson_id)
    correct = graded = 0
    for i, q in enumerate(questions, 1):
        if q.id in answered:
            continue
        console.print(f"\n[bold]Q{i}.[/bold] {q.prompt}\n")
        try:
            response = submit_response(db_path, learner_id, q.id, ask_question(q))
        except ProgressError as err:
            show_error(err)
            continue
        if response.is_correct is True:
            console.print("[green]Correct![/green]")
        elif response.is_correct is False:
            console.print("[red]Incorrect.[/red]")
        else:
            console.print("[green]Saved.[/green]")
        if response.is_correct is not None:
            graded += 1
            correct += int(response.is_correct)
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
    if graded:
        console.print(f"\n[bold]Score: {correct}/{graded}[/bold]")
    return correct, graded


def cmd_courses(db_path: str, learner_id: str):
    overview = get_learner_overview(db_path, learner_id)
    if not overview:
        console.print("[yellow]You are not enrolled in any course yet.[/yellow]")
        return
    table = Table(title="My Courses")
    table.add_column("Course", style="cyan")
    table.add_column("Lessons", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    table.add_column("Certificate")
    for row in overview:
        color = get_progress_color(row["percent"])
        table.add_row(
            row["title"],
            f"{row['completed_lessons']}/{row['total_lessons']}",
            f"{row['percent']}%",
            f"[{color}]{row['label']}[/{color}]",
            row["verification_code"] or "",
        )
    console.print(table)


def cmd_enroll(db_path: str, learner_id: str):
    course_id = choose_course(db_path)
    if course_id:
        enrollment = enroll(db_path, learner_id, course_id)
        console.print(f"[green]Enrolled in {course_id}[/green] [dim]since {enrollment.enrolled_at}[/dim]")


def cmd_lessons(db_path: str, learner_id: str):
    course_id = choose_course(db_path)
    if not course_id:
        return
    lesson = choose_lesson(db_path, learner_id, course_id)
    if lesson is None:
        return
    updated = toggle(db_path, learner_id, lesson.id, course_id)
    console.print(f"{lesson.title}: [bold]{updated.status.replace('_', ' ')}[/bold]")
    celebrate_if_complete(db_path, learner_id, course_id)


def cmd_quiz(db_path: str, learner_id: str):
    course_id = choose_course(db_path)
    if not course_id:
        return
    lesson = choose_lesson(db_path, learner_id, course_id)
    if lesson is None:
        return
    run_quiz_session(db_path, learner_id, lesson.id)
    celebrate_if_complete(db_path, learner_id, course_id)


def cmd_progress(db_path: str, learner_id: str):
    course_id = choose_course(db_path)
    if not course_id:
        return
    course = get_course(db_path, course_id)
    progress = get_progress(db_path, learner_id, course_id)
    color = get_progress_color(progress.percent)
    bar_filled = progress.percent // 5
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(f"[bold]{course.title}[/bold]", border_style="blue"))
    console.print(f"\n  Progress: [bold]{progress.percent}%[/bold] {bar} "
                  f"[{color}]{get_progress_label(progress.percent)}[/{color}]\n")
    table = Table(title="Modules")
    table.add_column("Module", style="cyan")
    table.add_column("Done", justify="right")
    for mod in progress.modules:
        table.add_row(mod.title, f"{mod.completed_lessons}/{mod.total_lessons}")
    console.print(table)


def cmd_certificate(db_path: str, learner_id: str):
    mode = Prompt.ask("Certificates", choices=["claim", "list"], default="list")
    if mode == "list":
        certificates = list_certificates(db_path, learner_id)
        if not certificates:
            console.print("[dim]No certificates yet.[/dim]")
        for cert in certificates:
            console.print(f"  [bold]{cert.verification_code}[/bold] {cert.course_id} "
                          f"[dim]{cert.pd_hours:g} PD hours, issued {cert.issued_at[:10]}[/dim]")
        return
    course_id = choose_course(db_path)
    if course_id:
        result = ensure_certificate(db_path, learner_id, course_id)
        state = "Issued" if result.newly_issued else "Already issued"
        console.print(f"[green]{state}:[/green] {result.certificate.verification_code}")


def cmd_verify(db_path: str):
    code = Prompt.ask("Verification code")
    found = verify_certificate(db_path, code)
    cert = found["certificate"]
    console.print(Panel(
        f"[bold]{found['course_title']}[/bold]\n"
        f"Learner: {cert.learner_id}\nPD hours: {cert.pd_hours:g}\nIssued: {cert.issued_at[:10]}",
        title=f"Valid certificate {cert.verification_code}", border_style="green",
    ))


def cmd_import(db_path: str):
    file_path = Prompt.ask("Course file (JSON or YAML)")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    course = import_course_file(db_path, file_path)
    console.print(f"[green]Imported {course.title}[/green]")


def main():
    settings = load_settings()
    configure_logging(settings)
    db_path = settings.db_path
    learner_id = settings.learner_id
    init_db(db_path)
    logger.debug("Using database %s", db_path)
    if not list_courses(db_path):
        console.print("[dim]Loading sample course...[/dim]")
        seed_sample_course(db_path)

    show_welcome(learner_id)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="courses").strip().lower()
        try:
            if choice == "courses":
                cmd_courses(db_path, learner_id)
            elif choice == "enroll":
                cmd_enroll(db_path, learner_id)
            elif choice == "lessons":
                cmd_lessons(db_path, learner_id)
            elif choice == "quiz":
                cmd_quiz(db_path, learner_id)
            elif choice == "progress":
                cmd_progress(db_path, learner_id)
            elif choice == "certificate":
                cmd_certificate(db_path, learner_id)
            elif choice == "verify":
                cmd_verify(db_path)
            elif choice == "import":
                cmd_import(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next time![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except ProgressError as err:
            show_error(err)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")


if __name__ == "__main__":
    main()
