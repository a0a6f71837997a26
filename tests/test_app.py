from unittest.mock import patch

from conftest import COURSE, LEARNER
from hub_progress.app import cmd_certificate, cmd_lessons, main, run_quiz_session, show_error
from hub_progress.certificates import get_certificate
from hub_progress.db import get_connection
from hub_progress.enrollment import is_enrolled
from hub_progress.errors import NotEnrolled, ValidationFailed
from hub_progress.progress import get_lesson_progress, mark_complete
from hub_progress.quiz import get_user_responses


def test_run_quiz_session_grades_answers(enrolled_db):
    # Option 2 of the multiple choice, then "true"
    with patch("hub_progress.app.Prompt.ask", side_effect=["2", "true"]):
        correct, graded = run_quiz_session(enrolled_db, LEARNER, "lc-l1")
    assert (correct, graded) == (2, 2)
    assert set(get_user_responses(enrolled_db, LEARNER, "lc-l1")) == {"lc-q1", "lc-q2"}


def test_run_quiz_session_skips_answered(enrolled_db):
    with patch("hub_progress.app.Prompt.ask", side_effect=["1", "false"]):
        run_quiz_session(enrolled_db, LEARNER, "lc-l1")
    with patch("hub_progress.app.Prompt.ask", side_effect=[]) as ask:
        assert run_quiz_session(enrolled_db, LEARNER, "lc-l1") == (0, 0)
    assert ask.call_count == 0


def test_run_quiz_session_short_reflection_not_saved(enrolled_db):
    # Reflection too short, then empty action-step notes
    with patch("hub_progress.app.Prompt.ask", side_effect=["too short", ""]):
        run_quiz_session(enrolled_db, LEARNER, "lc-l2")
    responses = get_user_responses(enrolled_db, LEARNER, "lc-l2")
    assert set(responses) == {"lc-q4"}
    assert responses["lc-q4"].action_step().completed is True


def test_run_quiz_session_checkpoint_completes_lesson(enrolled_db):
    with patch("hub_progress.app.Prompt.ask", side_effect=[""]):
        run_quiz_session(enrolled_db, LEARNER, "lc-l3")
    assert get_lesson_progress(enrolled_db, LEARNER, "lc-l3").status == "completed"


def test_cmd_lessons_toggles_and_issues_certificate(enrolled_db):
    for lesson_id in ("lc-l1", "lc-l2", "lc-l3"):
        mark_complete(enrolled_db, LEARNER, lesson_id)
    # Course 1, lesson 4
    with patch("hub_progress.app.Prompt.ask", side_effect=["1", "4"]):
        cmd_lessons(enrolled_db, LEARNER)
    assert get_lesson_progress(enrolled_db, LEARNER, "lc-l4").status == "completed"
    assert get_certificate(enrolled_db, LEARNER, COURSE) is not None


def test_cmd_certificate_claim(enrolled_db):
    for lesson_id in ("lc-l1", "lc-l2", "lc-l3", "lc-l4"):
        mark_complete(enrolled_db, LEARNER, lesson_id)
    with patch("hub_progress.app.Prompt.ask", side_effect=["claim", "1"]):
        cmd_certificate(enrolled_db, LEARNER)
    assert get_certificate(enrolled_db, LEARNER, COURSE) is not None


def test_show_error_branches():
    with patch("hub_progress.app.console.print") as printed:
        show_error(NotEnrolled("not enrolled"))
        show_error(ValidationFailed("too short"))
    assert "reload" in printed.call_args_list[0].args[0]
    assert "reload" not in printed.call_args_list[1].args[0]


def test_main_enrolls_and_quits(tmp_path, monkeypatch):
    db_path = str(tmp_path / "hub.db")
    monkeypatch.setenv("HUB_DB_PATH", db_path)
    monkeypatch.setenv("HUB_LEARNER_ID", LEARNER)
    with patch("hub_progress.app.Prompt.ask", side_effect=["enroll", "1", "courses", "quit"]):
        main()
    assert is_enrolled(db_path, LEARNER, COURSE)
    conn = get_connection(db_path)
    assert conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0] == 1
    conn.close()


def test_main_reports_errors_and_continues(tmp_path, monkeypatch):
    db_path = str(tmp_path / "hub.db")
    monkeypatch.setenv("HUB_DB_PATH", db_path)
    # Claiming a certificate without finishing the course is reported, not raised
    with patch("hub_progress.app.Prompt.ask", side_effect=["certificate", "claim", "1", "quit"]):
        main()


def test_main_survives_malformed_course_file(tmp_path, monkeypatch):
    db_path = str(tmp_path / "hub.db")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    monkeypatch.setenv("HUB_DB_PATH", db_path)
    with patch("hub_progress.app.Prompt.ask", side_effect=["import", str(bad), "courses", "quit"]):
        main()
    conn = get_connection(db_path)
    assert conn.execute("SELECT COUNT(*) FROM courses").fetchone()[0] == 1
    conn.close()
