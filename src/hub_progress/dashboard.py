"""Learner overview across enrolled courses."""
from hub_progress.aggregator import get_progress
from hub_progress.catalog import get_course
from hub_progress.certificates import get_certificate
from hub_progress.enrollment import list_enrollments


def get_progress_label(percent: int) -> str:
    if percent >= 100:
        return "COMPLETE"
    elif percent >= 50:
        return "IN PROGRESS"
    elif percent > 0:
        return "STARTED"
    return "NOT STARTED"


def get_progress_color(percent: int) -> str:
    if percent >= 100:
        return "green"
    elif percent >= 50:
        return "yellow"
    elif percent > 0:
        return "dark_orange"
    return "red"


def get_learner_overview(db_path: str, learner_id: str) -> list[dict]:
    results = []
    for enrollment in list_enrollments(db_path, learner_id):
        course = get_course(db_path, enrollment.course_id)
        progress = get_progress(db_path, learner_id, course.id)
        certificate = get_certificate(db_path, learner_id, course.id)
        results.append({
            "course_id": course.id,
            "title": course.title,
            "enrolled_at": enrollment.enrolled_at,
            "percent": progress.percent,
            "is_complete": progress.is_complete,
            "completed_lessons": progress.completed_lessons,
            "total_lessons": progress.total_lessons,
            "label": get_progress_label(progress.percent),
            "verification_code": certificate.verification_code if certificate else None,
        })
    return results
