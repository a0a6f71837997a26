"""Error kinds raised by the progress engine.

Every operation either returns its record or raises one of these. Callers
branch on the class (or on ``kind``) to decide what to show: ``reload`` errors
mean the client is working from stale data, the rest belong inline next to the
action that triggered them. Idempotent repeats are not errors and never raise.
"""


class ProgressError(Exception):
    kind = "error"
    reload = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotFound(ProgressError):
    """Unknown course, lesson, question or verification code."""
    kind = "not_found"
    reload = True


class NotEnrolled(ProgressError):
    """Progress action on a course the learner never joined."""
    kind = "not_enrolled"
    reload = True


class NotReady(ProgressError):
    """Certificate requested before the course reached 100%."""
    kind = "not_ready"


class ValidationFailed(ProgressError):
    """Response (or authored content) malformed for its question archetype."""
    kind = "validation_failed"


class IssuanceFailed(ProgressError):
    """No unique verification code could be generated."""
    kind = "issuance_failed"


class Unavailable(ProgressError):
    """The store could not be reached. Safe to retry."""
    kind = "unavailable"
