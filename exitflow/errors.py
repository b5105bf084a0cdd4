"""
exitflow/errors.py

Typed errors raised by the interview lifecycle services.

Every error carries a stable ``code`` (rendered to API clients as the
``error`` field) and the HTTP status the API layer answers with. Services
raise them before any write happens; views catch ``LifecycleError`` and turn
it into a JSON error response (see exitflow/api.py).
"""


class LifecycleError(Exception):
    """Base class for every reportable lifecycle condition."""

    code = "LifecycleError"
    http_status = 400
    default_message = "The operation could not be completed."

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


# ── Not found ──────────────────────────────────────────────────────────────────

class CandidateNotFound(LifecycleError):
    code = "CandidateNotFound"
    http_status = 404
    default_message = "Candidate not found."


class ProjectNotFound(LifecycleError):
    code = "ProjectNotFound"
    http_status = 404
    default_message = "Project not found."


class InterviewerNotFound(LifecycleError):
    code = "InterviewerNotFound"
    http_status = 404
    default_message = "Interviewer not found."


# ── Conflicts with the current candidate state ─────────────────────────────────

class CandidateDropped(LifecycleError):
    code = "CandidateDropped"
    http_status = 409
    default_message = "Candidate is dropped. Restore the candidate before continuing."


class AttemptLimitExceeded(LifecycleError):
    code = "AttemptLimitExceeded"
    http_status = 409
    default_message = "Maximum follow-up attempts reached."


class InvalidPhaseTransition(LifecycleError):
    code = "InvalidPhaseTransition"
    http_status = 409
    default_message = "The interview is not in a phase that allows this operation."


class ConcurrentModification(LifecycleError):
    code = "ConcurrentModification"
    http_status = 409
    default_message = "The candidate was modified by someone else. Reload and try again."


class NoInterviewersAvailable(LifecycleError):
    code = "NoInterviewersAvailable"
    http_status = 400
    default_message = "At least one interviewer is required."


# ── Input validation ───────────────────────────────────────────────────────────

class MissingScheduledDate(LifecycleError):
    code = "MissingScheduledDate"
    default_message = "A scheduled interview date is required when the candidate agrees."


class UnexpectedScheduledDate(LifecycleError):
    code = "UnexpectedScheduledDate"
    default_message = "A scheduled interview date is only accepted with ANSWERED_AGREED."


class InvalidCallStatus(LifecycleError):
    code = "InvalidCallStatus"
    default_message = "Unknown call status."


class InvalidStatus(LifecycleError):
    code = "InvalidStatus"
    default_message = "Unknown overall status."


class InvalidPayload(LifecycleError):
    code = "InvalidPayload"
    default_message = "The request body is invalid."
