"""
candidates/status.py

Authoritative overall-status derivation.

Every automatic transition in followups/services.py and interviews/services.py
must leave a candidate in the status derive_overall_status() returns for it.
The same function backs the read-only ``derivedStatus`` field of the API, so
validation and display share one definition.

Priority (first match wins):
  1. manual override           → stored status
  2. declined / wrong number,
     or attempts exhausted
     without agreement, since
     the last restore          → DROPPED
  3. interview completed       → REPORT_GENERATED if a report is linked, else INTERVIEWED
  4. interview started         → IN_PROGRESS
  5. interview scheduled       → SCHEDULED
  6. at least one attempt      → ATTEMPTING
  7. interviewer assigned      → ASSIGNED
  8. otherwise                 → NEW
"""

from candidates.models import Candidate
from followups.models import FollowupAttempt

Status = Candidate.OverallStatus
CallStatus = FollowupAttempt.CallStatus

# A single outcome from this set ends the follow-up track.
TERMINAL_CALL_STATUSES = frozenset({
    CallStatus.ANSWERED_DECLINED,
    CallStatus.WRONG_NUMBER,
})


def _attempts_for(candidate: Candidate, attempts) -> list:
    if attempts is not None:
        return sorted(attempts, key=lambda a: a.attempt_number)
    if candidate.pk is None:
        return []
    return list(candidate.followup_attempts.order_by("attempt_number"))


def followups_exhausted(candidate: Candidate, attempts: list) -> bool:
    """True once the allowance is used up without the last call being an agreement."""
    if not attempts or len(attempts) < candidate.max_followup_attempts:
        return False
    return attempts[-1].call_status != CallStatus.ANSWERED_AGREED


def _dropped_by_followups(candidate: Candidate, attempts: list) -> bool:
    # Outcomes recorded before the last restore were overruled by the operator.
    if not attempts or attempts[-1].attempt_number <= candidate.restored_after_attempt:
        return False
    return attempts[-1].call_status in TERMINAL_CALL_STATUSES or followups_exhausted(candidate, attempts)


def derive_automatic_status(candidate: Candidate, attempts=None) -> str:
    """The status the recorded history implies, ignoring any manual override."""
    attempts = _attempts_for(candidate, attempts)

    if _dropped_by_followups(candidate, attempts):
        return Status.DROPPED
    if candidate.interview_completed_at:
        return Status.REPORT_GENERATED if candidate.report_id else Status.INTERVIEWED
    if candidate.interview_started_at:
        return Status.IN_PROGRESS
    if candidate.interview_scheduled_date:
        return Status.SCHEDULED
    if attempts:
        return Status.ATTEMPTING
    if candidate.assigned_interviewer_id:
        return Status.ASSIGNED
    return Status.NEW


def derive_overall_status(candidate: Candidate, attempts=None) -> str:
    """
    Return the canonical overall status for the candidate's current fields.

    ``attempts`` may be passed to avoid a query (any iterable of
    FollowupAttempt); otherwise they are loaded from the database.
    """
    if candidate.status_overridden:
        return candidate.overall_status
    return derive_automatic_status(candidate, attempts)


def is_status_consistent(candidate: Candidate, attempts=None) -> bool:
    return candidate.overall_status == derive_overall_status(candidate, attempts)
