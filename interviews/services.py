"""
interviews/services.py

Interview Session Controller: SCHEDULED → IN_PROGRESS → COMPLETED.

Public services:
  start_interview(candidate_id)                        → Candidate
  complete_interview(candidate_id, answers_submitted)  → Candidate
  interview_duration_minutes(started_at, completed_at) → int

Both operations write the interview timestamps and the overall status in a
single transaction: either both land or neither does.
"""

import logging
import math

from django.db import transaction
from django.utils import timezone

from candidates.models import Candidate, InterviewPhase
from candidates.transitions import lock_candidate, transition_status
from exitflow.constants import SECONDS_PER_MINUTE
from exitflow.errors import CandidateDropped, InvalidPhaseTransition
from reports.services import trigger_report_generation

logger = logging.getLogger(__name__)


def interview_duration_minutes(started_at, completed_at) -> int:
    """
    Whole minutes between start and completion, rounded half up.
    Never negative, even when clock skew puts completion before start.
    """
    seconds = (completed_at - started_at).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_MINUTE + 0.5))


def _require_phase(candidate: Candidate, expected: str, operation: str) -> None:
    if candidate.is_dropped:
        raise CandidateDropped(candidate_id=candidate.pk)
    phase = candidate.interview_phase
    if phase != expected:
        raise InvalidPhaseTransition(
            f"Cannot {operation} an interview in phase {phase}; expected {expected}.",
            candidate_id=candidate.pk,
            phase=phase,
        )


def start_interview(candidate_id, *, changed_by=None, now=None) -> Candidate:
    """
    Start a scheduled interview.

    Raises:
        CandidateNotFound, CandidateDropped,
        InvalidPhaseTransition: the interview is not SCHEDULED.
    """
    with transaction.atomic():
        candidate = lock_candidate(candidate_id)
        _require_phase(candidate, InterviewPhase.SCHEDULED, "start")

        candidate.interview_started_at = now or timezone.now()
        candidate.save(update_fields=["interview_started_at", "updated_at"])
        transition_status(
            candidate,
            Candidate.OverallStatus.IN_PROGRESS,
            changed_by=changed_by,
            note="Interview started",
        )

    logger.info(
        "Interview started: candidate=%s started_at=%s",
        candidate.pk,
        candidate.interview_started_at.isoformat(),
    )
    return candidate


def complete_interview(
    candidate_id,
    answers_submitted: bool = True,
    *,
    changed_by=None,
    now=None,
) -> Candidate:
    """
    Complete an in-progress interview and compute its duration.

    When answers were submitted, report generation is requested from the
    external report service once the transaction commits.

    Raises:
        CandidateNotFound, CandidateDropped,
        InvalidPhaseTransition: the interview is not IN_PROGRESS.
    """
    with transaction.atomic():
        candidate = lock_candidate(candidate_id)
        _require_phase(candidate, InterviewPhase.IN_PROGRESS, "complete")

        completed_at = now or timezone.now()
        candidate.interview_completed_at = completed_at
        candidate.interview_duration_minutes = interview_duration_minutes(
            candidate.interview_started_at, completed_at
        )
        candidate.answers_submitted = answers_submitted
        candidate.save(update_fields=[
            "interview_completed_at",
            "interview_duration_minutes",
            "answers_submitted",
            "updated_at",
        ])
        transition_status(
            candidate,
            Candidate.OverallStatus.INTERVIEWED,
            changed_by=changed_by,
            note="Interview completed",
        )

        if answers_submitted:
            transaction.on_commit(lambda: trigger_report_generation(candidate))

    logger.info(
        "Interview completed: candidate=%s duration=%smin answers_submitted=%s",
        candidate.pk,
        candidate.interview_duration_minutes,
        answers_submitted,
    )
    return candidate
