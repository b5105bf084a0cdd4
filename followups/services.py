"""
followups/services.py

Follow-up Attempt Recorder.

Public services:
  record_followup(candidate_id, call_status, ...) → Candidate

Outcome rules for a new attempt N on a candidate allowed M attempts:
  ANSWERED_AGREED                  → interview scheduled, status SCHEDULED
  ANSWERED_DECLINED / WRONG_NUMBER → status DROPPED
  any other outcome, N == M        → status DROPPED (auto-drop on exhaustion)
  any other outcome, N == 1        → status ATTEMPTING
  any other outcome                → status unchanged
"""

import logging

from django.db import IntegrityError, transaction

from candidates.models import Candidate
from candidates.status import TERMINAL_CALL_STATUSES
from candidates.transitions import lock_candidate, transition_status
from exitflow.errors import (
    AttemptLimitExceeded,
    CandidateDropped,
    ConcurrentModification,
    InvalidCallStatus,
    MissingScheduledDate,
    UnexpectedScheduledDate,
)
from followups.models import FollowupAttempt

logger = logging.getLogger(__name__)

CallStatus = FollowupAttempt.CallStatus
Status = Candidate.OverallStatus


def _validate_outcome(call_status: str, scheduled_interview_date) -> None:
    if call_status not in CallStatus.values:
        raise InvalidCallStatus(f"Unknown call status {call_status!r}.")
    if call_status == CallStatus.ANSWERED_AGREED:
        if scheduled_interview_date is None:
            raise MissingScheduledDate()
    elif scheduled_interview_date is not None:
        raise UnexpectedScheduledDate()


def _resulting_status(candidate: Candidate, attempt_number: int, call_status: str) -> str | None:
    """Status the new attempt moves the candidate to, or None to leave it unchanged."""
    if call_status == CallStatus.ANSWERED_AGREED:
        return Status.SCHEDULED
    if call_status in TERMINAL_CALL_STATUSES:
        return Status.DROPPED
    if attempt_number == candidate.max_followup_attempts:
        return Status.DROPPED
    if attempt_number == 1:
        return Status.ATTEMPTING
    return None


def record_followup(
    candidate_id,
    call_status: str,
    *,
    attempted_by=None,
    notes: str | None = None,
    scheduled_interview_date=None,
    attempt_number: int | None = None,
) -> Candidate:
    """
    Append a follow-up call outcome to the candidate and apply its side effects.

    ``attempt_number`` is what the caller believes the next attempt is. It is
    never trusted: the number is recomputed from the locked candidate row and a
    mismatch is reported as ConcurrentModification (stale client view).

    Raises:
        InvalidCallStatus, MissingScheduledDate, UnexpectedScheduledDate:
            invalid input, checked before the store is touched.
        CandidateNotFound, CandidateDropped, AttemptLimitExceeded,
        ConcurrentModification: the candidate's current state forbids the attempt.
    """
    _validate_outcome(call_status, scheduled_interview_date)

    try:
        with transaction.atomic():
            candidate = lock_candidate(candidate_id)

            if candidate.is_dropped:
                raise CandidateDropped(candidate_id=candidate.pk)

            next_number = candidate.followup_attempts.count() + 1
            if next_number > candidate.max_followup_attempts:
                raise AttemptLimitExceeded(
                    f"Maximum follow-up attempts ({candidate.max_followup_attempts}) reached.",
                    candidate_id=candidate.pk,
                )
            if attempt_number is not None and attempt_number != next_number:
                raise ConcurrentModification(
                    f"Attempt #{attempt_number} is stale; the next attempt is #{next_number}.",
                    candidate_id=candidate.pk,
                )

            FollowupAttempt.objects.create(
                candidate=candidate,
                attempt_number=next_number,
                call_status=call_status,
                notes=notes or None,
                scheduled_interview_date=scheduled_interview_date,
                attempted_by=attempted_by,
            )

            if call_status == CallStatus.ANSWERED_AGREED:
                candidate.interview_scheduled_date = scheduled_interview_date
                candidate.save(update_fields=["interview_scheduled_date", "updated_at"])

            new_status = _resulting_status(candidate, next_number, call_status)
            if new_status is not None:
                transition_status(
                    candidate,
                    new_status,
                    changed_by=attempted_by,
                    note=f"Follow-up attempt #{next_number}: {call_status}",
                )
    except IntegrityError:
        # Unique (candidate, attempt_number) lost a race on a backend without row locks.
        raise ConcurrentModification(candidate_id=candidate_id)

    logger.info(
        "Follow-up recorded: candidate=%s attempt=%s/%s call_status=%s status=%s",
        candidate.pk,
        next_number,
        candidate.max_followup_attempts,
        call_status,
        candidate.overall_status,
    )
    return candidate
