"""
followups/views.py

  POST /api/v1/candidate/update-followup/   — record a follow-up call outcome
"""

from candidates.serializers import serialize_candidate
from exitflow.api import api_endpoint, ok, parse_body, parse_id, parse_timestamp, require
from exitflow.errors import InvalidPayload
from followups.services import record_followup


@api_endpoint
def update_followup(request):
    """
    Expected payload:
      {"candidateId": 42, "attemptNumber": 2, "callStatus": "ANSWERED_AGREED",
       "notes": "...", "scheduledInterviewDate": "2025-01-15T10:00:00Z"}

    attemptNumber is optional; when sent it must match the next attempt.
    The attempt is attributed to the authenticated user.
    """
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "candidateId"), "candidateId")
    call_status = require(payload, "callStatus")
    attempt_number = payload.get("attemptNumber")
    if attempt_number is not None:
        attempt_number = parse_id(attempt_number, "attemptNumber")
    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise InvalidPayload("'notes' must be a string.")

    candidate = record_followup(
        candidate_id,
        call_status,
        attempted_by=request.user,
        notes=notes,
        scheduled_interview_date=parse_timestamp(
            payload.get("scheduledInterviewDate"), "scheduledInterviewDate"
        ),
        attempt_number=attempt_number,
    )
    attempts = candidate.followup_attempts.count()
    return ok(serialize_candidate(candidate), message=f"Follow-up attempt #{attempts} recorded")
