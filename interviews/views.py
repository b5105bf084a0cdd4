"""
interviews/views.py

  POST /api/v1/candidate/start-interview/      — SCHEDULED → IN_PROGRESS
  POST /api/v1/candidate/complete-interview/   — IN_PROGRESS → COMPLETED
"""

from candidates.serializers import serialize_candidate
from exitflow.api import api_endpoint, ok, parse_body, parse_id, require
from exitflow.errors import InvalidPayload
from interviews.services import complete_interview, start_interview


@api_endpoint
def start_interview_view(request):
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "candidateId"), "candidateId")
    candidate = start_interview(candidate_id, changed_by=request.user)
    return ok(serialize_candidate(candidate), message="Interview started")


@api_endpoint
def complete_interview_view(request):
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "candidateId"), "candidateId")
    answers_submitted = payload.get("answersSubmitted", True)
    if not isinstance(answers_submitted, bool):
        raise InvalidPayload("'answersSubmitted' must be a boolean.")
    candidate = complete_interview(
        candidate_id,
        answers_submitted,
        changed_by=request.user,
    )
    return ok(
        serialize_candidate(candidate),
        message=f"Interview completed in {candidate.interview_duration_minutes} minute(s)",
    )
