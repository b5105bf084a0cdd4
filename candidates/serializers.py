"""
candidates/serializers.py

Plain-dict renderings of candidates for the JSON API. Keys are camelCase to
match what the dashboard client sends and expects.
"""

from candidates.models import Candidate
from candidates.status import derive_overall_status
from exitflow.api import isoformat


def _user_ref(user) -> dict | None:
    if user is None:
        return None
    return {"id": user.pk, "username": user.get_username(), "name": user.get_full_name()}


def serialize_followup(attempt) -> dict:
    return {
        "attemptNumber": attempt.attempt_number,
        "callStatus": attempt.call_status,
        "notes": attempt.notes,
        "scheduledInterviewDate": isoformat(attempt.scheduled_interview_date),
        "attemptedBy": _user_ref(attempt.attempted_by),
        "attemptedAt": isoformat(attempt.attempted_at),
    }


def serialize_candidate(candidate: Candidate) -> dict:
    """Full candidate view: profile, follow-up history, interview and status."""
    # Uses the prefetched follow-ups when the caller loaded them.
    attempts = sorted(candidate.followup_attempts.all(), key=lambda a: a.attempt_number)
    return {
        "id": candidate.pk,
        "projectId": candidate.project_id,
        "name": candidate.name,
        "email": candidate.email,
        "contactNumber": candidate.contact_number,
        "natureOfEmployment": candidate.nature_of_employment,
        "location": candidate.location,
        "gradeLevel": candidate.grade_level,
        "designation": candidate.designation,
        "department": candidate.department,
        "reportingTo": candidate.reporting_to,
        "gender": candidate.gender or None,
        "quarter": candidate.quarter or None,
        "dateOfJoining": isoformat(candidate.date_of_joining),
        "dateOfBirth": isoformat(candidate.date_of_birth),
        "resignationDate": isoformat(candidate.resignation_date),
        "lastWorkingDay": isoformat(candidate.last_working_day),
        "experienceInOrg": (
            str(candidate.experience_in_org) if candidate.experience_in_org is not None else None
        ),
        "overallStatus": candidate.overall_status,
        "statusOverridden": candidate.status_overridden,
        "derivedStatus": derive_overall_status(candidate, attempts),
        "interviewPhase": candidate.interview_phase,
        "maxFollowupAttempts": candidate.max_followup_attempts,
        "followupAttempts": [serialize_followup(a) for a in attempts],
        "interviewDetails": {
            "phase": candidate.interview_phase,
            "scheduledDate": isoformat(candidate.interview_scheduled_date),
            "startedAt": isoformat(candidate.interview_started_at),
            "completedAt": isoformat(candidate.interview_completed_at),
            "durationMinutes": candidate.interview_duration_minutes,
            "answersSubmitted": candidate.answers_submitted,
            "questionnaireId": candidate.questionnaire_id,
        },
        "assignedInterviewer": _user_ref(candidate.assigned_interviewer),
        "assignedAt": isoformat(candidate.assigned_at),
        "reportId": candidate.report_id,
        "reportGeneratedAt": isoformat(candidate.report_generated_at),
        "uploadBatchId": candidate.upload_batch_id,
        "createdAt": isoformat(candidate.created_at),
        "updatedAt": isoformat(candidate.updated_at),
    }
