"""
candidates/views.py

JSON API for candidate reads, manual status override, interviewer assignment,
bulk upload and removal. All endpoints are POST under /api/v1/candidate/.
"""

from django.core.paginator import EmptyPage, Paginator
from django.db.models import Prefetch, Q
from django.http import JsonResponse

from candidates.assignment import assign_interviewer, auto_assign_interviewers
from candidates.models import Candidate
from candidates.serializers import serialize_candidate
from candidates.services import delete_candidate, import_candidates
from candidates.transitions import set_status
from exitflow.api import api_endpoint, ok, parse_body, parse_id, parse_id_list, require
from exitflow.constants import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from exitflow.errors import CandidateNotFound, InvalidPayload, InvalidStatus, ProjectNotFound
from followups.models import FollowupAttempt
from projects.models import Project

# camelCase sort key → model field
_SORT_FIELDS = {
    "createdAt": "created_at",
    "name": "name",
    "email": "email",
    "overallStatus": "overall_status",
    "lastWorkingDay": "last_working_day",
    "resignationDate": "resignation_date",
    "scheduledDate": "interview_scheduled_date",
}


def _candidates():
    return (
        Candidate.objects
        .filter(is_active=True)
        .select_related("assigned_interviewer")
        .prefetch_related(
            Prefetch(
                "followup_attempts",
                queryset=FollowupAttempt.objects.select_related("attempted_by"),
            )
        )
    )


def _parse_sort(sort) -> list[str]:
    """{"name": 1, "createdAt": -1} → ["name", "-created_at"]"""
    if sort in (None, {}):
        return ["-created_at"]
    if not isinstance(sort, dict):
        raise InvalidPayload("'sort' must be an object of field → 1 or -1.")
    ordering = []
    for key, direction in sort.items():
        if key not in _SORT_FIELDS:
            raise InvalidPayload(f"Cannot sort by {key!r}.")
        if isinstance(direction, bool) or direction not in (1, -1):
            raise InvalidPayload(f"Sort direction for {key!r} must be 1 or -1.")
        field = _SORT_FIELDS[key]
        ordering.append(field if direction == 1 else f"-{field}")
    return ordering


def _parse_positive(payload: dict, key: str, default: int) -> int:
    value = payload.get(key)
    if value is None:
        return default
    value = parse_id(value, key)
    if value < 1:
        raise InvalidPayload(f"'{key}' must be at least 1.")
    return value


@api_endpoint
def search(request):
    """
    Paginated candidate list.

    Expected payload (every key optional):
      {"page": 1, "limit": 25, "search": "ravi", "projectId": 3,
       "overallStatus": "ATTEMPTING", "assignedInterviewerId": 7,
       "sort": {"createdAt": -1}}

    ``search`` matches name, email or contact number.
    """
    payload = parse_body(request)
    page = _parse_positive(payload, "page", 1)
    limit = _parse_positive(payload, "limit", SEARCH_DEFAULT_LIMIT)
    if limit > SEARCH_MAX_LIMIT:
        raise InvalidPayload(f"'limit' must not exceed {SEARCH_MAX_LIMIT}.")

    qs = _candidates()

    text = payload.get("search")
    if text is not None:
        if not isinstance(text, str):
            raise InvalidPayload("'search' must be a string.")
        text = text.strip()
        if text:
            qs = qs.filter(
                Q(name__icontains=text)
                | Q(email__icontains=text)
                | Q(contact_number__icontains=text)
            )

    if payload.get("projectId") is not None:
        qs = qs.filter(project_id=parse_id(payload["projectId"], "projectId"))

    status = payload.get("overallStatus")
    if status is not None:
        if status not in Candidate.OverallStatus.values:
            raise InvalidStatus(f"Unknown overall status {status!r}.")
        qs = qs.filter(overall_status=status)

    if payload.get("assignedInterviewerId") is not None:
        qs = qs.filter(
            assigned_interviewer_id=parse_id(payload["assignedInterviewerId"], "assignedInterviewerId")
        )

    qs = qs.order_by(*_parse_sort(payload.get("sort")), "-id")

    paginator = Paginator(qs, limit)
    try:
        candidates = list(paginator.page(page).object_list)
    except EmptyPage:
        candidates = []

    return ok(
        {
            "candidates": [serialize_candidate(c) for c in candidates],
            "pagination": {
                "currentPage": page,
                "totalPages": paginator.num_pages,
                "totalCount": paginator.count,
                "limit": limit,
                "hasNextPage": page < paginator.num_pages,
                "hasPrevPage": page > 1,
            },
        },
        message=f"{paginator.count} candidate(s) found",
    )


@api_endpoint
def search_by_id(request):
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "id"), "id")
    try:
        candidate = _candidates().get(pk=candidate_id)
    except Candidate.DoesNotExist:
        raise CandidateNotFound(f"Candidate #{candidate_id} not found.")
    return ok(serialize_candidate(candidate), message="Candidate found")


@api_endpoint
def delete(request):
    """
    Soft-delete a candidate, or remove it permanently with "hardDelete": true.
    """
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "id"), "id")
    hard = payload.get("hardDelete", False)
    if not isinstance(hard, bool):
        raise InvalidPayload("'hardDelete' must be a boolean.")

    delete_candidate(candidate_id, hard=hard, deleted_by=request.user)
    return ok(
        {"id": candidate_id, "hardDelete": hard},
        message="Candidate deleted" if hard else "Candidate deactivated",
    )


@api_endpoint
def update_status(request):
    """Manual override of overallStatus. Any status may be set from any status."""
    payload = parse_body(request)
    candidate_id = parse_id(require(payload, "candidateId"), "candidateId")
    new_status = require(payload, "overallStatus")
    candidate = set_status(
        candidate_id,
        new_status,
        changed_by=request.user,
        note=payload.get("note") or "",
    )
    label = Candidate.OverallStatus(candidate.overall_status).label
    return ok(serialize_candidate(candidate), message=f"Status updated to {label}")


@api_endpoint
def assign_interviewer_view(request):
    payload = parse_body(request)
    candidate_ids = parse_id_list(require(payload, "candidateIds"), "candidateIds")
    if not candidate_ids:
        raise InvalidPayload("'candidateIds' must not be empty.")
    interviewer_id = parse_id(require(payload, "interviewerId"), "interviewerId")

    candidates = assign_interviewer(candidate_ids, interviewer_id, assigned_by=request.user)
    return ok(
        {
            "interviewerId": interviewer_id,
            "candidateIds": [c.pk for c in candidates],
        },
        message=f"Interviewer assigned to {len(candidates)} candidate(s)",
    )


@api_endpoint
def auto_assign_interviewers_view(request):
    payload = parse_body(request)
    project_id = parse_id(require(payload, "projectId"), "projectId")
    interviewer_ids = parse_id_list(payload.get("interviewerIds", []), "interviewerIds")
    if not Project.objects.filter(pk=project_id).exists():
        raise ProjectNotFound(f"Project #{project_id} not found.")

    summary = auto_assign_interviewers(project_id, interviewer_ids, assigned_by=request.user)
    data = {
        "totalCandidates": summary["total_candidates"],
        "distribution": [
            {"interviewerId": d["interviewer_id"], "candidateCount": d["candidate_count"]}
            for d in summary["distribution"]
        ],
        "failures": [
            {"candidateId": f["candidate_id"], "error": f["error"], "message": f["message"]}
            for f in summary["failures"]
        ],
    }
    return ok(data, message=f"Auto-assigned {summary['total_candidates']} candidate(s)")


@api_endpoint
def upload(request):
    """
    Bulk-create candidates for a project. Rows use the HR sheet's column
    headers ("Name", "Email ID", ...). Rejected as a whole on any bad row.
    """
    payload = parse_body(request)
    project_id = parse_id(require(payload, "projectId"), "projectId")
    rows = payload.get("candidates")
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise InvalidPayload("'candidates' must be a list of row objects.")
    try:
        project = Project.objects.get(pk=project_id)
    except Project.DoesNotExist:
        raise ProjectNotFound(f"Project #{project_id} not found.")

    try:
        summary = import_candidates(project, rows, uploaded_by=request.user)
    except ValueError as exc:
        raise InvalidPayload(str(exc))

    data = {
        "totalRows": summary["total_rows"],
        "successCount": summary["success_count"],
        "uploadBatchId": summary["upload_batch_id"],
        "errors": [
            {
                "rowNumber": e["row_number"],
                "candidateName": e["candidate_name"],
                "email": e["email"],
                "errors": e["errors"],
            }
            for e in summary["errors"]
        ],
        "duplicates": [
            {"rowNumber": d["row_number"], "email": d["email"]}
            for d in summary["duplicates"]
        ],
    }
    if summary["errors"] or summary["duplicates"]:
        return JsonResponse(
            {
                "success": False,
                "error": "InvalidUploadRows",
                "message": "The upload was rejected; no candidates were created.",
                "data": data,
            },
            status=400,
        )
    return ok(data, message=f"{summary['success_count']} candidate(s) uploaded", status=201)
