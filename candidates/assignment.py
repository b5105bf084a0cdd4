"""
candidates/assignment.py

Interviewer Assignment Distributor.

Public services:
  plan_distribution(candidate_ids, interviewer_ids)          → [(interviewer_id, [candidate_id, ...]), ...]
  assign_interviewer(candidate_ids, interviewer_id, ...)     → [Candidate, ...]
  auto_assign_interviewers(project_id, interviewer_ids, ...) → summary dict

Manual assignment is all-or-nothing. Auto-assignment is best effort: every
candidate is written in its own transaction and failures are reported per
candidate instead of rolling back the whole distribution.
"""

import logging
import math

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from candidates.models import Candidate
from candidates.status import derive_automatic_status
from candidates.transitions import lock_candidate, transition_status
from exitflow.errors import InterviewerNotFound, LifecycleError, NoInterviewersAvailable

logger = logging.getLogger(__name__)


def _unique(ids) -> list:
    return list(dict.fromkeys(ids))


def _load_interviewers(interviewer_ids) -> dict:
    User = get_user_model()
    found = User.objects.filter(pk__in=interviewer_ids, is_active=True).in_bulk()
    missing = [pk for pk in interviewer_ids if pk not in found]
    if missing:
        raise InterviewerNotFound(f"Interviewer(s) not found: {missing}.", interviewer_ids=missing)
    return found


def plan_distribution(candidate_ids, interviewer_ids) -> list[tuple]:
    """
    Split candidates into contiguous blocks of ceil(n / k), one block per
    interviewer, preserving the given candidate order.

    Deterministic for identical input. Every candidate lands in exactly one
    block; trailing interviewers may receive an empty block when n is not a
    multiple of the block size.

    Raises:
        NoInterviewersAvailable: interviewer_ids is empty.
    """
    candidate_ids = _unique(candidate_ids)
    interviewer_ids = _unique(interviewer_ids)
    if not interviewer_ids:
        raise NoInterviewersAvailable()

    block_size = math.ceil(len(candidate_ids) / len(interviewer_ids))
    plan = []
    for index, interviewer_id in enumerate(interviewer_ids):
        start = index * block_size
        plan.append((interviewer_id, candidate_ids[start : start + block_size]))
    return plan


def _apply_assignment(candidate: Candidate, interviewer, assigned_by) -> None:
    candidate.assigned_interviewer = interviewer
    candidate.assigned_by = assigned_by
    candidate.assigned_at = timezone.now()
    candidate.save(update_fields=["assigned_interviewer", "assigned_by", "assigned_at", "updated_at"])
    # A NEW candidate advances to what its history implies: ASSIGNED, unless
    # it was manually reset to NEW after follow-ups were recorded.
    if candidate.overall_status == Candidate.OverallStatus.NEW:
        transition_status(
            candidate,
            derive_automatic_status(candidate),
            changed_by=assigned_by,
            note=f"Assigned to interviewer #{interviewer.pk}",
        )


def assign_interviewer(candidate_ids, interviewer_id, *, assigned_by=None) -> list[Candidate]:
    """
    Assign one interviewer to every listed candidate.

    Raises:
        InterviewerNotFound, CandidateNotFound: nothing is written in either case.
    """
    candidate_ids = _unique(candidate_ids)
    interviewer = _load_interviewers([interviewer_id])[interviewer_id]

    with transaction.atomic():
        # Lock in primary-key order so concurrent batches cannot deadlock.
        locked = {pk: lock_candidate(pk) for pk in sorted(candidate_ids)}
        for candidate in locked.values():
            _apply_assignment(candidate, interviewer, assigned_by)

    logger.info(
        "Interviewer assigned: interviewer=%s candidates=%s by user=%s",
        interviewer.pk,
        candidate_ids,
        getattr(assigned_by, "pk", None),
    )
    return [locked[pk] for pk in candidate_ids]


def auto_assign_interviewers(project_id, interviewer_ids, *, assigned_by=None) -> dict:
    """
    Spread the project's unassigned active candidates evenly over the given
    interviewers, in candidate creation order.

    Returns:
        {
          "total_candidates": int,
          "distribution": [{"interviewer_id": int, "candidate_count": int}, ...],
          "failures": [{"candidate_id": int, "error": str, "message": str}, ...],
        }
    candidate_count only counts successful writes.

    Raises:
        NoInterviewersAvailable, InterviewerNotFound: raised before any write.
    """
    interviewer_ids = _unique(interviewer_ids)
    if not interviewer_ids:
        raise NoInterviewersAvailable()
    interviewers = _load_interviewers(interviewer_ids)

    candidate_ids = list(
        Candidate.objects
        .filter(project_id=project_id, is_active=True, assigned_interviewer__isnull=True)
        .order_by("created_at", "id")
        .values_list("id", flat=True)
    )
    plan = plan_distribution(candidate_ids, interviewer_ids)

    distribution = []
    failures = []
    for interviewer_id, block in plan:
        interviewer = interviewers[interviewer_id]
        assigned = 0
        for candidate_id in block:
            try:
                with transaction.atomic():
                    candidate = lock_candidate(candidate_id)
                    _apply_assignment(candidate, interviewer, assigned_by)
            except LifecycleError as exc:
                failures.append({"candidate_id": candidate_id, "error": exc.code, "message": exc.message})
                continue
            except DatabaseError as exc:
                logger.error(
                    "Auto-assign write failed: candidate=%s interviewer=%s: %s",
                    candidate_id,
                    interviewer_id,
                    exc,
                    exc_info=True,
                )
                failures.append({"candidate_id": candidate_id, "error": "DatabaseError", "message": str(exc)})
                continue
            assigned += 1
        distribution.append({"interviewer_id": interviewer_id, "candidate_count": assigned})

    logger.info(
        "Auto-assign complete: project=%s candidates=%s interviewers=%s failures=%s",
        project_id,
        len(candidate_ids),
        len(interviewer_ids),
        len(failures),
    )
    return {
        "total_candidates": len(candidate_ids),
        "distribution": distribution,
        "failures": failures,
    }
