import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from candidates.models import Candidate
from exitflow.errors import CandidateNotFound, InvalidPhaseTransition, InvalidStatus

logger = logging.getLogger(__name__)


def _default_note(status: str) -> str:
    return f"Automatic transition to {status}"


def lock_candidate(candidate_id) -> Candidate:
    """
    Load an active candidate under a row lock for the rest of the current
    transaction. Must be called inside transaction.atomic().
    """
    try:
        return Candidate.objects.select_for_update().get(pk=candidate_id, is_active=True)
    except Candidate.DoesNotExist:
        raise CandidateNotFound(f"Candidate #{candidate_id} not found.", candidate_id=candidate_id)


def transition_status(
    candidate: Candidate,
    new_status: str,
    *,
    changed_by=None,
    note: str | None = None,
) -> None:
    old_status = candidate.overall_status
    candidate.change_status(
        new_status,
        changed_by=changed_by,
        note=note or _default_note(new_status),
    )
    if old_status != new_status:
        logger.info(
            "Candidate status transition: candidate=%s %s → %s",
            candidate.pk,
            old_status,
            new_status,
        )


def set_status(
    candidate_id,
    new_status: str,
    *,
    changed_by=None,
    note: str = "",
) -> Candidate:
    """
    Manual override: force overall_status to any value.

    No state-machine guard applies. Follow-up attempts and interview fields
    are left untouched. Leaving DROPPED restores the candidate: the decline
    or exhaustion that dropped it stops counting towards DROPPED, and if its
    follow-up allowance is already used up, the allowance is extended by
    FOLLOWUP_ATTEMPTS_ON_RESTORE so further attempts can be recorded.
    """
    if new_status not in Candidate.OverallStatus.values:
        raise InvalidStatus(f"Unknown overall status {new_status!r}.")

    with transaction.atomic():
        candidate = lock_candidate(candidate_id)
        old_status = candidate.overall_status

        if old_status == Candidate.OverallStatus.DROPPED and new_status != old_status:
            used = candidate.followup_attempts.count()
            exhausted = used >= candidate.max_followup_attempts
            candidate.restored_after_attempt = used
            if exhausted:
                candidate.max_followup_attempts = used + settings.FOLLOWUP_ATTEMPTS_ON_RESTORE
            candidate.save(update_fields=["restored_after_attempt", "max_followup_attempts", "updated_at"])
            if exhausted:
                logger.info(
                    "Restored candidate=%s with exhausted follow-ups: max_followup_attempts → %s",
                    candidate.pk,
                    candidate.max_followup_attempts,
                )

        candidate.change_status(
            new_status,
            changed_by=changed_by,
            note=note or f"Manual override to {new_status}",
            override=True,
        )

    logger.info(
        "Manual status override: candidate=%s %s → %s by user=%s",
        candidate.pk,
        old_status,
        new_status,
        getattr(changed_by, "pk", None),
    )
    return candidate


def mark_report_generated(
    candidate_id,
    report_id: str,
    *,
    changed_by=None,
    note: str | None = None,
) -> Candidate:
    """
    Link the externally generated report and advance to REPORT_GENERATED.

    A manually overridden status is kept: the report is linked, but the
    operator's status stands until they change it.
    """
    with transaction.atomic():
        candidate = lock_candidate(candidate_id)
        if not candidate.interview_completed_at:
            raise InvalidPhaseTransition(
                "A report can only be linked once the interview is completed.",
                candidate_id=candidate.pk,
            )
        candidate.report_id = report_id
        candidate.report_generated_at = timezone.now()
        candidate.save(update_fields=["report_id", "report_generated_at", "updated_at"])
        if candidate.status_overridden:
            logger.info(
                "Report %s linked to candidate=%s; keeping overridden status %s",
                report_id,
                candidate.pk,
                candidate.overall_status,
            )
            return candidate
        transition_status(
            candidate,
            Candidate.OverallStatus.REPORT_GENERATED,
            changed_by=changed_by,
            note=note or f"Report {report_id} generated",
        )
    return candidate
