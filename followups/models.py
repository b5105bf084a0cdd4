from django.conf import settings
from django.db import models


class FollowupAttempt(models.Model):
    """
    One recorded phone-call outcome while trying to schedule a candidate's
    interview. Created once and never edited; attempt_number is 1-based and
    gap-free per candidate.
    """

    class CallStatus(models.TextChoices):
        ANSWERED_AGREED = "ANSWERED_AGREED", "Answered – Agreed"
        ANSWERED_DECLINED = "ANSWERED_DECLINED", "Answered – Declined"
        NOT_ANSWERING = "NOT_ANSWERING", "Not Answering"
        WRONG_NUMBER = "WRONG_NUMBER", "Wrong Number"
        SWITCHED_OFF = "SWITCHED_OFF", "Switched Off"
        BUSY = "BUSY", "Busy"
        CALLBACK_REQUESTED = "CALLBACK_REQUESTED", "Callback Requested"

    candidate = models.ForeignKey(
        "candidates.Candidate",
        on_delete=models.CASCADE,
        related_name="followup_attempts",
    )
    attempt_number = models.PositiveSmallIntegerField()
    call_status = models.CharField(max_length=20, choices=CallStatus.choices)
    notes = models.TextField(null=True, blank=True)
    # Only present when the candidate agreed to an interview on this call
    scheduled_interview_date = models.DateTimeField(null=True, blank=True)
    attempted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="followup_attempts",
    )
    attempted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["attempt_number"]
        verbose_name = "Follow-up Attempt"
        verbose_name_plural = "Follow-up Attempts"
        constraints = [
            models.UniqueConstraint(
                fields=["candidate", "attempt_number"],
                name="unique_attempt_number_per_candidate",
            ),
        ]

    def __str__(self) -> str:
        return f"Candidate#{self.candidate_id} attempt {self.attempt_number}: {self.call_status}"
