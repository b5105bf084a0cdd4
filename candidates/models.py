from django.conf import settings
from django.db import models


def _default_max_followup_attempts() -> int:
    return settings.DEFAULT_MAX_FOLLOWUP_ATTEMPTS


class InterviewPhase(models.TextChoices):
    """Computed-only phase of the interview session. Never stored."""

    NOT_STARTED = "NOT_STARTED", "Not Started"
    SCHEDULED = "SCHEDULED", "Scheduled"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    COMPLETED = "COMPLETED", "Completed"


class Candidate(models.Model):
    """
    Subject of an exit/stay interview and aggregate root of the interview
    lifecycle. Follow-up attempts hang off it (followups.FollowupAttempt);
    the interview itself is embedded as the interview_* fields.
    """

    class OverallStatus(models.TextChoices):
        NEW = "NEW", "New"
        ASSIGNED = "ASSIGNED", "Assigned"
        ATTEMPTING = "ATTEMPTING", "Attempting"
        SCHEDULED = "SCHEDULED", "Scheduled"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        INTERVIEWED = "INTERVIEWED", "Interviewed"
        REPORT_GENERATED = "REPORT_GENERATED", "Report Generated"
        DROPPED = "DROPPED", "Dropped"

    class Gender(models.TextChoices):
        MALE = "MALE", "Male"
        FEMALE = "FEMALE", "Female"
        OTHER = "OTHER", "Other"

    class Quarter(models.TextChoices):
        Q1 = "Q1", "Q1"
        Q2 = "Q2", "Q2"
        Q3 = "Q3", "Q3"
        Q4 = "Q4", "Q4"

    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="candidates",
    )

    # ── Profile (read-only for the lifecycle) ─────────────────────────────────
    name = models.CharField(max_length=300)
    email = models.CharField(max_length=254, db_index=True)
    contact_number = models.CharField(max_length=50, blank=True, default="")
    nature_of_employment = models.CharField(max_length=100, blank=True, default="")
    location = models.CharField(max_length=150, blank=True, default="")
    grade_level = models.CharField(max_length=50, blank=True, default="")
    designation = models.CharField(max_length=150, blank=True, default="")
    department = models.CharField(max_length=150, blank=True, default="")
    reporting_to = models.CharField(max_length=300, blank=True, default="")
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True, default="")
    quarter = models.CharField(max_length=2, choices=Quarter.choices, blank=True, default="")
    date_of_joining = models.DateField(null=True, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    resignation_date = models.DateField(null=True, blank=True)
    last_working_day = models.DateField(null=True, blank=True)
    # Years in the organisation, as reported by the client's HR sheet
    experience_in_org = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    # ── Lifecycle ──────────────────────────────────────────────────────────────
    overall_status = models.CharField(
        max_length=20,
        choices=OverallStatus.choices,
        default=OverallStatus.NEW,
        db_index=True,
    )
    # Set while overall_status was last written by a manual override; every
    # automatic transition clears it.
    status_overridden = models.BooleanField(default=False)
    # Follow-up attempts recorded when the candidate was last restored from
    # DROPPED. Declines and exhaustion up to this attempt no longer count.
    restored_after_attempt = models.PositiveSmallIntegerField(default=0)
    max_followup_attempts = models.PositiveSmallIntegerField(default=_default_max_followup_attempts)

    # ── Interview (embedded) ───────────────────────────────────────────────────
    interview_scheduled_date = models.DateTimeField(null=True, blank=True, db_index=True)
    interview_started_at = models.DateTimeField(null=True, blank=True)
    interview_completed_at = models.DateTimeField(null=True, blank=True)
    interview_duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    answers_submitted = models.BooleanField(default=False)
    questionnaire_id = models.CharField(max_length=64, null=True, blank=True)

    # ── Assignment ─────────────────────────────────────────────────────────────
    assigned_interviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_candidates",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    assigned_at = models.DateTimeField(null=True, blank=True)

    # ── Report linkage (reports are produced by an external service) ───────────
    report_id = models.CharField(max_length=64, null=True, blank=True)
    report_generated_at = models.DateTimeField(null=True, blank=True)

    # ── Upload metadata ────────────────────────────────────────────────────────
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="uploaded_candidates",
    )
    upload_batch_id = models.CharField(max_length=32, null=True, blank=True, db_index=True)

    # Soft-delete flag; the lifecycle never touches it.
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Candidate"
        verbose_name_plural = "Candidates"

    def __str__(self) -> str:
        return f"{self.name} <{self.email}> [{self.overall_status}]"

    @property
    def interview_phase(self) -> str:
        if self.interview_completed_at:
            return InterviewPhase.COMPLETED
        if self.interview_started_at:
            return InterviewPhase.IN_PROGRESS
        if self.interview_scheduled_date:
            return InterviewPhase.SCHEDULED
        return InterviewPhase.NOT_STARTED

    @property
    def is_dropped(self) -> bool:
        return self.overall_status == self.OverallStatus.DROPPED

    def change_status(self, new_status: str, changed_by=None, note: str = "", override: bool = False):
        """
        Transition overall_status and create an audit StatusChange record.
        Call this instead of setting overall_status + save() directly.

        ``override`` marks a manual override; automatic transitions pass False,
        which hands authority back to the status derivation.
        """
        old_status = self.overall_status
        if not override and old_status == new_status and not self.status_overridden:
            return
        self.overall_status = new_status
        self.status_overridden = override
        self.save(update_fields=["overall_status", "status_overridden", "updated_at"])
        if old_status == new_status and not override:
            return
        StatusChange.objects.create(
            candidate=self,
            from_status=old_status,
            to_status=new_status,
            changed_by=changed_by,
            note=note,
            is_override=override,
        )


class StatusChange(models.Model):
    """
    Audit trail entry recording every Candidate overall_status transition.
    """

    candidate = models.ForeignKey(
        Candidate,
        on_delete=models.CASCADE,
        related_name="status_changes",
    )
    from_status = models.CharField(max_length=20, choices=Candidate.OverallStatus.choices)
    to_status = models.CharField(max_length=20, choices=Candidate.OverallStatus.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="candidate_status_changes",
    )
    note = models.TextField(blank=True, default="")
    is_override = models.BooleanField(default=False)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-changed_at", "-id"]
        verbose_name = "Status Change"
        verbose_name_plural = "Status Changes"

    def __str__(self) -> str:
        return f"Candidate#{self.candidate_id}: {self.from_status} → {self.to_status}"
