from django.conf import settings
from django.db import models


def _default_max_followup_attempts() -> int:
    return settings.DEFAULT_MAX_FOLLOWUP_ATTEMPTS


class Company(models.Model):
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Company"
        verbose_name_plural = "Companies"

    def __str__(self) -> str:
        return self.name


class Project(models.Model):
    """
    An exit or stay interview campaign run for one company.
    Owns the interviewer pool and the follow-up allowance new candidates start with.
    """

    class ProjectType(models.TextChoices):
        EXIT = "EXIT", "Exit Interview"
        STAY = "STAY", "Stay Interview"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        ACTIVE = "ACTIVE", "Active"
        COMPLETED = "COMPLETED", "Completed"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="projects",
    )
    name = models.CharField(max_length=255)
    project_type = models.CharField(
        max_length=10,
        choices=ProjectType.choices,
        default=ProjectType.EXIT,
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )

    # Questionnaires live in an external service; only the reference is kept.
    questionnaire_id = models.CharField(max_length=64, null=True, blank=True)

    interviewers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="interviewer_projects",
    )

    max_followup_attempts = models.PositiveSmallIntegerField(
        default=_default_max_followup_attempts,
        help_text="Follow-up call attempts allowed per candidate before auto-drop.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Project"
        verbose_name_plural = "Projects"

    def __str__(self) -> str:
        return f"[{self.status}] {self.name}"
