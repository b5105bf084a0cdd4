"""
candidates/migrations/0001_initial.py

Initial migration: Candidate and StatusChange tables.
"""

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

import candidates.models

STATUS_CHOICES = [
    ("NEW", "New"),
    ("ASSIGNED", "Assigned"),
    ("ATTEMPTING", "Attempting"),
    ("SCHEDULED", "Scheduled"),
    ("IN_PROGRESS", "In Progress"),
    ("INTERVIEWED", "Interviewed"),
    ("REPORT_GENERATED", "Report Generated"),
    ("DROPPED", "Dropped"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("projects", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Candidate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=300)),
                ("email", models.CharField(db_index=True, max_length=254)),
                ("contact_number", models.CharField(blank=True, default="", max_length=50)),
                ("nature_of_employment", models.CharField(blank=True, default="", max_length=100)),
                ("location", models.CharField(blank=True, default="", max_length=150)),
                ("grade_level", models.CharField(blank=True, default="", max_length=50)),
                ("designation", models.CharField(blank=True, default="", max_length=150)),
                ("department", models.CharField(blank=True, default="", max_length=150)),
                ("reporting_to", models.CharField(blank=True, default="", max_length=300)),
                (
                    "gender",
                    models.CharField(
                        blank=True,
                        choices=[("MALE", "Male"), ("FEMALE", "Female"), ("OTHER", "Other")],
                        default="",
                        max_length=10,
                    ),
                ),
                (
                    "quarter",
                    models.CharField(
                        blank=True,
                        choices=[("Q1", "Q1"), ("Q2", "Q2"), ("Q3", "Q3"), ("Q4", "Q4")],
                        default="",
                        max_length=2,
                    ),
                ),
                ("date_of_joining", models.DateField(blank=True, null=True)),
                ("date_of_birth", models.DateField(blank=True, null=True)),
                ("resignation_date", models.DateField(blank=True, null=True)),
                ("last_working_day", models.DateField(blank=True, null=True)),
                ("experience_in_org", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                (
                    "overall_status",
                    models.CharField(choices=STATUS_CHOICES, db_index=True, default="NEW", max_length=20),
                ),
                ("status_overridden", models.BooleanField(default=False)),
                (
                    "max_followup_attempts",
                    models.PositiveSmallIntegerField(default=candidates.models._default_max_followup_attempts),
                ),
                ("interview_scheduled_date", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("interview_started_at", models.DateTimeField(blank=True, null=True)),
                ("interview_completed_at", models.DateTimeField(blank=True, null=True)),
                ("interview_duration_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("answers_submitted", models.BooleanField(default=False)),
                ("questionnaire_id", models.CharField(blank=True, max_length=64, null=True)),
                ("assigned_at", models.DateTimeField(blank=True, null=True)),
                ("report_id", models.CharField(blank=True, max_length=64, null=True)),
                ("report_generated_at", models.DateTimeField(blank=True, null=True)),
                ("upload_batch_id", models.CharField(blank=True, db_index=True, max_length=32, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="candidates",
                        to="projects.project",
                    ),
                ),
                (
                    "assigned_interviewer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_candidates",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "assigned_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="uploaded_candidates",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Candidate",
                "verbose_name_plural": "Candidates",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="StatusChange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("to_status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("note", models.TextField(blank=True, default="")),
                ("is_override", models.BooleanField(default=False)),
                ("changed_at", models.DateTimeField(auto_now_add=True)),
                (
                    "candidate",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_changes",
                        to="candidates.candidate",
                    ),
                ),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="candidate_status_changes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Status Change",
                "verbose_name_plural": "Status Changes",
                "ordering": ["-changed_at", "-id"],
            },
        ),
    ]
