"""
followups/migrations/0001_initial.py

Initial migration: FollowupAttempt table.
"""

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("candidates", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FollowupAttempt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("attempt_number", models.PositiveSmallIntegerField()),
                (
                    "call_status",
                    models.CharField(
                        choices=[
                            ("ANSWERED_AGREED", "Answered – Agreed"),
                            ("ANSWERED_DECLINED", "Answered – Declined"),
                            ("NOT_ANSWERING", "Not Answering"),
                            ("WRONG_NUMBER", "Wrong Number"),
                            ("SWITCHED_OFF", "Switched Off"),
                            ("BUSY", "Busy"),
                            ("CALLBACK_REQUESTED", "Callback Requested"),
                        ],
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                ("scheduled_interview_date", models.DateTimeField(blank=True, null=True)),
                ("attempted_at", models.DateTimeField(auto_now_add=True)),
                (
                    "candidate",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="followup_attempts",
                        to="candidates.candidate",
                    ),
                ),
                (
                    "attempted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="followup_attempts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Follow-up Attempt",
                "verbose_name_plural": "Follow-up Attempts",
                "ordering": ["attempt_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("candidate", "attempt_number"),
                        name="unique_attempt_number_per_candidate",
                    ),
                ],
            },
        ),
    ]
