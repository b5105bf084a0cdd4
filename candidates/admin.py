from django.contrib import admin

from candidates.models import Candidate, StatusChange
from followups.models import FollowupAttempt


class FollowupAttemptInline(admin.TabularInline):
    model = FollowupAttempt
    extra = 0
    can_delete = False
    readonly_fields = (
        "attempt_number",
        "call_status",
        "notes",
        "scheduled_interview_date",
        "attempted_by",
        "attempted_at",
    )

    def has_add_permission(self, request, obj=None):
        # Attempts are recorded through the follow-up API only.
        return False


class StatusChangeInline(admin.TabularInline):
    model = StatusChange
    extra = 0
    can_delete = False
    readonly_fields = ("from_status", "to_status", "changed_by", "note", "is_override", "changed_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Candidate)
class CandidateAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "project", "overall_status", "assigned_interviewer", "is_active")
    list_filter = ("overall_status", "status_overridden", "is_active", "project")
    search_fields = ("name", "email", "contact_number")
    readonly_fields = (
        "overall_status",
        "status_overridden",
        "restored_after_attempt",
        "interview_scheduled_date",
        "interview_started_at",
        "interview_completed_at",
        "interview_duration_minutes",
        "report_id",
        "report_generated_at",
        "upload_batch_id",
    )
    inlines = [FollowupAttemptInline, StatusChangeInline]
