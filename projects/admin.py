from django.contrib import admin

from projects.models import Company, Project


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_at")
    search_fields = ("name",)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "project_type", "status", "max_followup_attempts")
    list_filter = ("status", "project_type")
    search_fields = ("name", "company__name")
    filter_horizontal = ("interviewers",)
