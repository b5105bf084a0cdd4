"""
candidates/urls.py

JSON API routes for candidates, mounted under /api/v1/candidate/.
"""

from django.urls import path

from candidates import views

app_name = "candidates"

urlpatterns = [
    path("search/", views.search, name="search"),
    path("search-by-id/", views.search_by_id, name="search_by_id"),
    path("delete/", views.delete, name="delete"),
    path("update-status/", views.update_status, name="update_status"),
    path("assign-interviewer/", views.assign_interviewer_view, name="assign_interviewer"),
    path(
        "auto-assign-interviewers/",
        views.auto_assign_interviewers_view,
        name="auto_assign_interviewers",
    ),
    path("upload/", views.upload, name="upload"),
]
