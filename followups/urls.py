"""
followups/urls.py

Mounted under /api/v1/candidate/ together with the candidates and
interviews API routes.
"""

from django.urls import path

from followups import views

app_name = "followups"

urlpatterns = [
    path("update-followup/", views.update_followup, name="update_followup"),
]
