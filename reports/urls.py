"""
reports/urls.py

URL patterns for inbound report-service webhooks.

  POST /webhooks/report-ready/  — report generated for a candidate
"""

from django.urls import path

from reports import views

app_name = "reports"

urlpatterns = [
    path("report-ready/", views.report_ready_webhook, name="report_ready"),
]
