"""
exitflow/urls.py

Root URL configuration.
"""

from django.contrib import admin
from django.urls import include, path

from exitflow.constants import API_PREFIX

urlpatterns = [
    # ── Admin ──────────────────────────────────────────────────────────────────
    path("admin/", admin.site.urls),

    # ── JSON API (session auth, POST only) ─────────────────────────────────────
    path(f"{API_PREFIX}candidate/", include("candidates.urls", namespace="candidates")),
    path(f"{API_PREFIX}candidate/", include("followups.urls", namespace="followups")),
    path(f"{API_PREFIX}candidate/", include("interviews.urls", namespace="interviews")),

    # ── Webhooks (CSRF-exempt, shared-secret auth) ─────────────────────────────
    path("webhooks/", include("reports.urls", namespace="reports")),
]
