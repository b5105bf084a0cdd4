"""
reports/services.py

Client for the external AI report service.

Interview answers and report generation live outside this system. Once an
interview is completed with its answers submitted, the report service is
asked to build the report; it later calls back on POST /webhooks/report-ready/
(see reports/views.py), which links the report to the candidate.

  Endpoint : POST {REPORT_SERVICE_URL}
  Auth     : Authorization: Bearer {REPORT_SERVICE_API_KEY}
"""

import logging

import requests
from django.conf import settings

from candidates.models import Candidate
from exitflow.api import isoformat

logger = logging.getLogger(__name__)


# ── Custom exception ───────────────────────────────────────────────────────────

class ReportServiceError(Exception):
    """Raised when the report service rejects a request or cannot be reached."""


# ── Fire-and-forget trigger ────────────────────────────────────────────────────

def trigger_report_generation(candidate: Candidate) -> None:
    """
    Request a report for a completed interview, catching all errors.

    Runs after the completing transaction commits; a report-service outage
    must never undo or fail the interview completion itself.
    """
    if not settings.REPORT_SERVICE_URL:
        logger.warning(
            "REPORT_SERVICE_URL is not set — skipping report request for candidate=%s",
            candidate.pk,
        )
        return
    try:
        ReportServiceClient().request_report(candidate)
    except ReportServiceError as exc:
        logger.error(
            "Report request failed for candidate=%s: %s",
            candidate.pk,
            exc,
            exc_info=True,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unexpected error while requesting report for candidate=%s: %s",
            candidate.pk,
            exc,
            exc_info=True,
        )


# ── Service ────────────────────────────────────────────────────────────────────

class ReportServiceClient:
    """Thin wrapper around the report service's generate endpoint."""

    def __init__(self, session: requests.Session | None = None):
        self.url = settings.REPORT_SERVICE_URL
        self.api_key = settings.REPORT_SERVICE_API_KEY
        self.timeout = settings.REPORT_SERVICE_TIMEOUT
        self.session = session or requests.Session()

    def build_payload(self, candidate: Candidate) -> dict:
        return {
            "candidateId": str(candidate.pk),
            "projectId": str(candidate.project_id),
            "questionnaireId": candidate.questionnaire_id or candidate.project.questionnaire_id,
            "completedAt": isoformat(candidate.interview_completed_at),
            "interviewDurationMinutes": candidate.interview_duration_minutes,
        }

    def request_report(self, candidate: Candidate) -> dict:
        """
        Ask the report service to generate a report for the candidate.

        Returns:
            The decoded JSON response body.

        Raises:
            ReportServiceError: on configuration, transport or HTTP failure.
        """
        if not self.url:
            raise ReportServiceError("REPORT_SERVICE_URL is not configured.")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = self.build_payload(candidate)
        logger.info("Requesting report: candidate=%s url=%s", candidate.pk, self.url)

        try:
            response = self.session.post(
                self.url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ReportServiceError(f"Report service unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise ReportServiceError(
                f"Report service returned HTTP {response.status_code}: {response.text[:500]}"
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.info(
            "Report requested: candidate=%s status=%s",
            candidate.pk,
            response.status_code,
        )
        return data
