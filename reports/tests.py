from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings
from django.urls import reverse

from candidates.models import Candidate
from projects.models import Company, Project
from reports.services import ReportServiceClient, ReportServiceError, trigger_report_generation

Status = Candidate.OverallStatus

STARTED_AT = datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)


def _make_candidate(completed: bool = True) -> Candidate:
    company = Company.objects.create(name="Acme Corp")
    project = Project.objects.create(company=company, name="Stay Interviews", questionnaire_id="q-project")
    fields = {
        "name": "Ravi Kumar",
        "email": "ravi@example.com",
        "interview_scheduled_date": STARTED_AT,
        "interview_started_at": STARTED_AT,
        "overall_status": Status.IN_PROGRESS,
    }
    if completed:
        fields.update(
            interview_completed_at=STARTED_AT + timedelta(minutes=30),
            interview_duration_minutes=30,
            answers_submitted=True,
            overall_status=Status.INTERVIEWED,
        )
    return Candidate.objects.create(project=project, **fields)


@override_settings(REPORT_WEBHOOK_SECRET="s3cret")
class ReportWebhookSecurityTests(TestCase):
    def setUp(self):
        self.url = reverse("reports:report_ready")
        self.candidate = _make_candidate()

    def _post(self, payload, **extra):
        return self.client.post(self.url, payload, content_type="application/json", **extra)

    def test_missing_token_rejected(self):
        response = self._post({"candidateId": self.candidate.pk, "reportId": "rep_1"})
        self.assertEqual(response.status_code, 401)

    def test_wrong_token_rejected(self):
        response = self._post(
            {"candidateId": self.candidate.pk, "reportId": "rep_1"},
            HTTP_X_REPORT_TOKEN="nope",
        )
        self.assertEqual(response.status_code, 401)
        self.candidate.refresh_from_db()
        self.assertIsNone(self.candidate.report_id)

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)

    @override_settings(REPORT_WEBHOOK_SECRET="", DEBUG=False)
    def test_missing_secret_in_production_is_misconfiguration(self):
        response = self._post({"candidateId": self.candidate.pk, "reportId": "rep_1"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "server_misconfigured"})

    @override_settings(REPORT_WEBHOOK_SECRET="", DEBUG=True)
    def test_missing_secret_in_debug_skips_validation(self):
        response = self._post({"candidateId": self.candidate.pk, "reportId": "rep_1"})
        self.assertEqual(response.status_code, 200)


@override_settings(REPORT_WEBHOOK_SECRET="s3cret")
class ReportWebhookTests(TestCase):
    def setUp(self):
        self.url = reverse("reports:report_ready")

    def _post(self, payload):
        return self.client.post(
            self.url,
            payload,
            content_type="application/json",
            HTTP_X_REPORT_TOKEN="s3cret",
        )

    def test_links_report(self):
        candidate = _make_candidate()

        response = self._post({"candidateId": str(candidate.pk), "reportId": "rep_9"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})
        candidate.refresh_from_db()
        self.assertEqual(candidate.report_id, "rep_9")
        self.assertEqual(candidate.overall_status, Status.REPORT_GENERATED)
        self.assertIsNotNone(candidate.report_generated_at)

    def test_unknown_candidate_acknowledged(self):
        response = self._post({"candidateId": 999999, "reportId": "rep_9"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "candidate_not_found"})

    def test_incomplete_interview_acknowledged_without_linking(self):
        candidate = _make_candidate(completed=False)

        response = self._post({"candidateId": candidate.pk, "reportId": "rep_9"})

        self.assertEqual(response.json(), {"status": "interview_not_completed"})
        candidate.refresh_from_db()
        self.assertIsNone(candidate.report_id)
        self.assertEqual(candidate.overall_status, Status.IN_PROGRESS)

    def test_missing_fields(self):
        response = self._post({"candidateId": 1})
        self.assertEqual(response.status_code, 400)

    def test_non_numeric_candidate_id(self):
        response = self._post({"candidateId": "abc", "reportId": "rep_9"})
        self.assertEqual(response.status_code, 400)

    def test_invalid_json(self):
        response = self.client.post(
            self.url,
            "not json",
            content_type="application/json",
            HTTP_X_REPORT_TOKEN="s3cret",
        )
        self.assertEqual(response.status_code, 400)


@override_settings(
    REPORT_SERVICE_URL="https://reports.example.com/generate",
    REPORT_SERVICE_API_KEY="key-123",
    REPORT_SERVICE_TIMEOUT=7,
)
class ReportServiceClientTests(TestCase):
    def setUp(self):
        self.candidate = _make_candidate()
        self.session = MagicMock()

    def test_posts_payload_with_bearer_token(self):
        self.session.post.return_value = MagicMock(status_code=202, json=lambda: {"jobId": "job-1"})

        data = ReportServiceClient(session=self.session).request_report(self.candidate)

        self.assertEqual(data, {"jobId": "job-1"})
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://reports.example.com/generate")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer key-123")
        self.assertEqual(kwargs["timeout"], 7)
        self.assertEqual(
            kwargs["json"],
            {
                "candidateId": str(self.candidate.pk),
                "projectId": str(self.candidate.project_id),
                "questionnaireId": "q-project",
                "completedAt": "2025-03-01T10:30:00+00:00",
                "interviewDurationMinutes": 30,
            },
        )

    def test_candidate_questionnaire_takes_precedence(self):
        self.candidate.questionnaire_id = "q-candidate"
        payload = ReportServiceClient(session=self.session).build_payload(self.candidate)
        self.assertEqual(payload["questionnaireId"], "q-candidate")

    def test_http_error_raises(self):
        self.session.post.return_value = MagicMock(status_code=500, text="internal error")

        with self.assertRaises(ReportServiceError):
            ReportServiceClient(session=self.session).request_report(self.candidate)

    def test_transport_error_raises(self):
        self.session.post.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(ReportServiceError):
            ReportServiceClient(session=self.session).request_report(self.candidate)

    def test_trigger_swallows_service_errors(self):
        with patch("reports.services.ReportServiceClient") as mock_client:
            mock_client.return_value.request_report.side_effect = ReportServiceError("down")
            with self.assertLogs("reports.services", level="ERROR"):
                trigger_report_generation(self.candidate)

    @override_settings(REPORT_SERVICE_URL="")
    def test_trigger_skipped_when_unconfigured(self):
        with patch("reports.services.ReportServiceClient") as mock_client:
            trigger_report_generation(self.candidate)
        mock_client.assert_not_called()
