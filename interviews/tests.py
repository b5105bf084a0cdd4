from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from candidates.models import Candidate
from candidates.status import derive_overall_status, is_status_consistent
from candidates.transitions import set_status
from exitflow.errors import CandidateDropped, CandidateNotFound, InvalidPhaseTransition
from followups.models import FollowupAttempt
from followups.services import record_followup
from interviews.services import complete_interview, interview_duration_minutes, start_interview
from projects.models import Company, Project

Status = Candidate.OverallStatus

SCHEDULED_AT = datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)
STARTED_AT = datetime(2025, 3, 1, 10, 5, tzinfo=dt_timezone.utc)


def _make_candidate(**kwargs) -> Candidate:
    company = Company.objects.create(name="Acme Corp")
    project = Project.objects.create(company=company, name="Exit Interviews", questionnaire_id="q-77")
    defaults = {"name": "Ravi Kumar", "email": "ravi@example.com"}
    defaults.update(kwargs)
    return Candidate.objects.create(project=project, **defaults)


def _make_scheduled_candidate() -> Candidate:
    candidate = _make_candidate()
    record_followup(candidate.pk, FollowupAttempt.CallStatus.BUSY)
    return record_followup(
        candidate.pk,
        FollowupAttempt.CallStatus.ANSWERED_AGREED,
        scheduled_interview_date=SCHEDULED_AT,
    )


class InterviewDurationTests(TestCase):
    def test_whole_minutes(self):
        self.assertEqual(interview_duration_minutes(STARTED_AT, STARTED_AT + timedelta(minutes=30)), 30)

    def test_rounds_half_up(self):
        self.assertEqual(
            interview_duration_minutes(STARTED_AT, STARTED_AT + timedelta(minutes=29, seconds=30)),
            30,
        )
        self.assertEqual(
            interview_duration_minutes(STARTED_AT, STARTED_AT + timedelta(minutes=29, seconds=29)),
            29,
        )

    def test_clock_skew_clamps_to_zero(self):
        self.assertEqual(interview_duration_minutes(STARTED_AT, STARTED_AT - timedelta(minutes=3)), 0)


class InterviewLifecycleTests(TestCase):
    def setUp(self):
        self.interviewer = get_user_model().objects.create_user(username="interviewer", password="pw")
        self.candidate = _make_scheduled_candidate()

    def test_start_scheduled_interview(self):
        candidate = start_interview(self.candidate.pk, changed_by=self.interviewer, now=STARTED_AT)

        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, Status.IN_PROGRESS)
        self.assertEqual(candidate.interview_started_at, STARTED_AT)
        self.assertEqual(candidate.interview_phase, "IN_PROGRESS")
        self.assertEqual(candidate.status_changes.first().changed_by, self.interviewer)

    def test_starting_twice_is_invalid(self):
        start_interview(self.candidate.pk, now=STARTED_AT)

        with self.assertRaises(InvalidPhaseTransition):
            start_interview(self.candidate.pk)

        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.interview_started_at, STARTED_AT)

    def test_complete_thirty_minutes_after_start(self):
        start_interview(self.candidate.pk, now=STARTED_AT)

        with patch("interviews.services.trigger_report_generation"):
            candidate = complete_interview(self.candidate.pk, now=STARTED_AT + timedelta(minutes=30))

        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, Status.INTERVIEWED)
        self.assertEqual(candidate.interview_duration_minutes, 30)
        self.assertTrue(candidate.answers_submitted)
        self.assertEqual(candidate.interview_phase, "COMPLETED")

    def test_complete_records_unsubmitted_answers(self):
        start_interview(self.candidate.pk, now=STARTED_AT)
        candidate = complete_interview(
            self.candidate.pk,
            answers_submitted=False,
            now=STARTED_AT + timedelta(minutes=12),
        )
        self.assertFalse(candidate.answers_submitted)
        self.assertEqual(candidate.overall_status, Status.INTERVIEWED)

    def test_complete_requires_in_progress(self):
        with self.assertRaises(InvalidPhaseTransition):
            complete_interview(self.candidate.pk)

    def test_complete_twice_is_invalid(self):
        start_interview(self.candidate.pk, now=STARTED_AT)
        complete_interview(self.candidate.pk, answers_submitted=False, now=STARTED_AT + timedelta(minutes=5))

        with self.assertRaises(InvalidPhaseTransition):
            complete_interview(self.candidate.pk)

    def test_start_without_schedule_is_invalid(self):
        candidate = _make_candidate(email="new@example.com")
        with self.assertRaises(InvalidPhaseTransition):
            start_interview(candidate.pk)

    def test_unknown_candidate(self):
        with self.assertRaises(CandidateNotFound):
            start_interview(999999)

    def test_each_step_matches_derivation(self):
        self.assertEqual(self.candidate.overall_status, derive_overall_status(self.candidate))

        candidate = start_interview(self.candidate.pk, now=STARTED_AT)
        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, derive_overall_status(candidate))

        candidate = complete_interview(
            self.candidate.pk,
            answers_submitted=False,
            now=STARTED_AT + timedelta(minutes=45),
        )
        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, derive_overall_status(candidate))


class DroppedCandidateInterviewTests(TestCase):
    def setUp(self):
        self.candidate = _make_scheduled_candidate()

    def test_start_blocked_for_dropped_candidate(self):
        set_status(self.candidate.pk, Status.DROPPED)

        with self.assertRaises(CandidateDropped):
            start_interview(self.candidate.pk)

        self.candidate.refresh_from_db()
        self.assertIsNone(self.candidate.interview_started_at)

    def test_complete_blocked_for_dropped_candidate(self):
        start_interview(self.candidate.pk, now=STARTED_AT)
        set_status(self.candidate.pk, Status.DROPPED)

        with self.assertRaises(CandidateDropped):
            complete_interview(self.candidate.pk)

    def test_restore_reenables_start(self):
        set_status(self.candidate.pk, Status.DROPPED)
        set_status(self.candidate.pk, Status.SCHEDULED)

        candidate = start_interview(self.candidate.pk, now=STARTED_AT)

        self.assertEqual(candidate.overall_status, Status.IN_PROGRESS)
        self.assertFalse(candidate.status_overridden)

    def test_restored_after_decline_stays_consistent_through_interview(self):
        record_followup(self.candidate.pk, FollowupAttempt.CallStatus.ANSWERED_DECLINED)
        set_status(self.candidate.pk, Status.SCHEDULED)

        candidate = start_interview(self.candidate.pk, now=STARTED_AT)
        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, Status.IN_PROGRESS)
        self.assertTrue(is_status_consistent(candidate))

        candidate = complete_interview(
            self.candidate.pk,
            answers_submitted=False,
            now=STARTED_AT + timedelta(minutes=25),
        )
        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, Status.INTERVIEWED)
        self.assertTrue(is_status_consistent(candidate))


class InterviewAtomicityTests(TestCase):
    def test_start_interview_is_atomic(self):
        candidate = _make_scheduled_candidate()

        with patch("interviews.services.transition_status", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                start_interview(candidate.pk, now=STARTED_AT)

        candidate.refresh_from_db()
        self.assertIsNone(candidate.interview_started_at)
        self.assertEqual(candidate.overall_status, Status.SCHEDULED)

    def test_complete_interview_is_atomic(self):
        candidate = _make_scheduled_candidate()
        start_interview(candidate.pk, now=STARTED_AT)

        with patch("interviews.services.transition_status", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                complete_interview(candidate.pk, now=STARTED_AT + timedelta(minutes=10))

        candidate.refresh_from_db()
        self.assertIsNone(candidate.interview_completed_at)
        self.assertIsNone(candidate.interview_duration_minutes)
        self.assertEqual(candidate.overall_status, Status.IN_PROGRESS)


class ReportTriggerTests(TestCase):
    def setUp(self):
        self.candidate = _make_scheduled_candidate()
        start_interview(self.candidate.pk, now=STARTED_AT)

    def test_submitted_answers_request_report_after_commit(self):
        with patch("interviews.services.trigger_report_generation") as mock_trigger:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                complete_interview(self.candidate.pk, now=STARTED_AT + timedelta(minutes=20))

        self.assertEqual(len(callbacks), 1)
        mock_trigger.assert_called_once()
        self.assertEqual(mock_trigger.call_args.args[0].pk, self.candidate.pk)

    def test_unsubmitted_answers_do_not_request_report(self):
        with patch("interviews.services.trigger_report_generation") as mock_trigger:
            with self.captureOnCommitCallbacks(execute=True):
                complete_interview(
                    self.candidate.pk,
                    answers_submitted=False,
                    now=STARTED_AT + timedelta(minutes=20),
                )

        mock_trigger.assert_not_called()


class InterviewApiTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="interviewer", password="pw")
        self.client.force_login(self.user)
        self.candidate = _make_scheduled_candidate()

    def _post(self, name, payload):
        return self.client.post(reverse(name), payload, content_type="application/json")

    def test_start_and_complete(self):
        response = self._post("interviews:start_interview", {"candidateId": self.candidate.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["overallStatus"], "IN_PROGRESS")

        with patch("interviews.services.trigger_report_generation"):
            response = self._post(
                "interviews:complete_interview",
                {"candidateId": self.candidate.pk, "answersSubmitted": True},
            )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["overallStatus"], "INTERVIEWED")
        self.assertEqual(data["interviewPhase"], "COMPLETED")
        self.assertEqual(data["interviewDetails"]["phase"], "COMPLETED")
        self.assertTrue(data["interviewDetails"]["answersSubmitted"])

    def test_start_twice_is_conflict(self):
        self._post("interviews:start_interview", {"candidateId": self.candidate.pk})

        response = self._post("interviews:start_interview", {"candidateId": self.candidate.pk})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "InvalidPhaseTransition")

    def test_answers_submitted_must_be_boolean(self):
        self._post("interviews:start_interview", {"candidateId": self.candidate.pk})

        response = self._post(
            "interviews:complete_interview",
            {"candidateId": self.candidate.pk, "answersSubmitted": "yes"},
        )

        self.assertEqual(response.status_code, 400)
        self.candidate.refresh_from_db()
        self.assertIsNone(self.candidate.interview_completed_at)

    def test_unknown_candidate(self):
        response = self._post("interviews:start_interview", {"candidateId": 999999})
        self.assertEqual(response.status_code, 404)
