from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from candidates.models import Candidate, StatusChange
from candidates.status import derive_overall_status
from candidates.transitions import set_status
from exitflow.errors import (
    AttemptLimitExceeded,
    CandidateDropped,
    CandidateNotFound,
    ConcurrentModification,
    InvalidCallStatus,
    MissingScheduledDate,
    UnexpectedScheduledDate,
)
from followups.models import FollowupAttempt
from followups.services import record_followup
from projects.models import Company, Project

CallStatus = FollowupAttempt.CallStatus
Status = Candidate.OverallStatus

SCHEDULED_AT = datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)


def _make_project(**kwargs) -> Project:
    company = Company.objects.create(name="Acme Corp")
    return Project.objects.create(company=company, name="Q1 Exit Interviews", **kwargs)


def _make_candidate(project=None, **kwargs) -> Candidate:
    defaults = {"name": "Ravi Kumar", "email": "ravi@example.com", "max_followup_attempts": 4}
    defaults.update(kwargs)
    return Candidate.objects.create(project=project or _make_project(), **defaults)


class RecordFollowupScenarioTests(TestCase):
    def setUp(self):
        self.operator = get_user_model().objects.create_user(username="operator", password="pw")
        self.candidate = _make_candidate()

    def _record(self, call_status, **kwargs):
        return record_followup(self.candidate.pk, call_status, attempted_by=self.operator, **kwargs)

    def test_first_busy_attempt_moves_new_candidate_to_attempting(self):
        candidate = self._record(CallStatus.BUSY)

        self.assertEqual(candidate.overall_status, Status.ATTEMPTING)
        attempt = candidate.followup_attempts.get()
        self.assertEqual(attempt.attempt_number, 1)
        self.assertEqual(attempt.attempted_by, self.operator)

    def test_agreed_second_attempt_schedules_interview(self):
        self._record(CallStatus.BUSY)
        candidate = self._record(CallStatus.ANSWERED_AGREED, scheduled_interview_date=SCHEDULED_AT)

        candidate.refresh_from_db()
        self.assertEqual(candidate.overall_status, Status.SCHEDULED)
        self.assertEqual(candidate.interview_scheduled_date, SCHEDULED_AT)
        self.assertEqual(candidate.interview_phase, "SCHEDULED")
        attempt = candidate.followup_attempts.get(attempt_number=2)
        self.assertEqual(attempt.scheduled_interview_date, SCHEDULED_AT)

    def test_final_allowed_attempt_without_agreement_drops_candidate(self):
        for _ in range(3):
            self._record(CallStatus.NOT_ANSWERING)
        candidate = self._record(CallStatus.SWITCHED_OFF)

        self.assertEqual(candidate.overall_status, Status.DROPPED)
        self.assertEqual(candidate.followup_attempts.count(), 4)

    def test_recording_after_auto_drop_is_rejected(self):
        for _ in range(4):
            self._record(CallStatus.NOT_ANSWERING)

        with self.assertRaises(CandidateDropped):
            self._record(CallStatus.BUSY)
        self.assertEqual(FollowupAttempt.objects.filter(candidate=self.candidate).count(), 4)

    def test_restore_after_exhaustion_permits_one_more_attempt(self):
        for _ in range(3):
            self._record(CallStatus.NOT_ANSWERING)
        self._record(CallStatus.SWITCHED_OFF)

        restored = set_status(self.candidate.pk, Status.ATTEMPTING, changed_by=self.operator)
        self.assertEqual(restored.overall_status, Status.ATTEMPTING)
        self.assertEqual(restored.max_followup_attempts, 5)

        candidate = self._record(CallStatus.ANSWERED_AGREED, scheduled_interview_date=SCHEDULED_AT)
        self.assertEqual(candidate.overall_status, Status.SCHEDULED)
        self.assertFalse(candidate.status_overridden)
        self.assertEqual(candidate.followup_attempts.last().attempt_number, 5)

    def test_restored_candidate_is_dropped_again_when_extra_attempt_fails(self):
        for _ in range(4):
            self._record(CallStatus.NOT_ANSWERING)
        set_status(self.candidate.pk, Status.ATTEMPTING)

        candidate = self._record(CallStatus.BUSY)

        self.assertEqual(candidate.overall_status, Status.DROPPED)
        with self.assertRaises(CandidateDropped):
            self._record(CallStatus.BUSY)

    def test_declined_drops_immediately(self):
        candidate = self._record(CallStatus.ANSWERED_DECLINED)
        self.assertEqual(candidate.overall_status, Status.DROPPED)

    def test_wrong_number_drops_immediately(self):
        self._record(CallStatus.BUSY)
        candidate = self._record(CallStatus.WRONG_NUMBER)
        self.assertEqual(candidate.overall_status, Status.DROPPED)

    def test_middle_attempt_leaves_status_unchanged(self):
        self._record(CallStatus.BUSY)
        changes_before = StatusChange.objects.filter(candidate=self.candidate).count()

        candidate = self._record(CallStatus.CALLBACK_REQUESTED, notes="Call after 6pm")

        self.assertEqual(candidate.overall_status, Status.ATTEMPTING)
        self.assertEqual(StatusChange.objects.filter(candidate=self.candidate).count(), changes_before)
        self.assertEqual(candidate.followup_attempts.last().notes, "Call after 6pm")

    def test_status_changes_are_audited_with_operator(self):
        self._record(CallStatus.BUSY)

        change = self.candidate.status_changes.get()
        self.assertEqual(change.from_status, Status.NEW)
        self.assertEqual(change.to_status, Status.ATTEMPTING)
        self.assertEqual(change.changed_by, self.operator)
        self.assertFalse(change.is_override)


class RecordFollowupBoundaryTests(TestCase):
    def setUp(self):
        self.candidate = _make_candidate()

    def test_agreed_without_date_fails_regardless_of_attempt_number(self):
        for expected_count in range(3):
            with self.assertRaises(MissingScheduledDate):
                record_followup(self.candidate.pk, CallStatus.ANSWERED_AGREED)
            self.assertEqual(self.candidate.followup_attempts.count(), expected_count)
            record_followup(self.candidate.pk, CallStatus.BUSY)

    def test_agreed_without_date_fails_before_candidate_lookup(self):
        with self.assertRaises(MissingScheduledDate):
            record_followup(999999, CallStatus.ANSWERED_AGREED)

    def test_scheduled_date_rejected_for_other_outcomes(self):
        with self.assertRaises(UnexpectedScheduledDate):
            record_followup(self.candidate.pk, CallStatus.BUSY, scheduled_interview_date=SCHEDULED_AT)
        self.assertFalse(self.candidate.followup_attempts.exists())

    def test_unknown_call_status_rejected(self):
        with self.assertRaises(InvalidCallStatus):
            record_followup(self.candidate.pk, "VOICEMAIL")

    def test_unknown_candidate(self):
        with self.assertRaises(CandidateNotFound):
            record_followup(999999, CallStatus.BUSY)

    def test_inactive_candidate_is_not_found(self):
        self.candidate.is_active = False
        self.candidate.save()
        with self.assertRaises(CandidateNotFound):
            record_followup(self.candidate.pk, CallStatus.BUSY)

    def test_max_th_not_answering_attempt_drops(self):
        candidate = _make_candidate(email="two@example.com", max_followup_attempts=2)
        record_followup(candidate.pk, CallStatus.NOT_ANSWERING)
        candidate = record_followup(candidate.pk, CallStatus.NOT_ANSWERING)
        self.assertEqual(candidate.overall_status, Status.DROPPED)

    def test_single_attempt_allowance_drops_on_first_failure(self):
        candidate = _make_candidate(email="one@example.com", max_followup_attempts=1)
        candidate = record_followup(candidate.pk, CallStatus.BUSY)
        self.assertEqual(candidate.overall_status, Status.DROPPED)

    def test_agreement_on_final_attempt_schedules_instead_of_dropping(self):
        candidate = _make_candidate(email="last@example.com", max_followup_attempts=2)
        record_followup(candidate.pk, CallStatus.BUSY)
        candidate = record_followup(
            candidate.pk,
            CallStatus.ANSWERED_AGREED,
            scheduled_interview_date=SCHEDULED_AT,
        )
        self.assertEqual(candidate.overall_status, Status.SCHEDULED)

    def test_limit_exceeded_when_override_keeps_candidate_active(self):
        for _ in range(4):
            record_followup(self.candidate.pk, CallStatus.BUSY)
        # Forcing a non-dropped status while leaving the allowance untouched.
        Candidate.objects.filter(pk=self.candidate.pk).update(overall_status=Status.ATTEMPTING)

        with self.assertRaises(AttemptLimitExceeded):
            record_followup(self.candidate.pk, CallStatus.BUSY)
        self.assertEqual(self.candidate.followup_attempts.count(), 4)

    def test_attempt_count_never_exceeds_allowance(self):
        for _ in range(6):
            try:
                record_followup(self.candidate.pk, CallStatus.NOT_ANSWERING)
            except (CandidateDropped, AttemptLimitExceeded):
                pass
        self.candidate.refresh_from_db()
        self.assertLessEqual(
            self.candidate.followup_attempts.count(),
            self.candidate.max_followup_attempts,
        )

    def test_attempt_numbers_are_contiguous_from_one(self):
        record_followup(self.candidate.pk, CallStatus.BUSY)
        record_followup(self.candidate.pk, CallStatus.SWITCHED_OFF)
        record_followup(self.candidate.pk, CallStatus.CALLBACK_REQUESTED)

        numbers = list(self.candidate.followup_attempts.values_list("attempt_number", flat=True))
        self.assertEqual(numbers, [1, 2, 3])

    def test_stale_attempt_number_is_concurrent_modification(self):
        record_followup(self.candidate.pk, CallStatus.BUSY, attempt_number=1)

        with self.assertRaises(ConcurrentModification):
            record_followup(self.candidate.pk, CallStatus.BUSY, attempt_number=1)
        self.assertEqual(self.candidate.followup_attempts.count(), 1)

    def test_matching_attempt_number_is_accepted(self):
        record_followup(self.candidate.pk, CallStatus.BUSY, attempt_number=1)
        candidate = record_followup(self.candidate.pk, CallStatus.BUSY, attempt_number=2)
        self.assertEqual(candidate.followup_attempts.count(), 2)

    @override_settings(DEFAULT_MAX_FOLLOWUP_ATTEMPTS=6)
    def test_default_allowance_comes_from_settings(self):
        project = _make_project()
        candidate = Candidate.objects.create(project=project, name="Mei", email="mei@example.com")
        self.assertEqual(project.max_followup_attempts, 6)
        self.assertEqual(candidate.max_followup_attempts, 6)


class RecordFollowupDerivationTests(TestCase):
    """After every recorded outcome the stored status equals the derived one."""

    def test_every_outcome_matches_derivation(self):
        sequences = [
            [CallStatus.BUSY],
            [CallStatus.BUSY, CallStatus.NOT_ANSWERING],
            [CallStatus.ANSWERED_DECLINED],
            [CallStatus.SWITCHED_OFF, CallStatus.WRONG_NUMBER],
            [CallStatus.BUSY] * 4,
            [CallStatus.BUSY, CallStatus.ANSWERED_AGREED],
            [CallStatus.ANSWERED_AGREED, CallStatus.BUSY],
        ]
        project = _make_project()
        for index, sequence in enumerate(sequences):
            candidate = _make_candidate(project=project, email=f"c{index}@example.com")
            for call_status in sequence:
                date = SCHEDULED_AT if call_status == CallStatus.ANSWERED_AGREED else None
                candidate = record_followup(candidate.pk, call_status, scheduled_interview_date=date)
                candidate.refresh_from_db()
                self.assertEqual(
                    candidate.overall_status,
                    derive_overall_status(candidate),
                    msg=f"sequence={sequence} after {call_status}",
                )


class RecordFollowupAtomicityTests(TestCase):
    def test_failed_status_transition_rolls_back_the_attempt(self):
        candidate = _make_candidate()

        with patch("followups.services.transition_status", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                record_followup(
                    candidate.pk,
                    CallStatus.ANSWERED_AGREED,
                    scheduled_interview_date=SCHEDULED_AT,
                )

        candidate.refresh_from_db()
        self.assertFalse(candidate.followup_attempts.exists())
        self.assertIsNone(candidate.interview_scheduled_date)
        self.assertEqual(candidate.overall_status, Status.NEW)


class UpdateFollowupApiTests(TestCase):
    def setUp(self):
        self.operator = get_user_model().objects.create_user(username="operator", password="pw")
        self.client.force_login(self.operator)
        self.candidate = _make_candidate()
        self.url = reverse("followups:update_followup")

    def _post(self, payload):
        return self.client.post(self.url, payload, content_type="application/json")

    def test_records_attempt_for_authenticated_operator(self):
        response = self._post({
            "candidateId": self.candidate.pk,
            "attemptNumber": 1,
            "callStatus": "ANSWERED_AGREED",
            "scheduledInterviewDate": "2025-03-01T10:00:00Z",
        })

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["overallStatus"], "SCHEDULED")
        self.assertEqual(data["interviewDetails"]["scheduledDate"], "2025-03-01T10:00:00+00:00")
        self.assertEqual(data["followupAttempts"][0]["attemptedBy"]["username"], "operator")

    def test_fractional_attempt_number_rejected(self):
        record_followup(self.candidate.pk, FollowupAttempt.CallStatus.BUSY)

        response = self._post({"candidateId": self.candidate.pk, "attemptNumber": 2.7, "callStatus": "BUSY"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidPayload")
        self.assertEqual(self.candidate.followup_attempts.count(), 1)

    def test_missing_scheduled_date(self):
        response = self._post({"candidateId": self.candidate.pk, "callStatus": "ANSWERED_AGREED"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "MissingScheduledDate")

    def test_invalid_scheduled_date(self):
        response = self._post({
            "candidateId": self.candidate.pk,
            "callStatus": "ANSWERED_AGREED",
            "scheduledInterviewDate": "next tuesday",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidPayload")

    def test_dropped_candidate_is_conflict(self):
        self._post({"candidateId": self.candidate.pk, "callStatus": "WRONG_NUMBER"})

        response = self._post({"candidateId": self.candidate.pk, "callStatus": "BUSY"})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "CandidateDropped")

    def test_stale_attempt_number_is_conflict(self):
        self._post({"candidateId": self.candidate.pk, "attemptNumber": 1, "callStatus": "BUSY"})

        response = self._post({"candidateId": self.candidate.pk, "attemptNumber": 1, "callStatus": "BUSY"})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "ConcurrentModification")

    def test_missing_call_status(self):
        response = self._post({"candidateId": self.candidate.pk})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidPayload")
