import io
import tempfile
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.urls import reverse

from candidates import assignment
from candidates.assignment import assign_interviewer, auto_assign_interviewers, plan_distribution
from candidates.models import Candidate, StatusChange
from candidates.services import delete_candidate, import_candidates, read_candidate_csv
from candidates.status import derive_overall_status, is_status_consistent
from candidates.transitions import mark_report_generated, set_status
from exitflow.errors import (
    CandidateNotFound,
    ConcurrentModification,
    InterviewerNotFound,
    InvalidPhaseTransition,
    InvalidStatus,
    NoInterviewersAvailable,
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


def _make_user(username: str):
    return get_user_model().objects.create_user(username=username, password="test-pass-123")


def _attempt(number: int, call_status: str) -> FollowupAttempt:
    return FollowupAttempt(attempt_number=number, call_status=call_status)


class StatusDerivationTests(TestCase):
    """Derivation runs on unsaved instances; no attempts are read from the database."""

    def _candidate(self, **kwargs) -> Candidate:
        return Candidate(name="X", email="x@example.com", max_followup_attempts=4, **kwargs)

    def test_new_without_attempts_or_interviewer(self):
        self.assertEqual(derive_overall_status(self._candidate(), []), Status.NEW)

    def test_assigned_without_attempts(self):
        candidate = self._candidate(assigned_interviewer_id=7)
        self.assertEqual(derive_overall_status(candidate, []), Status.ASSIGNED)

    def test_attempting_with_unscheduled_attempts(self):
        attempts = [_attempt(1, CallStatus.BUSY), _attempt(2, CallStatus.SWITCHED_OFF)]
        self.assertEqual(derive_overall_status(self._candidate(), attempts), Status.ATTEMPTING)

    def test_scheduled(self):
        candidate = self._candidate(interview_scheduled_date=SCHEDULED_AT)
        attempts = [_attempt(1, CallStatus.ANSWERED_AGREED)]
        self.assertEqual(derive_overall_status(candidate, attempts), Status.SCHEDULED)

    def test_in_progress(self):
        candidate = self._candidate(
            interview_scheduled_date=SCHEDULED_AT,
            interview_started_at=SCHEDULED_AT,
        )
        self.assertEqual(
            derive_overall_status(candidate, [_attempt(1, CallStatus.ANSWERED_AGREED)]),
            Status.IN_PROGRESS,
        )

    def test_completed_with_and_without_report(self):
        candidate = self._candidate(
            interview_scheduled_date=SCHEDULED_AT,
            interview_started_at=SCHEDULED_AT,
            interview_completed_at=SCHEDULED_AT + timedelta(minutes=30),
        )
        attempts = [_attempt(1, CallStatus.ANSWERED_AGREED)]
        self.assertEqual(derive_overall_status(candidate, attempts), Status.INTERVIEWED)

        candidate.report_id = "rep_1"
        self.assertEqual(derive_overall_status(candidate, attempts), Status.REPORT_GENERATED)

    def test_terminal_outcome_derives_dropped(self):
        attempts = [_attempt(1, CallStatus.BUSY), _attempt(2, CallStatus.WRONG_NUMBER)]
        self.assertEqual(derive_overall_status(self._candidate(), attempts), Status.DROPPED)

    def test_exhausted_allowance_derives_dropped(self):
        attempts = [_attempt(n, CallStatus.NOT_ANSWERING) for n in range(1, 5)]
        self.assertEqual(derive_overall_status(self._candidate(), attempts), Status.DROPPED)

    def test_agreement_on_last_allowed_attempt_is_not_exhaustion(self):
        candidate = self._candidate(interview_scheduled_date=SCHEDULED_AT)
        attempts = [_attempt(n, CallStatus.BUSY) for n in range(1, 4)]
        attempts.append(_attempt(4, CallStatus.ANSWERED_AGREED))
        self.assertEqual(derive_overall_status(candidate, attempts), Status.SCHEDULED)

    def test_override_is_authoritative(self):
        candidate = self._candidate(overall_status=Status.DROPPED, status_overridden=True)
        self.assertEqual(derive_overall_status(candidate, []), Status.DROPPED)

    def test_attempt_order_does_not_depend_on_input_order(self):
        attempts = [_attempt(2, CallStatus.ANSWERED_DECLINED), _attempt(1, CallStatus.BUSY)]
        self.assertEqual(derive_overall_status(self._candidate(), attempts), Status.DROPPED)

    def test_outcomes_before_restore_do_not_drop(self):
        candidate = self._candidate(
            interview_scheduled_date=SCHEDULED_AT,
            interview_started_at=SCHEDULED_AT,
            restored_after_attempt=2,
        )
        attempts = [_attempt(1, CallStatus.ANSWERED_AGREED), _attempt(2, CallStatus.ANSWERED_DECLINED)]
        self.assertEqual(derive_overall_status(candidate, attempts), Status.IN_PROGRESS)

    def test_outcome_after_restore_drops_again(self):
        candidate = self._candidate(restored_after_attempt=1)
        attempts = [_attempt(1, CallStatus.ANSWERED_DECLINED), _attempt(2, CallStatus.WRONG_NUMBER)]
        self.assertEqual(derive_overall_status(candidate, attempts), Status.DROPPED)

    def test_derivation_is_deterministic(self):
        candidate = self._candidate(assigned_interviewer_id=3)
        attempts = [_attempt(1, CallStatus.CALLBACK_REQUESTED)]
        results = {derive_overall_status(candidate, attempts) for _ in range(5)}
        self.assertEqual(results, {Status.ATTEMPTING})

    def test_loads_attempts_from_database_when_not_given(self):
        candidate = _make_candidate()
        record_followup(candidate.pk, CallStatus.BUSY)
        candidate.refresh_from_db()
        self.assertEqual(derive_overall_status(candidate), Status.ATTEMPTING)
        self.assertTrue(is_status_consistent(candidate))


class ManualOverrideTests(TestCase):
    def setUp(self):
        self.operator = _make_user("operator")
        self.candidate = _make_candidate()

    def test_any_status_may_be_forced(self):
        candidate = set_status(self.candidate.pk, Status.REPORT_GENERATED, changed_by=self.operator)

        self.assertEqual(candidate.overall_status, Status.REPORT_GENERATED)
        self.assertTrue(candidate.status_overridden)
        change = candidate.status_changes.first()
        self.assertTrue(change.is_override)
        self.assertEqual(change.from_status, Status.NEW)
        self.assertEqual(change.changed_by, self.operator)

    def test_override_leaves_attempts_and_interview_untouched(self):
        record_followup(self.candidate.pk, CallStatus.ANSWERED_AGREED, scheduled_interview_date=SCHEDULED_AT)

        candidate = set_status(self.candidate.pk, Status.NEW)

        self.assertEqual(candidate.followup_attempts.count(), 1)
        self.assertEqual(candidate.interview_scheduled_date, SCHEDULED_AT)

    def test_override_is_consistent_with_derivation(self):
        candidate = set_status(self.candidate.pk, Status.INTERVIEWED)
        self.assertTrue(is_status_consistent(candidate))

    def test_restore_with_remaining_allowance_keeps_limit(self):
        record_followup(self.candidate.pk, CallStatus.ANSWERED_DECLINED)

        candidate = set_status(self.candidate.pk, Status.ATTEMPTING)

        self.assertEqual(candidate.max_followup_attempts, 4)
        candidate = record_followup(self.candidate.pk, CallStatus.BUSY)
        self.assertEqual(candidate.overall_status, Status.ATTEMPTING)

    def test_restore_records_attempts_already_made(self):
        record_followup(self.candidate.pk, CallStatus.BUSY)
        record_followup(self.candidate.pk, CallStatus.WRONG_NUMBER)

        candidate = set_status(self.candidate.pk, Status.ATTEMPTING)

        self.assertEqual(candidate.restored_after_attempt, 2)

    def test_reset_to_new_then_assigned_follows_history(self):
        interviewer = _make_user("interviewer")
        record_followup(self.candidate.pk, CallStatus.ANSWERED_DECLINED)
        set_status(self.candidate.pk, Status.NEW)

        assign_interviewer([self.candidate.pk], interviewer.pk, assigned_by=self.operator)

        candidate = Candidate.objects.get(pk=self.candidate.pk)
        self.assertEqual(candidate.overall_status, Status.ATTEMPTING)
        self.assertFalse(candidate.status_overridden)
        self.assertTrue(is_status_consistent(candidate))

    def test_unknown_status_rejected(self):
        with self.assertRaises(InvalidStatus):
            set_status(self.candidate.pk, "ARCHIVED")
        self.assertFalse(StatusChange.objects.exists())

    def test_unknown_candidate(self):
        with self.assertRaises(CandidateNotFound):
            set_status(999999, Status.NEW)

    def test_setting_same_status_is_still_audited(self):
        set_status(self.candidate.pk, Status.NEW, note="Confirmed by HR")

        change = self.candidate.status_changes.get()
        self.assertEqual(change.note, "Confirmed by HR")
        self.assertTrue(change.is_override)


class ReportLinkTests(TestCase):
    def test_links_report_to_completed_interview(self):
        candidate = _make_candidate(
            interview_scheduled_date=SCHEDULED_AT,
            interview_started_at=SCHEDULED_AT,
            interview_completed_at=SCHEDULED_AT + timedelta(minutes=20),
            overall_status=Status.INTERVIEWED,
        )

        candidate = mark_report_generated(candidate.pk, "rep_42")

        self.assertEqual(candidate.overall_status, Status.REPORT_GENERATED)
        self.assertEqual(candidate.report_id, "rep_42")
        self.assertIsNotNone(candidate.report_generated_at)

    def test_rejects_incomplete_interview(self):
        candidate = _make_candidate(interview_scheduled_date=SCHEDULED_AT)

        with self.assertRaises(InvalidPhaseTransition):
            mark_report_generated(candidate.pk, "rep_42")

        candidate.refresh_from_db()
        self.assertIsNone(candidate.report_id)

    def test_keeps_manual_drop_after_completion(self):
        candidate = _make_candidate(
            interview_scheduled_date=SCHEDULED_AT,
            interview_started_at=SCHEDULED_AT,
            interview_completed_at=SCHEDULED_AT + timedelta(minutes=20),
            overall_status=Status.INTERVIEWED,
        )
        set_status(candidate.pk, Status.DROPPED)

        candidate = mark_report_generated(candidate.pk, "rep_42")

        candidate.refresh_from_db()
        self.assertEqual(candidate.report_id, "rep_42")
        self.assertEqual(candidate.overall_status, Status.DROPPED)
        self.assertTrue(candidate.status_overridden)
        self.assertTrue(is_status_consistent(candidate))


class PlanDistributionTests(TestCase):
    def test_contiguous_blocks_of_ceil_size(self):
        plan = plan_distribution([1, 2, 3, 4, 5, 6, 7], [10, 20, 30])
        self.assertEqual(plan, [(10, [1, 2, 3]), (20, [4, 5, 6]), (30, [7])])

    def test_covers_every_candidate_exactly_once(self):
        candidate_ids = list(range(1, 24))
        plan = plan_distribution(candidate_ids, [1, 2, 3, 4, 5])
        assigned = [cid for _, block in plan for cid in block]
        self.assertEqual(sorted(assigned), candidate_ids)
        self.assertEqual(len(assigned), len(set(assigned)))

    def test_deterministic(self):
        self.assertEqual(
            plan_distribution([5, 3, 9, 1], [2, 1]),
            plan_distribution([5, 3, 9, 1], [2, 1]),
        )

    def test_more_interviewers_than_candidates(self):
        plan = plan_distribution([1, 2], [10, 20, 30])
        self.assertEqual(plan, [(10, [1]), (20, [2]), (30, [])])

    def test_no_candidates(self):
        self.assertEqual(plan_distribution([], [10, 20]), [(10, []), (20, [])])

    def test_no_interviewers(self):
        with self.assertRaises(NoInterviewersAvailable):
            plan_distribution([1, 2, 3], [])


class AssignInterviewerTests(TestCase):
    def setUp(self):
        self.manager = _make_user("manager")
        self.interviewer = _make_user("interviewer")
        self.project = _make_project()

    def test_assigns_and_advances_new_candidates(self):
        first = _make_candidate(self.project, email="a@example.com")
        second = _make_candidate(self.project, email="b@example.com")
        record_followup(second.pk, CallStatus.BUSY)

        result = assign_interviewer([second.pk, first.pk], self.interviewer.pk, assigned_by=self.manager)

        self.assertEqual([c.pk for c in result], [second.pk, first.pk])
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.assigned_interviewer, self.interviewer)
        self.assertEqual(first.assigned_by, self.manager)
        self.assertIsNotNone(first.assigned_at)
        self.assertEqual(first.overall_status, Status.ASSIGNED)
        self.assertEqual(second.overall_status, Status.ATTEMPTING)
        self.assertTrue(is_status_consistent(first))
        self.assertTrue(is_status_consistent(second))

    def test_missing_candidate_writes_nothing(self):
        candidate = _make_candidate(self.project)

        with self.assertRaises(CandidateNotFound):
            assign_interviewer([candidate.pk, 999999], self.interviewer.pk)

        candidate.refresh_from_db()
        self.assertIsNone(candidate.assigned_interviewer)
        self.assertEqual(candidate.overall_status, Status.NEW)

    def test_unknown_interviewer(self):
        candidate = _make_candidate(self.project)
        with self.assertRaises(InterviewerNotFound):
            assign_interviewer([candidate.pk], 999999)


class AutoAssignInterviewersTests(TestCase):
    def setUp(self):
        self.manager = _make_user("manager")
        self.interviewers = [_make_user(f"interviewer{i}") for i in range(3)]
        self.project = _make_project()
        self.candidates = [
            _make_candidate(self.project, email=f"c{i}@example.com") for i in range(7)
        ]

    def _ids(self):
        return [u.pk for u in self.interviewers]

    def test_even_distribution_in_creation_order(self):
        summary = auto_assign_interviewers(self.project.pk, self._ids(), assigned_by=self.manager)

        self.assertEqual(summary["total_candidates"], 7)
        self.assertEqual(
            [d["candidate_count"] for d in summary["distribution"]],
            [3, 3, 1],
        )
        self.assertEqual(summary["failures"], [])
        first_block = Candidate.objects.filter(pk__in=[c.pk for c in self.candidates[:3]])
        self.assertEqual(
            set(first_block.values_list("assigned_interviewer", flat=True)),
            {self.interviewers[0].pk},
        )
        self.assertFalse(Candidate.objects.filter(project=self.project, assigned_interviewer__isnull=True).exists())
        self.assertEqual(
            Candidate.objects.filter(project=self.project, overall_status=Status.ASSIGNED).count(),
            7,
        )

    def test_skips_assigned_and_inactive_candidates(self):
        assign_interviewer([self.candidates[0].pk], self.interviewers[0].pk)
        self.candidates[1].is_active = False
        self.candidates[1].save()

        summary = auto_assign_interviewers(self.project.pk, self._ids())

        self.assertEqual(summary["total_candidates"], 5)
        self.assertEqual(sum(d["candidate_count"] for d in summary["distribution"]), 5)

    def test_failed_write_is_reported_per_candidate(self):
        failing_pk = self.candidates[4].pk
        real_apply = assignment._apply_assignment

        def flaky_apply(candidate, interviewer, assigned_by):
            if candidate.pk == failing_pk:
                raise ConcurrentModification(candidate_id=candidate.pk)
            return real_apply(candidate, interviewer, assigned_by)

        with patch("candidates.assignment._apply_assignment", side_effect=flaky_apply):
            summary = auto_assign_interviewers(self.project.pk, self._ids())

        self.assertEqual(summary["total_candidates"], 7)
        self.assertEqual(len(summary["failures"]), 1)
        self.assertEqual(summary["failures"][0]["candidate_id"], failing_pk)
        self.assertEqual(summary["failures"][0]["error"], "ConcurrentModification")
        self.assertEqual(sum(d["candidate_count"] for d in summary["distribution"]), 6)
        self.assertEqual(
            Candidate.objects.filter(project=self.project, assigned_interviewer__isnull=False).count(),
            6,
        )

    def test_no_interviewers(self):
        with self.assertRaises(NoInterviewersAvailable):
            auto_assign_interviewers(self.project.pk, [])
        self.assertFalse(Candidate.objects.filter(assigned_interviewer__isnull=False).exists())

    def test_unknown_interviewer_writes_nothing(self):
        with self.assertRaises(InterviewerNotFound):
            auto_assign_interviewers(self.project.pk, [self.interviewers[0].pk, 999999])
        self.assertFalse(Candidate.objects.filter(assigned_interviewer__isnull=False).exists())


def _sheet_row(**overrides) -> dict:
    row = {
        "Name": "Priya Sharma",
        "Email ID": "Priya.Sharma@example.com",
        "Nature of Employment": "Permanent",
        "Location": "Pune",
        "Grade Level": "L3",
        "Designation": "Analyst",
        "Department": "Finance",
        "Reporting to": "Anil Mehta",
        "Date of Joining": "15-08-2021",
        "DOB": "1994-02-11",
        "Contact Number": 9876543210.0,
        "Experience in Org": "3.5",
        "Gender": "female",
        "Resignation Date": 45292,
        "Quarters": "Q1",
        "Last Working Day": "31/01/2024",
    }
    row.update(overrides)
    return row


class ImportCandidatesTests(TestCase):
    def setUp(self):
        self.uploader = _make_user("hr")
        self.project = _make_project(max_followup_attempts=3, questionnaire_id="q-9")

    def test_creates_candidates_with_project_defaults(self):
        summary = import_candidates(self.project, [_sheet_row()], uploaded_by=self.uploader)

        self.assertEqual(summary["success_count"], 1)
        self.assertEqual(summary["errors"], [])
        candidate = Candidate.objects.get(project=self.project)
        self.assertEqual(candidate.email, "priya.sharma@example.com")
        self.assertEqual(candidate.contact_number, "9876543210")
        self.assertEqual(candidate.date_of_joining, date(2021, 8, 15))
        self.assertEqual(candidate.date_of_birth, date(1994, 2, 11))
        self.assertEqual(candidate.resignation_date, date(2024, 1, 1))
        self.assertEqual(candidate.last_working_day, date(2024, 1, 31))
        self.assertEqual(candidate.experience_in_org, Decimal("3.5"))
        self.assertEqual(candidate.gender, Candidate.Gender.FEMALE)
        self.assertEqual(candidate.max_followup_attempts, 3)
        self.assertEqual(candidate.questionnaire_id, "q-9")
        self.assertEqual(candidate.uploaded_by, self.uploader)
        self.assertEqual(candidate.upload_batch_id, summary["upload_batch_id"])
        self.assertEqual(candidate.overall_status, Status.NEW)

    def test_invalid_row_rejects_whole_upload(self):
        rows = [
            _sheet_row(),
            _sheet_row(**{"Email ID": "not-an-email", "Date of Joining": "2021/31/31"}),
        ]

        summary = import_candidates(self.project, rows)

        self.assertEqual(summary["success_count"], 0)
        self.assertIsNone(summary["upload_batch_id"])
        self.assertEqual(len(summary["errors"]), 1)
        self.assertEqual(summary["errors"][0]["row_number"], 3)
        self.assertEqual(len(summary["errors"][0]["errors"]), 2)
        self.assertFalse(Candidate.objects.exists())

    def test_missing_name_and_email(self):
        summary = import_candidates(self.project, [_sheet_row(Name="", **{"Email ID": None})])
        self.assertEqual(
            summary["errors"][0]["errors"],
            ["Name: required", "Email ID: required"],
        )

    def test_duplicates_within_upload_and_project(self):
        _make_candidate(self.project, email="existing@example.com")
        rows = [
            _sheet_row(**{"Email ID": "new@example.com"}),
            _sheet_row(**{"Email ID": "NEW@example.com"}),
            _sheet_row(**{"Email ID": "existing@example.com"}),
        ]

        summary = import_candidates(self.project, rows)

        self.assertEqual(
            summary["duplicates"],
            [
                {"row_number": 3, "email": "new@example.com"},
                {"row_number": 4, "email": "existing@example.com"},
            ],
        )
        self.assertEqual(Candidate.objects.filter(project=self.project).count(), 1)

    def test_same_email_allowed_in_another_project(self):
        _make_candidate(_make_project(), email="priya.sharma@example.com")
        summary = import_candidates(self.project, [_sheet_row()])
        self.assertEqual(summary["success_count"], 1)

    def test_empty_upload(self):
        with self.assertRaises(ValueError):
            import_candidates(self.project, [])

    def test_read_csv_with_bom(self):
        content = "\ufeffName,Email ID,Date of Joining\nAsha,asha@example.com,01-02-2020\n".encode("utf-8")
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "rows.csv"
            path.write_bytes(content)
            with open(path, "rb") as fh:
                rows = read_candidate_csv(fh)
        self.assertEqual(rows, [{"Name": "Asha", "Email ID": "asha@example.com", "Date of Joining": "01-02-2020"}])


class ImportCandidatesCommandTests(TestCase):
    def setUp(self):
        self.project = _make_project()
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "leavers.csv"

    def tearDown(self):
        self.tmp.cleanup()

    def test_imports_csv(self):
        _make_user("hr")
        self.path.write_text("Name,Email ID\nAsha,asha@example.com\nBen,ben@example.com\n", encoding="utf-8")

        call_command(
            "import_candidates",
            file=str(self.path),
            project_id=self.project.pk,
            uploaded_by="hr",
            stdout=io.StringIO(),
        )

        self.assertEqual(Candidate.objects.filter(project=self.project).count(), 2)
        self.assertEqual(Candidate.objects.first().uploaded_by.username, "hr")

    def test_rejected_import_raises_command_error(self):
        self.path.write_text("Name,Email ID\nAsha,broken\n", encoding="utf-8")

        with self.assertRaises(CommandError):
            call_command(
                "import_candidates",
                file=str(self.path),
                project_id=self.project.pk,
                stdout=io.StringIO(),
            )
        self.assertFalse(Candidate.objects.exists())

    def test_unknown_project(self):
        with self.assertRaises(CommandError):
            call_command("import_candidates", file=str(self.path), project_id=999999)


class CandidateApiTests(TestCase):
    def setUp(self):
        self.user = _make_user("operator")
        self.client.force_login(self.user)
        self.project = _make_project()
        self.candidate = _make_candidate(self.project)

    def _post(self, name, payload):
        return self.client.post(reverse(name), payload, content_type="application/json")

    def test_requires_login(self):
        self.client.logout()
        response = self._post("candidates:search_by_id", {"id": self.candidate.pk})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "NotAuthenticated")

    def test_get_not_allowed(self):
        response = self.client.get(reverse("candidates:search_by_id"))
        self.assertEqual(response.status_code, 405)

    def test_search_by_id(self):
        record_followup(self.candidate.pk, CallStatus.ANSWERED_AGREED, scheduled_interview_date=SCHEDULED_AT)

        response = self._post("candidates:search_by_id", {"id": str(self.candidate.pk)})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        data = body["data"]
        self.assertEqual(data["overallStatus"], "SCHEDULED")
        self.assertEqual(data["derivedStatus"], "SCHEDULED")
        self.assertEqual(data["interviewDetails"]["phase"], "SCHEDULED")
        self.assertEqual(data["interviewDetails"]["scheduledDate"], "2025-03-01T10:00:00+00:00")
        self.assertEqual(data["followupAttempts"][0]["attemptNumber"], 1)
        self.assertEqual(data["followupAttempts"][0]["callStatus"], "ANSWERED_AGREED")

    def test_search_unknown_candidate(self):
        response = self._post("candidates:search_by_id", {"id": 999999})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "CandidateNotFound", "message": "Candidate #999999 not found."},
        )

    def test_invalid_json(self):
        response = self.client.post(
            reverse("candidates:search_by_id"),
            "{not json",
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidPayload")

    def test_update_status(self):
        response = self._post(
            "candidates:update_status",
            {"candidateId": self.candidate.pk, "overallStatus": "DROPPED", "note": "Left the company"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Status updated to Dropped")
        change = self.candidate.status_changes.get()
        self.assertEqual(change.changed_by, self.user)
        self.assertEqual(change.note, "Left the company")

    def test_update_status_invalid(self):
        response = self._post(
            "candidates:update_status",
            {"candidateId": self.candidate.pk, "overallStatus": "ARCHIVED"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "InvalidStatus")

    def test_assign_interviewer(self):
        interviewer = _make_user("interviewer")
        response = self._post(
            "candidates:assign_interviewer",
            {"candidateIds": [self.candidate.pk], "interviewerId": interviewer.pk},
        )

        self.assertEqual(response.status_code, 200)
        self.candidate.refresh_from_db()
        self.assertEqual(self.candidate.assigned_interviewer, interviewer)
        self.assertEqual(self.candidate.assigned_by, self.user)

    def test_assign_unknown_interviewer(self):
        response = self._post(
            "candidates:assign_interviewer",
            {"candidateIds": [self.candidate.pk], "interviewerId": 999999},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "InterviewerNotFound")

    def test_auto_assign(self):
        interviewer = _make_user("interviewer")
        response = self._post(
            "candidates:auto_assign_interviewers",
            {"projectId": self.project.pk, "interviewerIds": [interviewer.pk]},
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["totalCandidates"], 1)
        self.assertEqual(data["distribution"], [{"interviewerId": interviewer.pk, "candidateCount": 1}])

    def test_auto_assign_without_interviewers(self):
        response = self._post(
            "candidates:auto_assign_interviewers",
            {"projectId": self.project.pk, "interviewerIds": []},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "NoInterviewersAvailable")

    def test_upload(self):
        response = self._post(
            "candidates:upload",
            {"projectId": self.project.pk, "candidates": [_sheet_row()]},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["successCount"], 1)
        self.assertTrue(Candidate.objects.filter(email="priya.sharma@example.com").exists())

    def test_upload_rejected_rows(self):
        response = self._post(
            "candidates:upload",
            {"projectId": self.project.pk, "candidates": [_sheet_row(**{"Email ID": "ravi@example.com"})]},
        )

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "InvalidUploadRows")
        self.assertEqual(body["data"]["duplicates"], [{"rowNumber": 2, "email": "ravi@example.com"}])

    def test_upload_unknown_project(self):
        response = self._post("candidates:upload", {"projectId": 999999, "candidates": [_sheet_row()]})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "ProjectNotFound")


class DeleteCandidateTests(TestCase):
    def setUp(self):
        self.project = _make_project()
        self.candidate = _make_candidate(self.project)

    def test_soft_delete_hides_candidate_from_lifecycle(self):
        record_followup(self.candidate.pk, CallStatus.BUSY)

        delete_candidate(self.candidate.pk)

        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.is_active)
        self.assertEqual(self.candidate.followup_attempts.count(), 1)
        with self.assertRaises(CandidateNotFound):
            record_followup(self.candidate.pk, CallStatus.BUSY)
        with self.assertRaises(CandidateNotFound):
            set_status(self.candidate.pk, Status.NEW)

    def test_soft_deleted_candidate_is_skipped_by_auto_assign(self):
        other = _make_candidate(self.project, email="other@example.com")
        interviewer = _make_user("interviewer")
        delete_candidate(self.candidate.pk)

        summary = auto_assign_interviewers(self.project.pk, [interviewer.pk])

        self.assertEqual(summary["total_candidates"], 1)
        other.refresh_from_db()
        self.assertEqual(other.assigned_interviewer, interviewer)

    def test_soft_deleted_email_can_be_uploaded_again(self):
        delete_candidate(self.candidate.pk)

        summary = import_candidates(self.project, [_sheet_row(**{"Email ID": "ravi@example.com"})])

        self.assertEqual(summary["success_count"], 1)

    def test_deleting_twice_is_not_found(self):
        delete_candidate(self.candidate.pk)
        with self.assertRaises(CandidateNotFound):
            delete_candidate(self.candidate.pk)

    def test_hard_delete_removes_history(self):
        record_followup(self.candidate.pk, CallStatus.WRONG_NUMBER)

        delete_candidate(self.candidate.pk, hard=True)

        self.assertFalse(Candidate.objects.filter(pk=self.candidate.pk).exists())
        self.assertFalse(FollowupAttempt.objects.exists())
        self.assertFalse(StatusChange.objects.exists())


class CandidateSearchApiTests(TestCase):
    def setUp(self):
        self.user = _make_user("operator")
        self.client.force_login(self.user)
        self.interviewer = _make_user("interviewer")
        self.project = _make_project()
        self.alice = _make_candidate(self.project, name="Alice Rao", email="alice@example.com")
        self.bob = _make_candidate(self.project, name="Bob Iyer", email="bob@example.com")
        self.carol = _make_candidate(self.project, name="Carol Das", email="carol@example.com")
        self.elsewhere = _make_candidate(name="Dev Shah", email="dev@example.com")

    def _search(self, payload):
        return self.client.post(reverse("candidates:search"), payload, content_type="application/json")

    def _names(self, response):
        return [c["name"] for c in response.json()["data"]["candidates"]]

    def test_filters_by_project_and_sorts(self):
        response = self._search({"projectId": self.project.pk, "sort": {"name": 1}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._names(response), ["Alice Rao", "Bob Iyer", "Carol Das"])
        self.assertEqual(response.json()["data"]["pagination"]["totalCount"], 3)

    def test_filters_by_status_and_interviewer(self):
        assign_interviewer([self.bob.pk], self.interviewer.pk)
        record_followup(self.carol.pk, CallStatus.BUSY)

        by_interviewer = self._search({"assignedInterviewerId": self.interviewer.pk})
        by_status = self._search({"overallStatus": "ATTEMPTING"})

        self.assertEqual(self._names(by_interviewer), ["Bob Iyer"])
        self.assertEqual(self._names(by_status), ["Carol Das"])
        self.assertEqual(by_status.json()["data"]["candidates"][0]["derivedStatus"], "ATTEMPTING")

    def test_text_search(self):
        response = self._search({"search": "  IYER "})
        self.assertEqual(self._names(response), ["Bob Iyer"])

    def test_pagination(self):
        response = self._search({"projectId": self.project.pk, "sort": {"name": -1}, "page": 2, "limit": 2})

        data = response.json()["data"]
        self.assertEqual([c["name"] for c in data["candidates"]], ["Alice Rao"])
        self.assertEqual(
            data["pagination"],
            {
                "currentPage": 2,
                "totalPages": 2,
                "totalCount": 3,
                "limit": 2,
                "hasNextPage": False,
                "hasPrevPage": True,
            },
        )

    def test_page_past_the_end_is_empty(self):
        response = self._search({"projectId": self.project.pk, "page": 5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._names(response), [])

    def test_excludes_deleted_candidates(self):
        delete_candidate(self.alice.pk)
        response = self._search({"projectId": self.project.pk})
        self.assertNotIn("Alice Rao", self._names(response))

    def test_invalid_queries(self):
        for payload in (
            {"limit": 500},
            {"page": 0},
            {"sort": {"salary": 1}},
            {"sort": {"name": 2}},
            {"search": 42},
            {"overallStatus": "ARCHIVED"},
        ):
            response = self._search(payload)
            self.assertEqual(response.status_code, 400, msg=repr(payload))
            self.assertFalse(response.json()["success"])


class DeleteCandidateApiTests(TestCase):
    def setUp(self):
        self.client.force_login(_make_user("operator"))
        self.candidate = _make_candidate()

    def _delete(self, payload):
        return self.client.post(reverse("candidates:delete"), payload, content_type="application/json")

    def test_soft_delete(self):
        response = self._delete({"id": self.candidate.pk})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Candidate deactivated")
        self.candidate.refresh_from_db()
        self.assertFalse(self.candidate.is_active)
        lookup = self.client.post(
            reverse("candidates:search_by_id"),
            {"id": self.candidate.pk},
            content_type="application/json",
        )
        self.assertEqual(lookup.status_code, 404)

    def test_hard_delete(self):
        response = self._delete({"id": self.candidate.pk, "hardDelete": True})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Candidate.objects.filter(pk=self.candidate.pk).exists())

    def test_hard_delete_flag_must_be_boolean(self):
        response = self._delete({"id": self.candidate.pk, "hardDelete": "yes"})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(Candidate.objects.filter(pk=self.candidate.pk, is_active=True).exists())

    def test_unknown_candidate(self):
        response = self._delete({"id": 999999})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "CandidateNotFound")
