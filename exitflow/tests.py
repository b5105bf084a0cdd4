from datetime import datetime, timezone as dt_timezone

from django.test import SimpleTestCase

from exitflow.api import parse_id, parse_id_list, parse_timestamp, require
from exitflow.errors import CandidateDropped, InvalidPayload, LifecycleError


class PayloadParsingTests(SimpleTestCase):
    def test_parse_timestamp_with_offset(self):
        self.assertEqual(
            parse_timestamp("2025-03-01T15:30:00+05:30", "when"),
            datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc),
        )

    def test_naive_timestamp_is_utc(self):
        value = parse_timestamp("2025-03-01T10:00:00", "when")
        self.assertEqual(value, datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc))

    def test_missing_timestamp_is_none(self):
        self.assertIsNone(parse_timestamp(None, "when"))
        self.assertIsNone(parse_timestamp("", "when"))

    def test_malformed_timestamps(self):
        for value in ("tomorrow", "2025-13-45T10:00:00", 1740823200):
            with self.assertRaises(InvalidPayload, msg=repr(value)):
                parse_timestamp(value, "when")

    def test_parse_id(self):
        self.assertEqual(parse_id("42", "id"), 42)
        self.assertEqual(parse_id(3.0, "id"), 3)
        for value in ("abc", 2.7, True, None, float("inf")):
            with self.assertRaises(InvalidPayload, msg=repr(value)):
                parse_id(value, "id")

    def test_parse_id_list(self):
        self.assertEqual(parse_id_list([1, "2"], "ids"), [1, 2])
        with self.assertRaises(InvalidPayload):
            parse_id_list("1,2", "ids")

    def test_require(self):
        self.assertEqual(require({"a": 0}, "a"), 0)
        with self.assertRaises(InvalidPayload):
            require({"a": ""}, "a")


class LifecycleErrorTests(SimpleTestCase):
    def test_default_message_and_status(self):
        exc = CandidateDropped(candidate_id=3)
        self.assertEqual(exc.http_status, 409)
        self.assertEqual(exc.context, {"candidate_id": 3})
        self.assertEqual(
            exc.as_dict(),
            {
                "success": False,
                "error": "CandidateDropped",
                "message": "Candidate is dropped. Restore the candidate before continuing.",
            },
        )

    def test_every_error_is_a_lifecycle_error(self):
        self.assertTrue(issubclass(InvalidPayload, LifecycleError))
        self.assertEqual(str(InvalidPayload("bad")), "bad")
