"""
candidates/services.py

Public services:
  import_candidates(project, rows, uploaded_by=...) → summary dict
  read_candidate_csv(file_obj)                       → list of row dicts
  delete_candidate(candidate_id, hard=..., ...)      → None

Rows use the column headers of the client's HR export sheet:
  Name, Email ID, Nature of Employment, Location, Grade Level, Designation,
  Department, Reporting to, Date of Joining, DOB, Age, Contact Number,
  Experience in Org, Gender, Resignation Date, Quarters, Last Working Day

Dates arrive as DD-MM-YYYY strings (ISO and DD/MM/YYYY are tolerated) or as
Excel serial day numbers. An upload is all-or-nothing: a single invalid or
duplicate row rejects the whole batch.
"""

import csv
import io
import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction

from candidates.models import Candidate
from candidates.transitions import lock_candidate
from exitflow.constants import IMPORT_DATE_FORMATS, IMPORT_MAX_ROWS

logger = logging.getLogger(__name__)

# Day zero of Excel's 1900 date system (accounts for the 1900 leap-year bug).
_EXCEL_EPOCH = date(1899, 12, 30)

# experience_in_org is stored with 5 digits, 2 of them decimals.
_MAX_EXPERIENCE = Decimal("1000")

# Sheet column → (Candidate field, kind)
_COLUMNS = {
    "Name": ("name", "text"),
    "Email ID": ("email", "text"),
    "Nature of Employment": ("nature_of_employment", "text"),
    "Location": ("location", "text"),
    "Grade Level": ("grade_level", "text"),
    "Designation": ("designation", "text"),
    "Department": ("department", "text"),
    "Reporting to": ("reporting_to", "text"),
    "Date of Joining": ("date_of_joining", "date"),
    "DOB": ("date_of_birth", "date"),
    "Contact Number": ("contact_number", "phone"),
    "Experience in Org": ("experience_in_org", "decimal"),
    "Gender": ("gender", "gender"),
    "Resignation Date": ("resignation_date", "date"),
    "Quarters": ("quarter", "quarter"),
    "Last Working Day": ("last_working_day", "date"),
}


# ── Cell parsing ───────────────────────────────────────────────────────────────

def _clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _from_excel_serial(value) -> date:
    try:
        return _EXCEL_EPOCH + timedelta(days=int(value))
    except OverflowError:
        raise ValueError(f"date serial {value!r} is out of range")


def _parse_sheet_date(value) -> date | None:
    """
    Parse a date cell.

    Examples:
        '15-08-2023' → date(2023, 8, 15)
        45153        → date(2023, 8, 15)   (Excel serial)
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_excel_serial(value)
    text = _clean_text(value)
    if text.isdigit():
        return _from_excel_serial(int(text))
    for fmt in IMPORT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date {text!r} (expected DD-MM-YYYY)")


def _clean_contact_number(value) -> str:
    """
    Spreadsheets hand phone numbers over as floats; drop the trailing '.0'.

        9876543210.0 → '9876543210'
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return _clean_text(value)


def _parse_decimal(value) -> Decimal | None:
    text = _clean_text(value)
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"not a number: {text!r}")
    if not value.is_finite() or abs(value) >= _MAX_EXPERIENCE:
        raise ValueError(f"out of range: {text!r}")
    return value.quantize(Decimal("0.01"))


def _parse_choice(value, choices, label: str) -> str:
    text = _clean_text(value).upper()
    if text and text not in choices:
        raise ValueError(f"invalid {label} {text!r}")
    return text


def _parse_row(row: dict) -> tuple[dict, list[str]]:
    """Return (candidate field values, error messages) for one sheet row."""
    fields: dict = {}
    errors: list[str] = []

    for column, (field, kind) in _COLUMNS.items():
        raw = row.get(column)
        try:
            if kind == "date":
                fields[field] = _parse_sheet_date(raw)
            elif kind == "phone":
                fields[field] = _clean_contact_number(raw)
            elif kind == "decimal":
                fields[field] = _parse_decimal(raw)
            elif kind == "gender":
                fields[field] = _parse_choice(raw, Candidate.Gender.values, "gender")
            elif kind == "quarter":
                fields[field] = _parse_choice(raw, Candidate.Quarter.values, "quarter")
            else:
                fields[field] = _clean_text(raw)
            max_length = Candidate._meta.get_field(field).max_length
            if kind in ("text", "phone") and len(fields[field]) > max_length:
                raise ValueError(f"longer than {max_length} characters")
        except ValueError as exc:
            errors.append(f"{column}: {exc}")

    if not fields.get("name"):
        errors.append("Name: required")
    email = (fields.get("email") or "").lower()
    fields["email"] = email
    if not email:
        errors.append("Email ID: required")
    else:
        try:
            validate_email(email)
        except ValidationError:
            errors.append(f"Email ID: invalid address {email!r}")

    return fields, errors


# ── Import ─────────────────────────────────────────────────────────────────────

def import_candidates(project, rows: list[dict], *, uploaded_by=None) -> dict:
    """
    Validate and create candidates for a project from sheet rows.

    Row numbers in the report are sheet rows (the header is row 1).

    Returns:
        {
          "total_rows": int,
          "success_count": int,
          "errors": [{"row_number", "candidate_name", "email", "errors": [...]}, ...],
          "duplicates": [{"row_number", "email"}, ...],
          "upload_batch_id": str | None,
        }
    Nothing is written unless both errors and duplicates are empty.

    Raises:
        ValueError: the upload is empty or larger than IMPORT_MAX_ROWS.
    """
    if not rows:
        raise ValueError("The upload contains no candidate rows.")
    if len(rows) > IMPORT_MAX_ROWS:
        raise ValueError(f"The upload exceeds the limit of {IMPORT_MAX_ROWS} rows.")

    existing_emails = set(
        Candidate.objects
        .filter(project=project, is_active=True)
        .values_list("email", flat=True)
    )
    existing_emails = {e.lower() for e in existing_emails}

    parsed: list[dict] = []
    errors: list[dict] = []
    duplicates: list[dict] = []
    seen: set[str] = set()

    for index, row in enumerate(rows):
        row_number = index + 2
        fields, row_errors = _parse_row(row)
        if row_errors:
            errors.append({
                "row_number": row_number,
                "candidate_name": fields.get("name", ""),
                "email": fields.get("email", ""),
                "errors": row_errors,
            })
            continue
        email = fields["email"]
        if email in existing_emails or email in seen:
            duplicates.append({"row_number": row_number, "email": email})
            continue
        seen.add(email)
        parsed.append(fields)

    summary = {
        "total_rows": len(rows),
        "success_count": 0,
        "errors": errors,
        "duplicates": duplicates,
        "upload_batch_id": None,
    }
    if errors or duplicates:
        logger.warning(
            "Candidate upload rejected: project=%s rows=%s errors=%s duplicates=%s",
            project.pk,
            len(rows),
            len(errors),
            len(duplicates),
        )
        return summary

    batch_id = uuid.uuid4().hex[:12]
    with transaction.atomic():
        Candidate.objects.bulk_create([
            Candidate(
                project=project,
                max_followup_attempts=project.max_followup_attempts,
                questionnaire_id=project.questionnaire_id,
                uploaded_by=uploaded_by,
                upload_batch_id=batch_id,
                **fields,
            )
            for fields in parsed
        ])

    summary["success_count"] = len(parsed)
    summary["upload_batch_id"] = batch_id
    logger.info(
        "Candidate upload: project=%s batch=%s created=%s",
        project.pk,
        batch_id,
        len(parsed),
    )
    return summary


def read_candidate_csv(file_obj) -> list[dict]:
    """
    Read a UTF-8 (optionally BOM-prefixed) comma-separated export into row dicts.
    Accepts a binary or text file object.
    """
    raw = file_obj.read()
    text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    return [
        {(key or "").strip(): value for key, value in row.items()}
        for row in reader
    ]


# ── Removal ────────────────────────────────────────────────────────────────────

def delete_candidate(candidate_id, *, hard: bool = False, deleted_by=None) -> None:
    """
    Remove an active candidate.

    A soft delete clears is_active: the row, its follow-up history and its
    audit trail are kept, but every lifecycle operation treats the candidate
    as not found and its email may be uploaded again. A hard delete removes
    the candidate together with its follow-ups and status changes.

    Raises:
        CandidateNotFound: unknown or already soft-deleted candidate.
    """
    with transaction.atomic():
        candidate = lock_candidate(candidate_id)
        if hard:
            candidate.delete()
        else:
            candidate.is_active = False
            candidate.save(update_fields=["is_active", "updated_at"])

    logger.info(
        "Candidate %s: candidate=%s by user=%s",
        "deleted" if hard else "deactivated",
        candidate_id,
        getattr(deleted_by, "pk", None),
    )
