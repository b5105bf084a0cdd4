"""
exitflow/api.py

Shared plumbing for the JSON API consumed by the dashboard.

Every endpoint is a POST with a JSON body and answers with either
  {"success": true,  "message": "...", "data": ...}
or
  {"success": false, "error": "<ErrorCode>", "message": "..."}
"""

import functools
import json
import logging
from datetime import timezone as dt_timezone

from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_POST

from exitflow.errors import InvalidPayload, LifecycleError

logger = logging.getLogger(__name__)


# ── Response helpers ───────────────────────────────────────────────────────────

def ok(data=None, message: str = "ok", status: int = 200) -> JsonResponse:
    return JsonResponse({"success": True, "message": message, "data": data}, status=status)


def error(exc: LifecycleError) -> JsonResponse:
    return JsonResponse(exc.as_dict(), status=exc.http_status)


# ── Request parsing ────────────────────────────────────────────────────────────

def parse_body(request) -> dict:
    """Decode the JSON request body, which must be an object."""
    try:
        payload = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidPayload("Invalid JSON body.")
    if not isinstance(payload, dict):
        raise InvalidPayload("JSON body must be an object.")
    return payload


def require(payload: dict, key: str):
    value = payload.get(key)
    if value is None or value == "":
        raise InvalidPayload(f"'{key}' is required.")
    return value


def parse_id(value, key: str) -> int:
    """
    Accept an int or a string of digits. Booleans and fractional numbers are
    rejected rather than truncated.
    """
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidPayload(f"'{key}' must be an integer id.")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidPayload(f"'{key}' must be an integer id.")


def parse_id_list(value, key: str) -> list[int]:
    if not isinstance(value, list):
        raise InvalidPayload(f"'{key}' must be a list of ids.")
    return [parse_id(item, key) for item in value]


def parse_timestamp(value, key: str):
    """
    Parse an ISO 8601 timestamp from the payload.
    Naive values are interpreted as UTC. Returns None for a missing value.
    """
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise InvalidPayload(f"'{key}' must be an ISO 8601 string.")
    try:
        dt = parse_datetime(value)
    except ValueError:
        dt = None
    if dt is None:
        raise InvalidPayload(f"'{key}' is not a valid ISO 8601 timestamp.")
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


# ── View decorator ─────────────────────────────────────────────────────────────

def api_endpoint(view):
    """
    Wrap a JSON endpoint: POST only, authenticated session required, and
    every LifecycleError rendered as a typed error response.
    """

    @require_POST
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {"success": False, "error": "NotAuthenticated", "message": "Login required."},
                status=401,
            )
        try:
            return view(request, *args, **kwargs)
        except LifecycleError as exc:
            logger.warning(
                "API %s rejected: error=%s user=%s message=%s",
                request.path,
                exc.code,
                request.user.pk,
                exc.message,
            )
            return error(exc)

    return wrapper
