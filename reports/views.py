"""
reports/views.py

Inbound webhook from the external report service.

  POST /webhooks/report-ready/   — a report finished generating for a candidate

CSRF-exempt (the report service cannot obtain a CSRF token). The shared
secret is validated before any processing occurs.
"""

import hmac
import json
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from candidates.transitions import mark_report_generated
from exitflow.constants import REPORT_WEBHOOK_HEADER
from exitflow.errors import CandidateNotFound, InvalidPhaseTransition

logger = logging.getLogger(__name__)


# ── Shared response helpers ────────────────────────────────────────────────────

def _ok(message: str = "ok") -> JsonResponse:
    return JsonResponse({"status": message}, status=200)


def _reject(reason: str, status: int = 401) -> JsonResponse:
    logger.warning("Report webhook rejected: %s", reason)
    return JsonResponse({"error": reason}, status=status)


@csrf_exempt
@require_POST
def report_ready_webhook(request):
    """
    POST /webhooks/report-ready/

    Expected payload:
      {"candidateId": "42", "reportId": "rep_..."}

    Unknown candidates and candidates whose interview is not completed are
    acknowledged with 200 so the report service does not redeliver forever.
    """
    # ── 1. Token validation ────────────────────────────────────────────────────
    secret = settings.REPORT_WEBHOOK_SECRET
    if secret:
        token = request.META.get(REPORT_WEBHOOK_HEADER, "")
        if not token or not hmac.compare_digest(token, secret):
            return _reject("Invalid or missing report token")
    elif not settings.DEBUG:
        logger.error("REPORT_WEBHOOK_SECRET is not set — refusing webhook in production.")
        return JsonResponse({"error": "server_misconfigured"}, status=500)
    else:
        logger.warning("REPORT_WEBHOOK_SECRET is not set — skipping token validation.")

    # ── 2. Parse body ──────────────────────────────────────────────────────────
    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _reject("Invalid JSON body", status=400)
    if not isinstance(payload, dict):
        return _reject("JSON body must be an object", status=400)

    candidate_id = payload.get("candidateId")
    report_id = payload.get("reportId")
    if not candidate_id or not report_id:
        return _reject("candidateId and reportId are required", status=400)
    try:
        candidate_id = int(candidate_id)
    except (TypeError, ValueError):
        return _reject("candidateId must be an integer id", status=400)

    # ── 3. Link the report ─────────────────────────────────────────────────────
    try:
        candidate = mark_report_generated(candidate_id, str(report_id))
    except CandidateNotFound:
        logger.warning("Report webhook for unknown candidate=%s", candidate_id)
        return _ok("candidate_not_found")
    except InvalidPhaseTransition:
        logger.warning(
            "Report webhook for candidate=%s whose interview is not completed",
            candidate_id,
        )
        return _ok("interview_not_completed")

    logger.info(
        "Report linked: candidate=%s report_id=%s",
        candidate.pk,
        candidate.report_id,
    )
    return _ok()
