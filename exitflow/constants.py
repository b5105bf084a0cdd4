"""
exitflow/constants.py

Central repository for cross-cutting constants.

Rules for what belongs here:
  - Pure Python only — no Django model imports (prevents circular import risk).
  - Referenced by more than one module.

What intentionally stays elsewhere:
  - TextChoices on models          — Django convention, DB-validated.
  - Follow-up allowance settings   — exitflow/settings.py (tunable per deployment).
  - Report service URL / secrets   — exitflow/settings.py.
"""

# ── API ────────────────────────────────────────────────────────────────────────

API_PREFIX = "api/v1/"

# Header carrying the shared secret on report-ready webhooks.
REPORT_WEBHOOK_HEADER = "HTTP_X_REPORT_TOKEN"

# ── Interview timing ───────────────────────────────────────────────────────────

SECONDS_PER_MINUTE = 60

# ── Candidate import ───────────────────────────────────────────────────────────

# Accepted formats for date cells in candidate upload sheets, tried in order.
IMPORT_DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d", "%d/%m/%Y")

# Maximum rows accepted in a single upload request.
IMPORT_MAX_ROWS = 2000

# ── Candidate search ───────────────────────────────────────────────────────────

SEARCH_DEFAULT_LIMIT = 25
SEARCH_MAX_LIMIT = 100
