"""
Management command: import_candidates

Imports an HR export sheet (saved as CSV) into Candidates of one Project.

Usage:
    python manage.py import_candidates --file path/to/leavers.csv --project-id 1
    python manage.py import_candidates --file leavers.csv --project-id 1 --uploaded-by alice

The CSV must be UTF-8 encoded (a BOM is tolerated) and comma-delimited, with
the sheet's header row ("Name", "Email ID", "Contact Number", ...). The import
is all-or-nothing: any invalid or duplicate row aborts it.
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from candidates.services import import_candidates, read_candidate_csv
from projects.models import Project


class Command(BaseCommand):
    help = "Import an HR export CSV (UTF-8, comma-delimited) into a project's candidates."

    def add_arguments(self, parser):
        parser.add_argument(
            "--file",
            type=str,
            required=True,
            metavar="PATH",
            help="Path to the CSV file (UTF-8, comma-delimited, header row).",
        )
        parser.add_argument(
            "--project-id",
            type=int,
            required=True,
            metavar="ID",
            help="Primary key of the Project the candidates belong to.",
        )
        parser.add_argument(
            "--uploaded-by",
            type=str,
            default=None,
            metavar="USERNAME",
            help="Username recorded as the uploader (optional).",
        )

    def handle(self, *args, **options):
        file_path = options["file"]
        project_id = options["project_id"]

        try:
            project = Project.objects.get(pk=project_id)
        except Project.DoesNotExist:
            raise CommandError(f"Project #{project_id} does not exist.")

        uploaded_by = None
        if options["uploaded_by"]:
            User = get_user_model()
            try:
                uploaded_by = User.objects.get_by_natural_key(options["uploaded_by"])
            except User.DoesNotExist:
                raise CommandError(f"User {options['uploaded_by']!r} does not exist.")

        self.stdout.write(f"Importing: {file_path!r}  →  Project #{project_id} ({project.name}) …")

        try:
            with open(file_path, "rb") as fh:
                rows = read_candidate_csv(fh)
            summary = import_candidates(project, rows, uploaded_by=uploaded_by)
        except FileNotFoundError:
            raise CommandError(f"File not found: {file_path!r}")
        except UnicodeDecodeError as exc:
            raise CommandError(f"Could not decode the file — ensure it is UTF-8 encoded.\n{exc}")
        except ValueError as exc:
            raise CommandError(str(exc))

        # ── Results ──────────────────────────────────────────────────────────
        self.stdout.write("")
        self.stdout.write(f"  Total rows processed   : {summary['total_rows']}")

        for err in summary["errors"]:
            self.stdout.write(
                self.style.ERROR(
                    f"    ✗ Row {err['row_number']} ({err['email'] or err['candidate_name'] or '?'}): "
                    + "; ".join(err["errors"])
                )
            )
        for dup in summary["duplicates"]:
            self.stdout.write(
                self.style.WARNING(f"    • Row {dup['row_number']}: duplicate email {dup['email']}")
            )

        if summary["errors"] or summary["duplicates"]:
            raise CommandError(
                f"Import rejected: {len(summary['errors'])} invalid row(s), "
                f"{len(summary['duplicates'])} duplicate(s). No candidates were created."
            )

        self.stdout.write(self.style.SUCCESS("Import complete"))
        self.stdout.write(f"  Candidates created     : {summary['success_count']}")
        self.stdout.write(f"  Upload batch           : {summary['upload_batch_id']}")
