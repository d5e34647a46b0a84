"""Management command to remind approvers about overdue approval requests."""

from django.core.management.base import BaseCommand

from radiopharm.approvals.services import send_reminders
from radiopharm.approvals.validators import get_setting


class Command(BaseCommand):
    help = "Notify approvers of approval requests waiting past their due time (status is never changed)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Remind about requests waiting longer than this many hours (default: APPROVALS_REMINDER_HOURS)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List the requests that would be reminded without notifying anyone",
        )

    def handle(self, *args, **options):
        hours = options["hours"] or get_setting("REMINDER_HOURS", 4)
        dry_run = options["dry_run"]

        reminded = send_reminders(hours, dry_run=dry_run)

        if dry_run:
            self.stdout.write(f"Would remind approvers of {len(reminded)} approval requests")
            for approval_request in reminded:
                self.stdout.write(
                    f"  - {approval_request.workflow.name}: {approval_request.entity_type} "
                    f"{approval_request.entity_id} (step {approval_request.current_step_order})"
                )
        else:
            self.stdout.write(
                self.style.SUCCESS(f"Sent reminders for {len(reminded)} approval requests")
            )
