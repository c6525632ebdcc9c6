import datetime

from django.core.management.base import BaseCommand, CommandError

from assembly_core.workflows.overdue import find_overdue_assignments, flag_overdue_assignments


class Command(BaseCommand):
    help = "Flag active assignments whose due date has passed"

    def add_arguments(self, parser):
        parser.add_argument("--date", help="Treat this ISO date as today (YYYY-MM-DD).")
        parser.add_argument("--dry-run", action="store_true", help="List only, write nothing.")

    def handle(self, *args, **options):
        today = None
        if options.get("date"):
            try:
                today = datetime.date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Invalid --date: {options['date']}")

        if options["dry_run"]:
            for a in find_overdue_assignments(today):
                self.stdout.write(
                    f"{a.cycle.serial_number}  {a.technician.user_code}  due {a.due_date}  ({a.status})"
                )
            return

        flagged = flag_overdue_assignments(today)
        self.stdout.write(self.style.SUCCESS(f"Flagged {flagged} overdue assignment(s)."))
