from django.core.management.base import BaseCommand

from rides.tasks import (
    check_driver_proximity_task,
    create_new_request_notifications_task,
    dispatch_notifications_task,
)

JOBS = {
    "new-requests": create_new_request_notifications_task,
    "proximity": check_driver_proximity_task,
    "dispatch": dispatch_notifications_task,
}


class Command(BaseCommand):
    help = "Run the periodic ride jobs once, in-process (for cron or debugging)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--job",
            choices=sorted(JOBS),
            action="append",
            help="Job to run; repeat for several (default: all).",
        )

    def handle(self, *args, **options):
        names = options["job"] or list(JOBS)
        for name in names:
            result = JOBS[name].apply().get()
            if result is None:
                self.stdout.write(self.style.WARNING(f"{name}: skipped, previous run still active"))
            else:
                self.stdout.write(self.style.SUCCESS(f"{name}: {result}"))
