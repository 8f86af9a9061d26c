from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from realtime.models import Notification
from rides.models import Ride
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up sent notifications and rejected/completed rides."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete records older than this many days (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        old_notifications = Notification.objects.filter(is_sent=True, created_at__lt=cutoff)
        notifications_count = old_notifications.count()

        # Terminal rides only; linked requests fall back to unlinked via SET_NULL
        old_rides = Ride.objects.filter(
            updated_at__lt=cutoff,
            status__in=[Ride.STATUS_REJECTED, Ride.STATUS_COMPLETED]
        )
        rides_count = old_rides.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {notifications_count} notifications and {rides_count} old rides older than {days} days."
                )
            )
        else:
            old_notifications.delete()
            old_rides.delete()
            logger.info("Cleaned up %s old notifications and %s old rides", notifications_count, rides_count)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {notifications_count} old notifications and {rides_count} old rides older than {days} days."
                )
            )
