"""Celery tasks for ride-related background processing.

Scheduled by CELERY_BEAT_SCHEDULE. Every task is single-flight: a run that
finds the previous one still active is skipped, never queued.
"""

from celery import shared_task
import logging

from common.utils import SingleFlightGuard

logger = logging.getLogger(__name__)


@shared_task
def create_new_request_notifications_task():
    """Announce newly posted requests to every driver."""
    from realtime.notifications import publish_new_request_notifications

    with SingleFlightGuard("new_request_notifications").hold() as acquired:
        if not acquired:
            return None
        return publish_new_request_notifications()


@shared_task
def check_driver_proximity_task():
    """Queue proximity notices for drivers close to their pickups."""
    from services.matching import check_all_in_progress_rides

    with SingleFlightGuard("driver_proximity").hold() as acquired:
        if not acquired:
            return None
        return check_all_in_progress_rides()


@shared_task
def dispatch_notifications_task():
    """Push the oldest unsent notifications to connected clients."""
    from realtime.notifications import dispatch_pending_notifications

    with SingleFlightGuard("notification_dispatch").hold() as acquired:
        if not acquired:
            return None
        sent, failed = dispatch_pending_notifications()
        if failed:
            logger.warning("%s notifications left queued after failed push", failed)
        return sent
