"""
Notification helpers.

This module provides functions to:
- Publish durable notification records (the ride services never block on delivery)
- Dispatch pending records to connected clients through their personal group: user_<account_id>
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional, Tuple

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Notification

logger = logging.getLogger(__name__)


# Payload "notification" markers understood by the mobile clients
EVENT_REQUEST_CREATED = "request_created"
EVENT_RIDE_CREATED = "ride_created"
EVENT_RIDE_FINALIZED = "ride_finalized"
EVENT_RIDE_COMPLETED = "ride_completed"


# ---------------------- Publishing ----------------------

def publish_notification(
    account_id: int,
    notification_type: str,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    ride=None,
    driver_id: Optional[int] = None,
) -> int:
    """
    Store a notification for later delivery.
    
    Args:
        account_id: Recipient account ID
        notification_type: Notification.TYPE_RIDE_UPDATES or Notification.TYPE_PROXIMITY
        message: Human-readable text
        payload: Optional structured data for the client
        ride: Optional Ride the notification refers to
        driver_id: Optional driver the notification refers to
    
    Returns:
        ID of the stored notification
    """
    notification = Notification.objects.create(
        account_id=account_id,
        notification_type=notification_type,
        message=message,
        payload=payload,
        ride=ride,
        driver_id=driver_id,
    )
    logger.debug("Notification %s queued for account %s", notification.id, account_id)
    return notification.id


def publish_new_request_notifications() -> int:
    """
    Tell every driver about requests posted since the last run.

    Each request is announced once; its notifications_created flag is set
    together with the notification rows.

    Returns:
        Number of requests announced
    """
    from accounts.models import User
    from rides.models import RideRequest

    new_requests = list(
        RideRequest.objects.filter(notifications_created=False, ride__isnull=True).order_by("created_at", "id")
    )
    if not new_requests:
        return 0

    driver_ids = list(User.objects.filter(role="driver").values_list("id", flat=True))

    for request in new_requests:
        with transaction.atomic():
            for driver_id in driver_ids:
                publish_notification(
                    driver_id,
                    Notification.TYPE_RIDE_UPDATES,
                    f"New ride request: {request.pickup_address} to {request.dropoff_address} "
                    f"for ${request.compensation}",
                    payload={"request_id": request.id, "notification": EVENT_REQUEST_CREATED},
                )
            RideRequest.objects.filter(id=request.id).update(notifications_created=True)

    logger.info("Announced %d new requests to %d drivers", len(new_requests), len(driver_ids))
    return len(new_requests)


def publish_proximity_notification(ride, driver_id: int, passenger_id: int, distance_meters: float) -> Optional[int]:
    """
    Queue a proximity notice once per (ride, driver, passenger).

    Returns the new notification ID, or None when one already exists.
    """
    exists = Notification.objects.filter(
        notification_type=Notification.TYPE_PROXIMITY,
        account_id=passenger_id,
        driver_id=driver_id,
        ride=ride,
    ).exists()
    if exists:
        return None

    try:
        with transaction.atomic():
            return publish_notification(
                passenger_id,
                Notification.TYPE_PROXIMITY,
                f"Driver {driver_id} for ride {ride.id} is nearby! "
                f"They are approximately {distance_meters:.0f} meters away.",
                payload={"ride_id": ride.id, "distance_m": round(distance_meters)},
                ride=ride,
                driver_id=driver_id,
            )
    except IntegrityError:
        # Lost the race against a concurrent proximity check
        return None


# ---------------------- Dispatching ----------------------

def _push_to_account(channel_layer, notification: Notification) -> None:
    payload = {
        "type": "notification",
        "notification_id": notification.id,
        "notification_type": notification.notification_type,
        "message": notification.message,
        "payload": notification.payload,
        "created_at": notification.created_at.isoformat(),
    }
    logger.debug("WS -> user_%s: %s", notification.account_id, payload)
    async_to_sync(channel_layer.group_send)(f"user_{notification.account_id}", payload)


def dispatch_pending_notifications(batch_size: Optional[int] = None) -> Tuple[int, int]:
    """
    Push the oldest unsent notifications and mark them sent.

    A notification whose push fails stays unsent and is retried on the next run.

    Returns:
        (sent_count, failed_count)
    """
    if batch_size is None:
        batch_size = getattr(settings, "NOTIFICATION_DISPATCH_BATCH", 5)

    pending = list(
        Notification.objects.filter(is_sent=False).order_by("created_at", "id")[:batch_size]
    )
    if not pending:
        logger.debug("No pending notifications to process")
        return 0, 0

    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available, leaving %d notifications queued", len(pending))
        return 0, len(pending)

    sent = 0
    failed = 0
    for notification in pending:
        try:
            _push_to_account(channel_layer, notification)
        except Exception:
            logger.exception("Failed to push notification %s", notification.id)
            failed += 1
            continue

        notification.is_sent = True
        notification.sent_at = timezone.now()
        notification.save(update_fields=["is_sent", "sent_at"])
        sent += 1

    logger.info("Notification processing completed: sent=%s failed=%s", sent, failed)
    return sent, failed
