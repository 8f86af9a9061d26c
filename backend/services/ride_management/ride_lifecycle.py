"""
Core ride lifecycle operations.

Request -> Proposal -> Ride transitions. Every multi-row change runs in one
transaction; the proposal confirmation locks the Ride row so two concurrent
last confirmations are applied one after the other.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import User
from common.utils.geo import Coordinates, validate_coordinates
from realtime.models import Notification
from realtime.notifications import (
    EVENT_RIDE_COMPLETED,
    EVENT_RIDE_CREATED,
    EVENT_RIDE_FINALIZED,
    publish_notification,
)
from rides.models import Proposal, Ride, RideRequest
from services.matching.proximity import nearest_pickup, unvisited_pickups
from services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DECISION_ACCEPT = "accept"
DECISION_REJECT = "reject"

# Rides in these states own their requests for good
BLOCKING_RIDE_STATUSES = (Ride.STATUS_IN_PROGRESS, Ride.STATUS_COMPLETED)

DEFAULT_PICKUP_ARRIVAL_METERS = 1000


def _validate_position(position: Coordinates, label: str) -> Coordinates:
    try:
        lat, lon = float(position[0]), float(position[1])
    except (TypeError, ValueError, IndexError):
        raise ValidationError(f"{label} must be a latitude/longitude pair")
    if not validate_coordinates(lat, lon):
        raise ValidationError(f"{label} is out of range")
    return Coordinates(lat, lon)


def _notify(account_id: int, message: str, payload: dict, ride: Optional[Ride] = None):
    """Queue a ride update. Never fails the calling operation."""
    try:
        publish_notification(
            account_id,
            Notification.TYPE_RIDE_UPDATES,
            message,
            payload=payload,
            ride=ride,
        )
    except Exception:
        logger.exception("Failed to queue notification for account %s", account_id)


# ===================== Passenger Operations =====================

@transaction.atomic
def create_ride_request(
    passenger,
    pickup: Coordinates,
    dropoff: Coordinates,
    compensation,
    pickup_address: str = "",
    dropoff_address: str = "",
) -> RideRequest:
    """
    Post a new open request.

    Args:
        passenger: User instance (passenger)
        pickup: (lat, lon) of the pickup point
        dropoff: (lat, lon) of the dropoff point
        compensation: Amount offered to the driver, must be positive
        pickup_address: Human-readable pickup label
        dropoff_address: Human-readable dropoff label

    Raises:
        ValidationError: bad coordinates or non-positive compensation
        ConflictError: passenger already has an open request
    """
    pickup = _validate_position(pickup, "Pickup")
    dropoff = _validate_position(dropoff, "Dropoff")

    try:
        compensation = Decimal(str(compensation)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError("Compensation must be a number")
    if compensation <= 0:
        raise ValidationError("Compensation must be greater than zero")

    if RideRequest.objects.filter(passenger=passenger, ride__isnull=True).exists():
        raise ConflictError("You already have an open ride request")

    request = RideRequest.objects.create(
        passenger=passenger,
        pickup_latitude=round(pickup.lat, 6),
        pickup_longitude=round(pickup.lon, 6),
        pickup_address=pickup_address,
        dropoff_latitude=round(dropoff.lat, 6),
        dropoff_longitude=round(dropoff.lon, 6),
        dropoff_address=dropoff_address,
        compensation=compensation,
    )
    logger.info("Passenger %s created request %s", passenger.id, request.id)
    return request


# ===================== Driver Operations =====================

def draft_ride(request_ids: Iterable[int], driver, destination: Coordinates) -> Tuple[Ride, List[Proposal]]:
    """
    Create a pending Ride with one pending Proposal per request.

    All-or-nothing: the Ride and its Proposals are written in one
    transaction. One notification per passenger is queued once the rows are written.

    Raises:
        ValidationError: empty/duplicate ids or bad destination
        NotFoundError: unknown request id
        ConflictError: a request is already taken by an active or completed Ride
    """
    request_ids = [int(request_id) for request_id in request_ids]
    if not request_ids:
        raise ValidationError("At least one request is required")
    if len(set(request_ids)) != len(request_ids):
        raise ValidationError("Request ids must be distinct")
    destination = _validate_position(destination, "Destination")

    with transaction.atomic():
        requests = {
            request.id: request
            for request in RideRequest.objects.select_for_update().filter(id__in=request_ids)
        }
        missing = [request_id for request_id in request_ids if request_id not in requests]
        if missing:
            raise NotFoundError(f"Ride request {missing[0]} not found")

        for request_id in request_ids:
            request = requests[request_id]
            if request.ride_id is not None:
                raise ConflictError(f"Request {request_id} is already part of a ride")
            taken = Ride.objects.filter(
                proposals__request_id=request_id,
                status__in=BLOCKING_RIDE_STATUSES,
            ).exists()
            if taken:
                raise ConflictError(f"A ride is already in progress or completed for request {request_id}")

        ride = Ride.objects.create(
            status=Ride.STATUS_PENDING,
            destination_latitude=round(destination.lat, 6),
            destination_longitude=round(destination.lon, 6),
        )
        proposals = [
            Proposal.objects.create(
                ride=ride,
                request=requests[request_id],
                driver=driver,
                status=Proposal.STATUS_PENDING,
            )
            for request_id in request_ids
        ]

    logger.info("Driver %s drafted ride %s with %d proposals", driver.id, ride.id, len(proposals))

    driver_name = driver.get_full_name() or driver.username
    for proposal in proposals:
        request = proposal.request
        _notify(
            request.passenger_id,
            f"New ride proposal from {driver_name} for your request: "
            f"{request.pickup_address} to {request.dropoff_address}",
            {"proposal_id": proposal.id, "notification": EVENT_RIDE_CREATED},
            ride=ride,
        )

    return ride, proposals


def confirm_proposal(proposal_id: int, decision: str, passenger=None) -> Proposal:
    """
    Accept or reject a pending proposal and recompute the Ride.

    While any proposal of the Ride is still pending nothing else changes.
    Once none is, accepted proposals whose request was meanwhile linked to
    another Ride are turned into rejections. Then no accepted proposal
    rejects the Ride; otherwise the Ride goes in_progress and every accepted
    proposal's request is linked to it.

    Args:
        proposal_id: Proposal to answer
        decision: "accept" or "reject"
        passenger: when given, must own the proposal's request

    Raises:
        ValidationError: unknown decision
        NotFoundError: unknown proposal
        ForbiddenError: passenger does not own the request
        StateError: proposal already answered
        ConflictError: accepting a request already linked to another Ride
    """
    if decision not in (DECISION_ACCEPT, DECISION_REJECT):
        raise ValidationError("Decision must be 'accept' or 'reject'")

    ride_id = Proposal.objects.filter(id=proposal_id).values_list("ride_id", flat=True).first()
    if ride_id is None:
        raise NotFoundError(f"Proposal {proposal_id} not found")

    with transaction.atomic():
        # Serializes the read-count-transition sequence per Ride
        ride = Ride.objects.select_for_update().get(id=ride_id)
        proposal = (
            Proposal.objects.select_for_update()
            .select_related("request")
            .get(id=proposal_id)
        )

        if passenger is not None and proposal.request.passenger_id != passenger.id:
            raise ForbiddenError("You are not allowed to respond to this proposal")
        if proposal.status != Proposal.STATUS_PENDING:
            raise StateError("Proposal is not in pending state")
        if decision == DECISION_ACCEPT and proposal.request.ride_id not in (None, ride.id):
            raise ConflictError("This request was already taken by another ride")

        proposal.status = (
            Proposal.STATUS_ACCEPTED if decision == DECISION_ACCEPT else Proposal.STATUS_REJECTED
        )
        proposal.save(update_fields=["status", "updated_at"])

        siblings = list(ride.proposals.select_related("request"))
        if any(p.status == Proposal.STATUS_PENDING for p in siblings):
            logger.info("Proposal %s %s, ride %s still pending", proposal.id, proposal.status, ride.id)
            return proposal

        accepted = [p for p in siblings if p.status == Proposal.STATUS_ACCEPTED]
        if accepted:
            taken_ids = set(
                RideRequest.objects.select_for_update()
                .filter(id__in=[p.request_id for p in accepted], ride__isnull=False)
                .exclude(ride=ride)
                .values_list("id", flat=True)
            )
            if taken_ids:
                logger.warning("Ride %s: requests %s were taken by another ride, rejecting them", ride.id, sorted(taken_ids))
                Proposal.objects.filter(ride=ride, request_id__in=taken_ids).update(
                    status=Proposal.STATUS_REJECTED, updated_at=timezone.now()
                )
                if proposal.request_id in taken_ids:
                    proposal.status = Proposal.STATUS_REJECTED
                accepted = [p for p in accepted if p.request_id not in taken_ids]

        new_status = Ride.STATUS_IN_PROGRESS if accepted else Ride.STATUS_REJECTED
        if not ride.can_transition_to(new_status):
            raise StateError(f"Ride {ride.id} cannot move from {ride.status} to {new_status}")

        if accepted:
            RideRequest.objects.filter(id__in=[p.request_id for p in accepted]).update(ride=ride)

        ride.status = new_status
        ride.save(update_fields=["status", "updated_at"])

    logger.info("Ride %s moved to %s", ride.id, ride.status)
    _notify_ride_finalized(ride, proposal.driver_id, accepted)
    return proposal


def _notify_ride_finalized(ride: Ride, driver_id: int, accepted: List[Proposal]):
    payload = {"ride_id": ride.id, "notification": EVENT_RIDE_FINALIZED}

    if ride.status == Ride.STATUS_REJECTED:
        _notify(driver_id, "Your planned ride has been rejected.", payload, ride=ride)
        return

    _notify(driver_id, "Your ride trip has been accepted!", payload, ride=ride)
    driver = User.objects.filter(id=driver_id).first()
    driver_name = (driver.get_full_name() or driver.username) if driver else "your driver"
    for proposal in accepted:
        _notify(
            proposal.request.passenger_id,
            f"Your ride has been confirmed! Driver {driver_name} will be picking you up.",
            payload,
            ride=ride,
        )


def _get_driver_ride(ride_id: int, driver=None) -> Ride:
    ride = Ride.objects.filter(id=ride_id).first()
    if ride is None:
        raise NotFoundError(f"Ride {ride_id} not found")
    if driver is not None and not ride.proposals.filter(driver=driver).exists():
        raise ForbiddenError("Only the ride's driver can do this")
    return ride


def complete_ride(ride_id: int, driver=None) -> Ride:
    """
    Finish an in-progress ride.

    Raises:
        NotFoundError: unknown ride
        ForbiddenError: driver is not the ride's driver
        StateError: ride is not in progress
    """
    _get_driver_ride(ride_id, driver)

    with transaction.atomic():
        ride = Ride.objects.select_for_update().get(id=ride_id)
        if not ride.can_transition_to(Ride.STATUS_COMPLETED):
            raise StateError("Ride is not in progress")

        ride.status = Ride.STATUS_COMPLETED
        ride.save(update_fields=["status", "updated_at"])

        accepted = list(
            ride.proposals.filter(status=Proposal.STATUS_ACCEPTED).select_related("request")
        )
        participant_ids = {p.driver_id for p in accepted}
        participant_ids.update(p.request.passenger_id for p in accepted)
        User.objects.filter(id__in=participant_ids).update(completed_rides=F("completed_rides") + 1)

    logger.info("Ride %s moved to %s", ride.id, ride.status)

    for proposal in accepted:
        _notify(
            proposal.request.passenger_id,
            "Your ride has been completed! We hope you had a great experience.",
            {"ride_id": ride.id, "notification": EVENT_RIDE_COMPLETED},
            ride=ride,
        )
    return ride


def mark_request_visited(ride_id: int, driver_position: Coordinates, driver=None) -> RideRequest:
    """
    Mark the pickup nearest to the driver as collected.

    Only accepted, unvisited requests of the ride are considered, so a
    visited request is never picked again.

    Raises:
        NotFoundError: unknown ride
        ForbiddenError: driver is not the ride's driver
        StateError: ride is not in progress
        ValidationError: no unvisited pickup left, or bad position
        ConflictError: nearest pickup is farther than the arrival radius
    """
    driver_position = _validate_position(driver_position, "Current location")
    ride = _get_driver_ride(ride_id, driver)
    if ride.status != Ride.STATUS_IN_PROGRESS:
        raise StateError("Ride is not in progress")

    threshold = getattr(settings, "RIDE_PICKUP_ARRIVAL_METERS", DEFAULT_PICKUP_ARRIVAL_METERS)

    with transaction.atomic():
        nearest = nearest_pickup(driver_position, unvisited_pickups(ride).select_for_update())
        if nearest is None:
            raise ValidationError("No unvisited requests found for this ride")

        request, distance = nearest
        if distance > threshold:
            raise ConflictError(
                f"You are too far from the nearest pickup location ({distance:.2f} meters)"
            )

        request.visited = True
        request.save(update_fields=["visited"])

    logger.info("Request %s picked up on ride %s (%.0fm)", request.id, ride.id, distance)
    return request
