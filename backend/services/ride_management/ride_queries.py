"""
Read accessors for requests, rides and proposals, plus the route views
built on top of them.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from django.db.models import Q

from common.utils.geo import Coordinates
from drivers.services import get_driver_position
from rides.models import Proposal, Ride, RideRequest
from services.routing import Route, RouteComposer, best_order
from services.exceptions import ForbiddenError, NotFoundError, StateError, ValidationError

logger = logging.getLogger(__name__)


# ===================== Accessors =====================

def get_ride_request(request_id: int) -> RideRequest:
    try:
        return RideRequest.objects.get(id=request_id)
    except RideRequest.DoesNotExist:
        raise NotFoundError(f"Ride request {request_id} not found")


def get_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.get(id=ride_id)
    except Ride.DoesNotExist:
        raise NotFoundError(f"Ride {ride_id} not found")


def get_proposal(proposal_id: int) -> Proposal:
    try:
        return Proposal.objects.select_related("request", "ride").get(id=proposal_id)
    except Proposal.DoesNotExist:
        raise NotFoundError(f"Proposal {proposal_id} not found")


def get_active_ride_requests(
    ids: Optional[Iterable[int]] = None,
    max_compensation=None,
    passenger=None,
):
    """
    Open requests only (not linked to any ride), oldest first.

    Args:
        ids: restrict to these request ids
        max_compensation: upper bound on compensation
        passenger: restrict to one passenger's requests
    """
    queryset = RideRequest.objects.filter(ride__isnull=True)
    if ids:
        queryset = queryset.filter(id__in=list(ids))
    if max_compensation is not None:
        queryset = queryset.filter(compensation__lte=max_compensation)
    if passenger is not None:
        queryset = queryset.filter(passenger=passenger)
    return queryset.order_by("created_at", "id")


def get_ride_with_proposals(ride_id: int) -> Tuple[Ride, List[Proposal]]:
    """Ride and its proposals, each with its request loaded."""
    ride = get_ride(ride_id)
    proposals = list(ride.proposals.select_related("request").order_by("id"))
    return ride, proposals


def _is_participant(account, proposals: List[Proposal]) -> bool:
    return any(
        p.driver_id == account.id or p.request.passenger_id == account.id
        for p in proposals
    )


def get_ride_summary(ride_id: int, account) -> Tuple[Ride, List[Proposal]]:
    """
    Ride aggregate for one of its participants.

    Raises:
        NotFoundError: unknown ride
        ForbiddenError: account is neither the driver nor a proposed passenger
    """
    ride, proposals = get_ride_with_proposals(ride_id)
    if not _is_participant(account, proposals):
        raise ForbiddenError("You do not have permission to view this ride summary")
    return ride, proposals


def get_ride_history(account, limit: int = 5, offset: int = 0) -> List[Tuple[Ride, List[RideRequest]]]:
    """
    Most recent rides the account drove or was proposed on.

    Accepted requests are included for in-progress and completed rides;
    pending and rejected rides carry an empty list.
    """
    rides = (
        Ride.objects.filter(
            Q(proposals__driver=account) | Q(proposals__request__passenger=account)
        )
        .distinct()
        .order_by("-created_at", "-id")[offset:offset + limit]
    )

    history = []
    for ride in rides:
        requests: List[RideRequest] = []
        if ride.status in (Ride.STATUS_IN_PROGRESS, Ride.STATUS_COMPLETED):
            requests = list(
                RideRequest.objects.filter(
                    proposals__ride=ride,
                    proposals__status=Proposal.STATUS_ACCEPTED,
                ).order_by("id")
            )
        history.append((ride, requests))
    return history


# ===================== Route views =====================

def _driver_position(driver_id: int) -> Coordinates:
    position = get_driver_position(driver_id)
    if position is None:
        raise ValidationError("Driver's current location is not available")
    return position


def get_proposal_route(proposal_id: int, passenger=None, composer: Optional[RouteComposer] = None) -> Tuple[Proposal, Route]:
    """
    Route a passenger sees for a proposal.

    From the driver's current position through every non-rejected pickup of
    the ride, in the best order, to this passenger's dropoff.

    Raises:
        NotFoundError: unknown proposal
        ForbiddenError: passenger does not own the proposal's request
        ValidationError: driver has not reported a location
        ProviderError: routing failed
    """
    proposal = get_proposal(proposal_id)
    if passenger is not None and proposal.request.passenger_id != passenger.id:
        raise ForbiddenError("You are not authorized to view this proposal")

    start = _driver_position(proposal.driver_id)
    waypoints = [
        p.request.pickup
        for p in proposal.ride.proposals.select_related("request").order_by("id")
        if p.status != Proposal.STATUS_REJECTED
    ]
    route = best_order(start, waypoints, proposal.request.dropoff, composer=composer)
    return proposal, route


def get_ride_route(ride_id: int, account=None, composer: Optional[RouteComposer] = None) -> Route:
    """
    Live route of an in-progress ride.

    From the driver's current position through the remaining unvisited
    accepted pickups to the ride destination.

    Raises:
        NotFoundError: unknown ride
        ForbiddenError: account is not a participant
        StateError: ride is not in progress
        ValidationError: driver has not reported a location
        ProviderError: routing failed
    """
    ride, proposals = get_ride_with_proposals(ride_id)
    if account is not None and not _is_participant(account, proposals):
        raise ForbiddenError("You do not have permission to view this ride")
    if ride.status != Ride.STATUS_IN_PROGRESS:
        raise StateError("Ride is not in progress")

    start = _driver_position(proposals[0].driver_id)
    waypoints = [
        p.request.pickup
        for p in proposals
        if p.status == Proposal.STATUS_ACCEPTED and not p.request.visited
    ]
    return best_order(start, waypoints, ride.destination, composer=composer)
