"""
Driver-to-pickup proximity checks.

Runs periodically over every in-progress ride, using each driver's last
reported location, and queues one proximity notice per
(ride, driver, passenger) when the driver gets close to a pickup.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from django.conf import settings

from common.utils.geo import Coordinates, calculate_distance
from drivers.services import get_driver_position
from realtime.notifications import publish_proximity_notification
from rides.models import Proposal, Ride, RideRequest

logger = logging.getLogger(__name__)

DEFAULT_NOTIFY_RADIUS_METERS = 100


def unvisited_pickups(ride: Ride):
    """Requests of the ride with an accepted proposal that are not picked up yet.

    One proposal per (ride, request), so the join yields no duplicates.
    """
    return RideRequest.objects.filter(
        proposals__ride=ride,
        proposals__status=Proposal.STATUS_ACCEPTED,
        visited=False,
    )


def pickup_distances(driver_position: Coordinates, requests: Iterable[RideRequest]) -> List[Tuple[RideRequest, float]]:
    """(request, meters) pairs, closest first."""
    distances = [
        (request, calculate_distance(
            driver_position.lat, driver_position.lon,
            request.pickup.lat, request.pickup.lon,
        ))
        for request in requests
        if not request.visited
    ]
    distances.sort(key=lambda item: item[1])
    return distances


def nearest_pickup(driver_position: Coordinates, requests: Iterable[RideRequest]) -> Optional[Tuple[RideRequest, float]]:
    distances = pickup_distances(driver_position, requests)
    return distances[0] if distances else None


def find_nearby_pickups(
    driver_position: Coordinates,
    requests: Iterable[RideRequest],
    radius_meters: Optional[float] = None,
) -> List[Tuple[RideRequest, float]]:
    """Unvisited pickups within radius_meters of the driver."""
    if radius_meters is None:
        radius_meters = getattr(settings, "RIDE_PROXIMITY_NOTIFY_METERS", DEFAULT_NOTIFY_RADIUS_METERS)
    return [
        (request, distance)
        for request, distance in pickup_distances(driver_position, requests)
        if distance <= radius_meters
    ]


def get_ride_driver_id(ride: Ride) -> Optional[int]:
    # All proposals of a ride share one driver
    return ride.proposals.values_list("driver_id", flat=True).first()


def check_ride_proximity(ride: Ride, radius_meters: Optional[float] = None) -> int:
    """
    Queue proximity notices for one ride.

    Returns:
        Number of notifications created (already-notified passengers are skipped)
    """
    driver_id = get_ride_driver_id(ride)
    if driver_id is None:
        return 0

    position = get_driver_position(driver_id)
    if position is None:
        logger.debug("Driver %s of ride %s has no reported location", driver_id, ride.id)
        return 0

    created = 0
    for request, distance in find_nearby_pickups(position, unvisited_pickups(ride), radius_meters):
        notification_id = publish_proximity_notification(ride, driver_id, request.passenger_id, distance)
        if notification_id is not None:
            created += 1
            logger.info(
                "Driver %s is %.0fm from passenger %s pickup (ride %s)",
                driver_id, distance, request.passenger_id, ride.id,
            )
    return created


def check_all_in_progress_rides() -> int:
    """Run the proximity check over every in-progress ride."""
    created = 0
    for ride in Ride.objects.filter(status=Ride.STATUS_IN_PROGRESS):
        try:
            created += check_ride_proximity(ride)
        except Exception:
            logger.exception("Proximity check failed for ride %s", ride.id)
    return created
