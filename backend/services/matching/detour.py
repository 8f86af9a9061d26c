"""
Detour evaluation for browsing drivers.

For a driver heading from their current position to their own destination,
every open request is priced as the extra distance/time of picking it up on
the way. Candidates above the driver's thresholds are dropped.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from common.utils.geo import Coordinates
from rides.models import RideRequest
from services.exceptions import ProviderError
from services.ride_management.ride_queries import get_active_ride_requests
from services.routing import Route, RouteComposer, get_route_composer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetourResult:
    """Extra cost of one pickup on top of the driver's own trip."""
    request: RideRequest
    distance_km: float
    duration_s: int
    polyline: str

    @property
    def distance_meters(self) -> float:
        return self.distance_km * 1000.0


@dataclass
class CandidateListing:
    """Driver's baseline route plus the requests worth detouring for."""
    polyline: str
    candidates: List[DetourResult] = field(default_factory=list)
    failures: List[int] = field(default_factory=list)


def evaluate_detour(
    driver_position: Coordinates,
    driver_destination: Coordinates,
    request: RideRequest,
    composer: Optional[RouteComposer] = None,
    baseline: Optional[Route] = None,
) -> DetourResult:
    """
    Added distance and time of routing through the request's pickup.

    Args:
        baseline: precomputed direct route, reused when scanning many requests

    Raises:
        ProviderError: either route could not be computed
    """
    composer = composer or get_route_composer()
    if baseline is None:
        baseline = composer.direct_route(driver_position, driver_destination)

    with_stop = composer.multistop_route(driver_position, [request.pickup], driver_destination)

    return DetourResult(
        request=request,
        distance_km=with_stop.distance - baseline.distance,
        duration_s=with_stop.duration - baseline.duration,
        polyline=with_stop.polyline,
    )


def find_candidate_requests(
    driver_position: Coordinates,
    driver_destination: Coordinates,
    requests: Optional[Iterable[RideRequest]] = None,
    max_compensation: Optional[Decimal] = None,
    max_detour_meters: Optional[float] = None,
    max_detour_seconds: Optional[int] = None,
    skip_failures: bool = True,
    composer: Optional[RouteComposer] = None,
) -> CandidateListing:
    """
    Rank open requests for a driver by detour cost.

    The baseline route is computed once. A request whose detour exceeds
    either threshold is excluded. When skip_failures is set, a provider
    failure for one request excludes only that request and its id is
    reported in `failures`; otherwise the whole listing fails.

    Raises:
        ProviderError: baseline route failed, or a candidate failed with
            skip_failures off
    """
    composer = (composer or get_route_composer()).with_leg_cache()
    if requests is None:
        requests = get_active_ride_requests(max_compensation=max_compensation)

    baseline = composer.direct_route(driver_position, driver_destination)
    listing = CandidateListing(polyline=baseline.polyline)

    for request in requests:
        try:
            detour = evaluate_detour(
                driver_position, driver_destination, request,
                composer=composer, baseline=baseline,
            )
        except ProviderError as e:
            if not skip_failures:
                raise
            logger.warning("Skipping request %s, detour could not be computed: %s", request.id, e)
            listing.failures.append(request.id)
            continue

        if max_detour_meters is not None and detour.distance_meters > float(max_detour_meters):
            continue
        if max_detour_seconds is not None and detour.duration_s > int(max_detour_seconds):
            continue

        listing.candidates.append(detour)

    logger.info(
        "Detour scan: %d candidates, %d failures",
        len(listing.candidates), len(listing.failures),
    )
    return listing
