"""
Waypoint ordering.

Exact search over every visiting order for small pickup sets. Driver-side
waypoint counts are small (co-riders on one trip), so n! multistop routes is
affordable up to ROUTE_MAX_OPTIMIZED_WAYPOINTS. Larger sets fall back to a
nearest-neighbour order by straight-line distance.
"""

import logging
from itertools import permutations
from typing import List, Optional, Sequence

from django.conf import settings

from common.utils.geo import Coordinates, calculate_distance
from .composer import Route, RouteComposer, get_route_composer

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAYPOINTS = 8


def nearest_neighbour_order(start: Coordinates, waypoints: Sequence[Coordinates]) -> List[Coordinates]:
    """Greedy order: always drive to the closest remaining waypoint."""
    remaining = list(waypoints)
    ordered = []
    current = start
    while remaining:
        closest = min(remaining, key=lambda w: calculate_distance(current[0], current[1], w[0], w[1]))
        remaining.remove(closest)
        ordered.append(closest)
        current = closest
    return ordered


def best_order(
    start: Coordinates,
    waypoints: Sequence[Coordinates],
    dest: Coordinates,
    composer: Optional[RouteComposer] = None,
    max_waypoints: Optional[int] = None,
) -> Route:
    """
    Shortest route from start to dest visiting every waypoint.
    
    Args:
        start: Driver position
        waypoints: Pickups, any order
        dest: Final destination
        composer: RouteComposer to use (configured provider by default)
        max_waypoints: Exhaustive search limit
    
    Returns:
        Route with the lowest total distance; ties keep the first order found.
        Route.waypoints holds the chosen order.
    """
    composer = (composer or get_route_composer()).with_leg_cache()
    if max_waypoints is None:
        max_waypoints = getattr(settings, "ROUTE_MAX_OPTIMIZED_WAYPOINTS", DEFAULT_MAX_WAYPOINTS)

    if not waypoints:
        return composer.direct_route(start, dest)

    if len(waypoints) > max_waypoints:
        logger.warning(
            "%s waypoints exceed the exhaustive limit of %s, using nearest-neighbour order",
            len(waypoints), max_waypoints,
        )
        return composer.multistop_route(start, nearest_neighbour_order(start, waypoints), dest)

    best: Optional[Route] = None
    for order in permutations(waypoints):
        route = composer.multistop_route(start, list(order), dest)
        if best is None or route.distance < best.distance:
            best = route

    logger.debug("Best order over %s waypoints: %.3f km", len(waypoints), best.distance)
    return best
