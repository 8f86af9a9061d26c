"""
Route composition.

Turns raw provider segments into one continuous, correctly oriented path and
builds multi-leg routes from an ordered list of stops.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from common.utils.geo import Coordinates
from . import polyline as polyline_codec
from .providers import RoutingProvider, RouteSegment, build_provider, fetch_segments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """A computed route. Distance is in km, duration in seconds."""
    start: Coordinates
    end: Coordinates
    distance: float
    duration: int
    polyline: str
    waypoints: Tuple[Coordinates, ...] = field(default=())

    def as_dict(self):
        return {
            "start_lat": self.start.lat,
            "start_lng": self.start.lon,
            "end_lat": self.end.lat,
            "end_lng": self.end.lon,
            "distance": self.distance,
            "duration": self.duration,
            "polyline": self.polyline,
        }


def stitch_segments(segments: Sequence[RouteSegment]) -> List[List[float]]:
    """
    Join segment geometries ([lon, lat] points) into one continuous list.

    A segment whose first point matches the current tail is appended without
    that point; one whose last point matches is appended reversed without it.
    A segment touching the tail at neither end is dropped.
    """
    coordinates: List[List[float]] = []

    for segment in segments:
        points = [list(point) for point in segment.geometry]
        if not points:
            continue

        if not coordinates:
            coordinates.extend(points)
            continue

        tail = coordinates[-1]
        if points[0] == tail:
            coordinates.extend(points[1:])
        elif points[-1] == tail:
            coordinates.extend(reversed(points[:-1]))
        else:
            logger.warning("Dropping segment %s..%s, it does not touch path tail %s", points[0], points[-1], tail)

    return coordinates


class RouteComposer:
    """
    Builds routes on top of a routing provider.

    Args:
        provider: RoutingProvider instance
        cache_legs: remember point-to-point results for the composer's lifetime
    """

    def __init__(self, provider: RoutingProvider, cache_legs: bool = False):
        self.provider = provider
        self._leg_cache: Optional[Dict[Tuple[Coordinates, Coordinates], Route]] = {} if cache_legs else None

    def with_leg_cache(self) -> "RouteComposer":
        """A composer over the same provider that reuses leg results."""
        return RouteComposer(self.provider, cache_legs=True)

    def direct_route(self, start: Coordinates, dest: Coordinates) -> Route:
        """
        Route between two points.

        Raises:
            ProviderError: provider failed after retries or found no path
        """
        start = Coordinates(float(start[0]), float(start[1]))
        dest = Coordinates(float(dest[0]), float(dest[1]))

        if start == dest:
            return Route(
                start=start,
                end=dest,
                distance=0.0,
                duration=0,
                polyline=polyline_codec.encode([start, dest]),
            )

        key = (start, dest)
        if self._leg_cache is not None and key in self._leg_cache:
            return self._leg_cache[key]

        segments = fetch_segments(self.provider, start.lon, start.lat, dest.lon, dest.lat)
        stitched = stitch_segments(segments)

        # Totals come from the provider's cumulative cost on the last segment
        last = segments[-1]
        end = Coordinates(stitched[-1][1], stitched[-1][0]) if stitched else dest

        route = Route(
            start=start,
            end=end,
            distance=last.agg_cost,
            duration=int(last.agg_time_cost),
            polyline=polyline_codec.encode((lat, lon) for lon, lat in stitched),
        )

        if self._leg_cache is not None:
            self._leg_cache[key] = route
        return route

    def multistop_route(self, start: Coordinates, waypoints: Sequence[Coordinates], dest: Coordinates) -> Route:
        """Route visiting the waypoints in the given order."""
        if not waypoints:
            return self.direct_route(start, dest)

        stops = [start, *waypoints, dest]

        polylines = []
        total_distance = 0.0
        total_duration = 0
        for leg_start, leg_end in zip(stops, stops[1:]):
            leg = self.direct_route(leg_start, leg_end)
            polylines.append(leg.polyline)
            total_distance += leg.distance
            total_duration += leg.duration

        return Route(
            start=Coordinates(float(start[0]), float(start[1])),
            end=Coordinates(float(dest[0]), float(dest[1])),
            distance=total_distance,
            duration=total_duration,
            polyline=polyline_codec.combine(polylines),
            waypoints=tuple(Coordinates(float(w[0]), float(w[1])) for w in waypoints),
        )


# ---------------------- Singleton Instance ----------------------

_route_composer: Optional[RouteComposer] = None


def get_route_composer() -> RouteComposer:
    """Get singleton RouteComposer for the configured provider."""
    global _route_composer
    if _route_composer is None:
        _route_composer = RouteComposer(build_provider())
    return _route_composer
