"""
Geospatial routing providers.

A provider answers one question: the ordered path segments between two
points. Each segment carries its own geometry ([lon, lat] pairs, as GeoJSON
stores them), its incremental cost/time and the cumulative cost/time up to
and including it. Segments may come back in either orientation; stitching
them is the composer's job.

Available providers:
    - PgRoutingProvider: get_route_between() SQL function on a pgRouting database
    - OsrmRoutingProvider: OSRM HTTP /route service
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import requests
from django.conf import settings
from django.db import DatabaseError, connections, transaction

from common.utils.geo import calculate_distance
from services.exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteSegment:
    """One provider path segment."""
    geometry: List[Sequence[float]]  # [[lon, lat], ...]
    cost: float                      # km
    time_cost: float                 # seconds
    agg_cost: float
    agg_time_cost: float


class RoutingProvider:
    """Interface for routing backends."""

    name = "base"

    def route(self, start_lon: float, start_lat: float, end_lon: float, end_lat: float) -> List[RouteSegment]:
        raise NotImplementedError


def zero_length_segment(start_lon, start_lat, end_lon, end_lat) -> RouteSegment:
    """Segment for two endpoints that snap to the same road point."""
    return RouteSegment(
        geometry=[[start_lon, start_lat], [end_lon, end_lat]],
        cost=0.0,
        time_cost=0.0,
        agg_cost=0.0,
        agg_time_cost=0.0,
    )


def _parse_geojson_linestring(geom_text: Optional[str]) -> List[List[float]]:
    if not geom_text:
        return []
    try:
        line = json.loads(geom_text)
    except (TypeError, ValueError):
        return []
    return line.get("coordinates") or []


class PgRoutingProvider(RoutingProvider):
    """
    Routes through the get_route_between(start_lon, start_lat, end_lon, end_lat)
    database function, one row per traversed edge.
    """

    name = "pgrouting"

    ROUTE_SQL = (
        "SELECT seq, node, edge, cost, cost_s, agg_cost, agg_cost_s, geom "
        "FROM get_route_between(%s, %s, %s, %s)"
    )

    def __init__(self, using: str = None, timeout_seconds: float = None):
        self.using = using or getattr(settings, "ROUTING_DATABASE_ALIAS", "default")
        self.timeout_seconds = timeout_seconds or getattr(settings, "ROUTING_TIMEOUT_SECONDS", 10)
        self.snap_tolerance_meters = getattr(settings, "ROUTING_SNAP_TOLERANCE_METERS", 50)

    def route(self, start_lon, start_lat, end_lon, end_lat):
        connection = connections[self.using]
        with transaction.atomic(using=self.using):
            with connection.cursor() as cursor:
                if connection.vendor == "postgresql":
                    cursor.execute(
                        "SET LOCAL statement_timeout = %s",
                        [int(self.timeout_seconds * 1000)],
                    )
                cursor.execute(self.ROUTE_SQL, [start_lon, start_lat, end_lon, end_lat])
                rows = cursor.fetchall()

        segments = []
        for _seq, _node, _edge, cost, cost_s, agg_cost, agg_cost_s, geom in rows:
            geometry = _parse_geojson_linestring(geom)
            if not geometry:
                continue
            segments.append(RouteSegment(
                geometry=geometry,
                cost=float(cost),
                time_cost=float(cost_s),
                agg_cost=float(agg_cost),
                agg_time_cost=float(agg_cost_s),
            ))

        # No edges between points that snap to the same node
        if not segments and calculate_distance(start_lat, start_lon, end_lat, end_lon) <= self.snap_tolerance_meters:
            return [zero_length_segment(start_lon, start_lat, end_lon, end_lat)]
        return segments


class OsrmRoutingProvider(RoutingProvider):
    """Routes through an OSRM server; every route step becomes one segment."""

    name = "osrm"

    def __init__(self, base_url: str = None, profile: str = "driving", timeout_seconds: float = None, session=None):
        self.base_url = (base_url or getattr(settings, "OSRM_BASE_URL", "http://localhost:5000")).rstrip("/")
        self.profile = profile
        self.timeout_seconds = timeout_seconds or getattr(settings, "ROUTING_TIMEOUT_SECONDS", 10)
        self.session = session or requests.Session()

    def route(self, start_lon, start_lat, end_lon, end_lat):
        coords = f"{start_lon},{start_lat};{end_lon},{end_lat}"
        url = f"{self.base_url}/route/v1/{self.profile}/{coords}"
        params = {"overview": "false", "steps": "true", "geometries": "geojson"}

        response = self.session.get(url, params=params, timeout=self.timeout_seconds)
        response.raise_for_status()
        data = response.json()
        if data.get("code") != "Ok" or not data.get("routes"):
            raise ProviderError(f"OSRM returned {data.get('code')}: {data.get('message', '')}")

        segments = []
        agg_cost = 0.0
        agg_time = 0.0
        for leg in data["routes"][0].get("legs", []):
            for step in leg.get("steps", []):
                geometry = step.get("geometry", {}).get("coordinates") or []
                # Arrival steps are a single repeated point
                if len({tuple(point) for point in geometry}) < 2:
                    continue
                cost = float(step.get("distance", 0.0)) / 1000.0
                time_cost = float(step.get("duration", 0.0))
                agg_cost += cost
                agg_time += time_cost
                segments.append(RouteSegment(
                    geometry=geometry,
                    cost=cost,
                    time_cost=time_cost,
                    agg_cost=agg_cost,
                    agg_time_cost=agg_time,
                ))

        if not segments and float(data["routes"][0].get("distance", 0.0)) == 0.0:
            return [zero_length_segment(start_lon, start_lat, end_lon, end_lat)]
        return segments


RETRYABLE_ERRORS = (ProviderError, requests.RequestException, DatabaseError)


def fetch_segments(
    provider: RoutingProvider,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
    max_retries: int = None,
    backoff_seconds: float = None,
) -> List[RouteSegment]:
    """
    Ask the provider for segments, retrying failures with exponential backoff.

    Raises:
        ProviderError: every attempt failed or the provider found no path
    """
    if max_retries is None:
        max_retries = getattr(settings, "ROUTING_MAX_RETRIES", 3)
    if backoff_seconds is None:
        backoff_seconds = getattr(settings, "ROUTING_RETRY_BACKOFF_SECONDS", 0.25)

    attempts = max(1, max_retries)
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            segments = provider.route(start_lon, start_lat, end_lon, end_lat)
            if not segments:
                raise ProviderError("Routing provider returned no path")
            return segments
        except RETRYABLE_ERRORS as e:
            last_error = e
            logger.warning(
                "Routing provider %s failed (attempt %s/%s): %s",
                provider.name, attempt, attempts, e,
            )
            if attempt < attempts:
                time.sleep(backoff_seconds * (2 ** (attempt - 1)))

    raise ProviderError(f"Routing failed after {attempts} attempts: {last_error}")


def build_provider(name: str = None) -> RoutingProvider:
    """Instantiate the provider configured by ROUTING_PROVIDER."""
    name = name or getattr(settings, "ROUTING_PROVIDER", "pgrouting")
    if name == "pgrouting":
        return PgRoutingProvider()
    if name == "osrm":
        return OsrmRoutingProvider()
    raise ValueError(f"Unknown routing provider: {name}")
