"""
Route composition engine.

This package handles:
    - Encoding/decoding/combining polylines
    - Fetching provider segments and stitching them into one path
    - Multi-stop routes and optimal pickup ordering
"""

from . import polyline
from .composer import Route, RouteComposer, get_route_composer, stitch_segments
from .optimizer import best_order
from .providers import (
    RouteSegment,
    RoutingProvider,
    PgRoutingProvider,
    OsrmRoutingProvider,
    build_provider,
)

__all__ = [
    "polyline",
    "Route",
    "RouteComposer",
    "get_route_composer",
    "stitch_segments",
    "best_order",
    "RouteSegment",
    "RoutingProvider",
    "PgRoutingProvider",
    "OsrmRoutingProvider",
    "build_provider",
]
