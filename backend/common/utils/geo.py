"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
"""

from math import radians, cos, sin, atan2, sqrt
from typing import NamedTuple, Tuple

from django.conf import settings

EARTH_RADIUS_METERS = 6371000


class Coordinates(NamedTuple):
    """WGS84 position in degrees."""
    lat: float
    lon: float


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return c * EARTH_RADIUS_METERS


def validate_coordinates(lat: float, lon: float) -> bool:
    """True when lat/lon fall inside the WGS84 ranges."""
    return -90.0 <= float(lat) <= 90.0 and -180.0 <= float(lon) <= 180.0


def estimate_compensation(
    start_lat: float,
    start_lon: float,
    end_lat: float,
    end_lon: float,
) -> Tuple[float, float]:
    """
    Suggest a compensation amount for a trip.

    Straight-line distance priced at a base fare plus a per-kilometre rate.

    Returns:
        (distance_km, estimated_compensation), both rounded to 2 decimals
    """
    base_fare = float(getattr(settings, "COMPENSATION_BASE_FARE", 2.0))
    price_per_km = float(getattr(settings, "COMPENSATION_PRICE_PER_KM", 0.25))

    distance_km = calculate_distance(start_lat, start_lon, end_lat, end_lon) / 1000.0
    estimate = base_fare + distance_km * price_per_km
    return round(distance_km, 2), round(estimate, 2)
