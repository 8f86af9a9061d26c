"""
Driver-side matching services.

This module handles:
    - Detour evaluation of open requests against a driver's own trip
    - Proximity checks between drivers and their accepted pickups
"""

from .detour import CandidateListing, DetourResult, evaluate_detour, find_candidate_requests
from .proximity import (
    check_all_in_progress_rides,
    check_ride_proximity,
    find_nearby_pickups,
    nearest_pickup,
    unvisited_pickups,
)

__all__ = [
    "CandidateListing",
    "DetourResult",
    "evaluate_detour",
    "find_candidate_requests",
    "check_all_in_progress_rides",
    "check_ride_proximity",
    "find_nearby_pickups",
    "nearest_pickup",
    "unvisited_pickups",
]
