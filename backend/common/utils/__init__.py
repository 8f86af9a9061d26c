"""Common utility functions."""

from .geo import Coordinates, calculate_distance, estimate_compensation, validate_coordinates
from .single_flight import SingleFlightGuard

__all__ = [
    "Coordinates",
    "calculate_distance",
    "estimate_compensation",
    "validate_coordinates",
    "SingleFlightGuard",
]
