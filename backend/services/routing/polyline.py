"""
Encoded polyline codec.

Implements the signed zig-zag, 5-bit chunked, ASCII-63 offset scheme used by
common mapping SDKs, at 5 decimal places of precision. Latitude is encoded
before longitude for every point.
"""

import math
from typing import Iterable, List, Sequence

from common.utils.geo import Coordinates
from services.exceptions import ValidationError

PRECISION = 1e5


def _scale(value: float) -> int:
    # Half away from zero
    return int(math.copysign(math.floor(abs(value) * PRECISION + 0.5), value))


def _encode_value(value: int) -> str:
    value = (~value << 1) | 1 if value < 0 else value << 1

    chunks = []
    while value >= 0x20:
        chunks.append(chr(((value & 0x1f) | 0x20) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode(coordinates: Iterable[Sequence[float]]) -> str:
    """
    Encode (lat, lon) points into a polyline string.
    
    Args:
        coordinates: Ordered points, each a (lat, lon) pair in degrees
    
    Returns:
        Encoded polyline ("" for no points)
    """
    encoded = []
    prev_lat = 0
    prev_lon = 0

    for lat, lon in coordinates:
        scaled_lat = _scale(lat)
        scaled_lon = _scale(lon)

        encoded.append(_encode_value(scaled_lat - prev_lat))
        encoded.append(_encode_value(scaled_lon - prev_lon))

        prev_lat = scaled_lat
        prev_lon = scaled_lon

    return "".join(encoded)


def _decode_value(polyline: str, index: int):
    result = 0
    shift = 0
    while True:
        if index >= len(polyline):
            raise ValidationError("Malformed polyline: truncated value")
        byte = ord(polyline[index]) - 63
        if byte < 0 or byte > 0x3f:
            raise ValidationError(f"Malformed polyline: invalid character at {index}")
        index += 1
        result |= (byte & 0x1f) << shift
        shift += 5
        if byte < 0x20:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode(polyline: str) -> List[Coordinates]:
    """Decode a polyline string back into (lat, lon) points."""
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        delta_lat, index = _decode_value(polyline, index)
        if index >= len(polyline):
            raise ValidationError("Malformed polyline: latitude without longitude")
        delta_lon, index = _decode_value(polyline, index)

        lat += delta_lat
        lon += delta_lon
        coordinates.append(Coordinates(lat / PRECISION, lon / PRECISION))

    return coordinates


def combine(polylines: Sequence[str]) -> str:
    """
    Join leg polylines into one path.

    Each leg after the first starts where the previous leg ended, so its
    first point is dropped before concatenation.
    """
    if not polylines:
        return ""
    if len(polylines) == 1:
        return polylines[0]

    combined: List[Coordinates] = []
    for i, polyline in enumerate(polylines):
        points = decode(polyline)
        if i > 0:
            points = points[1:]
        combined.extend(points)

    return encode(combined)
