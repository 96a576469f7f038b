# missions/utils/geofence.py
"""
Geofence validation for mission check-in.
Great-circle distance on a mean Earth radius of 6,371 km via geopy.
"""

import math
from typing import NamedTuple, Tuple, Union

from geopy.distance import great_circle

from ..exceptions import InvalidCoordinates

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_METERS = 100

Coordinates = Union[str, Tuple[float, float]]


class GeofenceResult(NamedTuple):
    in_range: bool
    distance_meters: int

    def to_dict(self):
        return {'in_range': self.in_range, 'distance_meters': self.distance_meters}


def parse_coordinates(value: Coordinates) -> Tuple[float, float]:
    """
    Parse a "lat,lng" string or a (lat, lng) pair into two finite floats.

    Raises InvalidCoordinates for anything else, including latitudes outside
    [-90, 90] and longitudes outside [-180, 180].
    """
    if isinstance(value, str):
        parts = value.split(',')
    else:
        try:
            parts = list(value)
        except TypeError:
            raise InvalidCoordinates()

    if len(parts) != 2:
        raise InvalidCoordinates()

    try:
        lat, lng = float(parts[0]), float(parts[1])
    except (TypeError, ValueError):
        raise InvalidCoordinates()

    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinates()
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise InvalidCoordinates('Coordinates out of range.')
    return lat, lng


def distance_meters(origin: Coordinates, destination: Coordinates) -> float:
    """Great-circle distance between two points, in meters."""
    return great_circle(parse_coordinates(origin), parse_coordinates(destination), radius=EARTH_RADIUS_KM).meters


def validate_geofence(user_gps: Coordinates, mission_gps: Coordinates,
                      radius_meters: float = DEFAULT_RADIUS_METERS) -> GeofenceResult:
    """
    Check whether the user is within radius_meters of the mission location.

    Args:
        user_gps: User's position, "lat,lng" or (lat, lng)
        mission_gps: Mission location, same formats
        radius_meters: Allowed distance (default 100m)

    Returns:
        GeofenceResult with the in-range decision and the rounded distance
    """
    distance = distance_meters(user_gps, mission_gps)
    return GeofenceResult(in_range=distance <= radius_meters, distance_meters=int(round(distance)))
