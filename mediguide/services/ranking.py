"""
Great-circle distance ranking of facilities around an origin.
"""

from math import atan2, cos, radians, sin, sqrt

from mediguide.models.domain import Coordinates, Facility, RankedFacility

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 15.0


def haversine_km(origin: Coordinates, target: Coordinates) -> float:
    d_lat = radians(target.lat - origin.lat)
    d_lon = radians(target.lon - origin.lon)
    a = (
        sin(d_lat / 2) ** 2
        + cos(radians(origin.lat)) * cos(radians(target.lat)) * sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(a), sqrt(1 - a))


def rank_by_distance(
    origin: Coordinates,
    facilities: list[Facility],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> list[RankedFacility]:
    """
    Keeps facilities within `radius_km` of `origin`, nearest first.

    The sort is stable, so facilities at the same distance keep their input
    order. An empty list is returned when nothing is in range.
    """
    ranked = [
        RankedFacility(facility=facility, distance_km=haversine_km(origin, facility.coordinates))
        for facility in facilities
    ]
    in_range = [r for r in ranked if r.distance_km <= radius_km]
    return sorted(in_range, key=lambda r: r.distance_km)
