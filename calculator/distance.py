"""
Great-circle distance calculations (haversine formula).

    a = sin²(Δφ/2) + cos φ1 · cos φ2 · sin²(Δλ/2)
    c = 2 · atan2(√a, √(1−a))
    d = R · c

φ is latitude, λ is longitude (radians), R is the Earth's mean radius.

Pure functions, no I/O. Safe to call from any number of worker threads.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Protocol

EARTH_RADIUS_KM = 6371.0


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class DistanceMetrics:
    total_distance_km: float = 0.0
    max_distance_km: float = 0.0
    min_distance_km: float = 0.0
    total_locations: int = 0
    avg_distance_km: float = 0.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in km between two points given in decimal degrees."""
    lat1_rad, lon1_rad = math.radians(lat1), math.radians(lon1)
    lat2_rad, lon2_rad = math.radians(lat2), math.radians(lon2)

    delta_lat = lat2_rad - lat1_rad
    delta_lon = lon2_rad - lon1_rad

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_from_home(home_lat: float, home_lon: float, lat: float, lon: float) -> float:
    return haversine(home_lat, home_lon, lat, lon)


def calculate_metrics(
    home_lat: float,
    home_lon: float,
    locations: Iterable[HasCoordinates],
) -> DistanceMetrics:
    """
    Total / max / min / average distance from home over a set of points.

    "Total" is the sum of each point's distance from home, not the length
    of the travelled path. An empty input gives all-zero metrics.
    """
    distances = [
        distance_from_home(home_lat, home_lon, loc.latitude, loc.longitude)
        for loc in locations
    ]
    if not distances:
        return DistanceMetrics()

    total = sum(distances)
    return DistanceMetrics(
        total_distance_km=total,
        max_distance_km=max(distances),
        min_distance_km=min(distances),
        total_locations=len(distances),
        avg_distance_km=total / len(distances),
    )
