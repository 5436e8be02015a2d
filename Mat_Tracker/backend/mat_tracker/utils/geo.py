"""Geografske pomožne funkcije / Geographic utilities.

Dve ločeni razdalji / Two separate distances:
- degree_distance: ravna razdalja v stopinjah, samo za združevanje na zemljevidu
- haversine: razdalja po krogli v km
"""

import math
from dataclasses import dataclass, field
from typing import Any

from mat_tracker.config import settings


@dataclass
class GeoPoint:
    key: str
    lat: float
    lng: float
    payload: Any = None


@dataclass
class LocationGroup:
    lat: float
    lng: float
    points: list[GeoPoint] = field(default_factory=list)


@dataclass
class NearestResult:
    point: GeoPoint | None
    distance_km: float
    is_within_range: bool


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Razdalja po Haversine v km / Haversine distance in km."""
    earth_radius_km = 6371.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return earth_radius_km * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def degree_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Evklidska razdalja v stopinjah / Euclidean distance in raw degrees."""
    return math.sqrt((lat1 - lat2) ** 2 + (lng1 - lng2) ** 2)


def group_by_proximity(points: list[GeoPoint], threshold: float | None = None) -> list[LocationGroup]:
    """Požrešno združevanje v enem prehodu / Single-pass greedy grouping.

    Razdalja se meri od prve točke skupine; središče je povprečje članov.
    Distance is measured from the group's seed point; the centre is the members' mean.
    Odvisno od vrstnega reda, samo za prikaz / Order-dependent, for display only.
    """
    threshold = settings.CLUSTER_THRESHOLD_DEG if threshold is None else threshold
    groups: list[LocationGroup] = []
    used: set[int] = set()

    for i, seed in enumerate(points):
        if i in used:
            continue
        used.add(i)
        members = [seed]
        for j, other in enumerate(points):
            if j in used:
                continue
            if degree_distance(seed.lat, seed.lng, other.lat, other.lng) < threshold:
                members.append(other)
                used.add(j)

        lat = sum(p.lat for p in members) / len(members)
        lng = sum(p.lng for p in members) / len(members)
        groups.append(LocationGroup(lat=lat, lng=lng, points=members))

    return groups


def find_nearest_point(
    lat: float, lng: float, points: list[GeoPoint], max_km: float | None = None
) -> NearestResult:
    """Najbližja točka po Haversine / Nearest point by great-circle distance."""
    max_km = settings.NEAREST_RANGE_KM if max_km is None else max_km
    if not points:
        return NearestResult(point=None, distance_km=math.inf, is_within_range=False)

    nearest = min(points, key=lambda p: haversine(lat, lng, p.lat, p.lng))
    distance = haversine(lat, lng, nearest.lat, nearest.lng)
    return NearestResult(
        point=nearest,
        distance_km=round(distance, 1),
        is_within_range=distance <= max_km,
    )
