from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

from ..core.constants import EARTH_RADIUS_METERS
from .model import Coordinate


@dataclass(frozen=True)
class Within:
    distance_meters: float


@dataclass(frozen=True)
class Outside:
    distance_meters: float


GeofenceCheck = Union[Within, Outside]


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters between two coordinates."""
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)
    h = min(1.0, math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2)
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def validate(user: Coordinate, site: Coordinate, allowed_radius_meters: float) -> GeofenceCheck:
    distance = haversine_distance(user, site)
    if distance <= allowed_radius_meters:
        return Within(distance)
    return Outside(distance)
