"""Geospatial utilities: distance, polygon area and perimeter."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence


EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters
# Length of one degree of latitude (and of longitude at the equator), in meters.
METERS_PER_DEGREE = 111_320.0
SQUARE_METERS_PER_HECTARE = 10_000.0


class LatLon(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


class AreaMethod(str, Enum):
    """How polygon area is computed.

    REFERENCE_LATITUDE treats lat/lng as planar and scales longitude by the
    cosine of the first vertex's latitude. It is what saved parcels have always
    used; error grows for large or high-latitude polygons.
    GEODESIC computes the area on the WGS84 ellipsoid (needs pyproj).
    """

    REFERENCE_LATITUDE = "reference-latitude"
    GEODESIC = "geodesic"


@dataclass(frozen=True, slots=True)
class Measurement:
    """Derived metrics of a point sequence."""

    points: int
    area_ha: float
    perimeter_m: float

    @property
    def perimeter_km(self) -> float:
        return self.perimeter_m / 1000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def polygon_area_m2(points: Sequence[LatLon]) -> float:
    """Shoelace area of a lat/lon ring, in square meters.

    The ring is closed implicitly (the vertex after the last is the first).
    Degrees are converted to meters at the latitude of the first vertex only.

    Returns:
        Area in m², or 0.0 for fewer than 3 points.
    """

    n = len(points)
    if n < 3:
        return 0.0

    # offsets from the first vertex keep the cross products small
    lat0 = points[0].latitude
    lon0 = points[0].longitude
    s = 0.0
    for i in range(n):
        j = (i + 1) % n
        s += (points[i].latitude - lat0) * (points[j].longitude - lon0)
        s -= (points[j].latitude - lat0) * (points[i].longitude - lon0)

    raw = abs(s) / 2.0
    return raw * METERS_PER_DEGREE * METERS_PER_DEGREE * math.cos(math.radians(lat0))


def geodesic_area_m2(points: Sequence[LatLon]) -> float:
    """Polygon area on the WGS84 ellipsoid, in square meters."""

    if len(points) < 3:
        return 0.0

    from pyproj import Geod

    geod = Geod(ellps="WGS84")
    lons = [p.longitude for p in points]
    lats = [p.latitude for p in points]
    area, _ = geod.polygon_area_perimeter(lons, lats)
    return abs(area)


def polygon_area_ha(
    points: Sequence[LatLon],
    method: AreaMethod = AreaMethod.REFERENCE_LATITUDE,
) -> float:
    """Polygon area in hectares."""

    if method is AreaMethod.GEODESIC:
        area_m2 = geodesic_area_m2(points)
    else:
        area_m2 = polygon_area_m2(points)
    return area_m2 / SQUARE_METERS_PER_HECTARE


def polygon_perimeter_m(points: Sequence[LatLon]) -> float:
    """Sum of edge lengths including the closing edge, in meters.

    Two points give the there-and-back distance; fewer give 0.0.
    """

    n = len(points)
    if n < 2:
        return 0.0

    total = 0.0
    for i in range(n):
        a = points[i]
        b = points[(i + 1) % n]
        total += haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
    return total


def measure(
    points: Sequence[LatLon],
    method: AreaMethod = AreaMethod.REFERENCE_LATITUDE,
) -> Measurement:
    return Measurement(
        points=len(points),
        area_ha=polygon_area_ha(points, method),
        perimeter_m=polygon_perimeter_m(points),
    )


def format_area(area_m2: float) -> str:
    """Hectares from one hectare up, whole square meters below."""

    if area_m2 >= SQUARE_METERS_PER_HECTARE:
        return f"{area_m2 / SQUARE_METERS_PER_HECTARE:.2f} ha"
    return f"{area_m2:.0f} m²"


def format_distance(distance_m: float) -> str:
    if distance_m >= 1000.0:
        return f"{distance_m / 1000.0:.2f} km"
    return f"{distance_m:.0f} m"
