# services/geo.py
import math
from typing import List, Sequence, Tuple

Coordinate = Tuple[float, float]  # (lat, lon)

EARTH_RADIUS_M = 6371000.0

# ----------------- geo helpers -----------------
def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1); phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(dlmb/2)**2
    c = 2*math.atan2(math.sqrt(a), math.sqrt(1-a))
    return EARTH_RADIUS_M*c

def distance_m(a: Coordinate, b: Coordinate) -> float:
    return haversine_m(a[0], a[1], b[0], b[1])

def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Forward azimuth from a to b in degrees (0-360)."""
    phi1 = math.radians(a[0])
    phi2 = math.radians(b[0])
    dlmb = math.radians(b[1] - a[1])
    y = math.sin(dlmb) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlmb)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0

def bearing_delta(b1: float, b2: float) -> float:
    """Absolute difference between two bearings, folded into [0, 180]."""
    d = abs(b2 - b1) % 360.0
    return min(d, 360.0 - d)

def offset_point(lat: float, lng: float, distance_m: float, bearing_deg: float) -> Coordinate:
    R = EARTH_RADIUS_M
    br = math.radians(bearing_deg)
    lat1 = math.radians(lat)
    lon1 = math.radians(lng)
    lat2 = math.asin(math.sin(lat1)*math.cos(distance_m/R) + math.cos(lat1)*math.sin(distance_m/R)*math.cos(br))
    lon2 = lon1 + math.atan2(math.sin(br)*math.sin(distance_m/R)*math.cos(lat1),
                             math.cos(distance_m/R)-math.sin(lat1)*math.sin(lat2))
    return (math.degrees(lat2), math.degrees(lon2))

def valid_coordinate(lat: float, lon: float) -> bool:
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0

def sample_route(route: Sequence[Coordinate], interval_m: float) -> List[Coordinate]:
    """
    Keep one vertex per `interval_m` of arc length. The first and last
    vertices are always kept.
    """
    if len(route) <= 1:
        return list(route)
    sampled: List[Coordinate] = [route[0]]
    acc = 0.0
    for i in range(1, len(route)):
        acc += distance_m(route[i - 1], route[i])
        if acc >= interval_m:
            sampled.append(route[i])
            acc = 0.0
    if tuple(sampled[-1]) != tuple(route[-1]):
        sampled.append(route[-1])
    return sampled
