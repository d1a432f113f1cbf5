# services/geometry_hazards.py
import logging
from typing import Optional, Sequence

from services.geo import Coordinate, bearing_deg, bearing_delta, distance_m
from services.hazards import HazardAlert, SharpTurn

logger = logging.getLogger("truckhazard.geometry")

SHARP_TURN_DEG = 90.0
MAX_SCAN_VERTICES = 10
MIN_TURN_DISTANCE_M = 50.0
MAX_TURN_DISTANCE_M = 1000.0


def turn_angle(prev: Coordinate, at: Coordinate, nxt: Coordinate) -> float:
    """Heading change at `at`, in degrees within [0, 180]."""
    return bearing_delta(bearing_deg(prev, at), bearing_deg(at, nxt))


def detect_sharp_turn(position: Coordinate, window: Sequence[Coordinate]) -> Optional[HazardAlert]:
    """First turn sharper than 90 degrees among the next few window vertices, 50-1000 m ahead."""
    if len(window) < 3:
        return None
    for i in range(1, min(len(window) - 1, MAX_SCAN_VERTICES)):
        angle = turn_angle(window[i - 1], window[i], window[i + 1])
        if angle <= SHARP_TURN_DEG:
            continue
        d = distance_m(position, window[i])
        if MIN_TURN_DISTANCE_M < d <= MAX_TURN_DISTANCE_M:
            logger.info("Sharp turn (%.0f deg) at %.0fm ahead", angle, d)
            return HazardAlert(hazard=SharpTurn(), distance_m=d)
    return None
