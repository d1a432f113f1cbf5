# services/restrictions.py
import logging
from typing import List, Optional, Sequence, Tuple

from services.geo import Coordinate, distance_m
from services.hazards import HazardAlert, RestrictionKind, RestrictionRecord, VehicleProfile
from services.units import to_kilograms, to_meters

logger = logging.getLogger("truckhazard.restrictions")

# A restriction farther than this from every window vertex is on another road
MAX_OFF_ROUTE_M = 200.0
# Too close to act on
MIN_ALERT_DISTANCE_M = 50.0

SAFETY_MARGINS = {
    RestrictionKind.MAX_HEIGHT: 0.05,   # m
    RestrictionKind.MAX_WIDTH: 0.05,    # m
    RestrictionKind.MAX_LENGTH: 0.10,   # m
    RestrictionKind.MAX_WEIGHT: 100.0,  # kg
}

STRATEGIES = ("first", "nearest")


def closest_window_point(target: Coordinate, window: Sequence[Coordinate],
                         max_distance_m: float = MAX_OFF_ROUTE_M) -> Optional[Coordinate]:
    """Nearest window vertex to `target`, or None if it is more than `max_distance_m` away."""
    if not window:
        return None
    best = window[0]
    best_d = distance_m(target, best)
    for pt in window[1:]:
        d = distance_m(target, pt)
        if d < best_d:
            best, best_d = pt, d
    return best if best_d <= max_distance_m else None


def vehicle_dimension(kind: RestrictionKind, profile: VehicleProfile) -> float:
    if kind == RestrictionKind.MAX_HEIGHT:
        return profile.height_m
    if kind == RestrictionKind.MAX_WIDTH:
        return profile.width_m
    if kind == RestrictionKind.MAX_LENGTH:
        return profile.length_m
    return profile.weight_kg


def restriction_limit(record: RestrictionRecord) -> float:
    """Limit converted into the vehicle profile's units (meters or kilograms)."""
    if record.kind == RestrictionKind.MAX_WEIGHT:
        return to_kilograms(record.value, record.unit)
    return to_meters(record.value, record.unit)


def violates(record: RestrictionRecord, profile: VehicleProfile) -> bool:
    """
    True when the vehicle is at or above the limit minus the safety margin,
    i.e. alerts fire slightly before an exact-equal clearance.
    """
    try:
        limit = restriction_limit(record)
    except ValueError:
        logger.debug("Unit %s does not fit %s; skipping", record.unit, record.kind)
        return False
    return vehicle_dimension(record.kind, profile) >= limit - SAFETY_MARGINS[record.kind]


def match_restrictions(
    position: Coordinate,
    window: Sequence[Coordinate],
    restrictions: Sequence[RestrictionRecord],
    profile: VehicleProfile,
    warning_distance_m: float,
    strategy: str = "first",
) -> Optional[HazardAlert]:
    """
    Returns at most one alert for a cached restriction on the upcoming window
    that the vehicle violates or nearly violates.

    strategy="first": first qualifying record in cache order wins.
    strategy="nearest": the qualifying record closest to the vehicle wins.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown match strategy: {strategy!r}")
    if not window or not restrictions:
        return None

    hits: List[Tuple[float, RestrictionRecord]] = []
    for record in restrictions:
        on_route = closest_window_point(record.location, window)
        if on_route is None:
            continue
        d = distance_m(position, on_route)
        if not (MIN_ALERT_DISTANCE_M < d <= warning_distance_m):
            continue
        if not violates(record, profile):
            continue
        if strategy == "first":
            return _alert(record, d)
        hits.append((d, record))

    if not hits:
        return None
    d, record = min(hits, key=lambda h: h[0])
    return _alert(record, d)


def _alert(record: RestrictionRecord, d: float) -> HazardAlert:
    logger.info("Restriction %s at %.0fm - %s", record.kind.value, d, record.road_name or "unnamed road")
    return HazardAlert(hazard=record.to_hazard(), distance_m=d, road_name=record.road_name)
