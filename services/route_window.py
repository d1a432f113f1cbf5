# services/route_window.py
from typing import List, Sequence

from services.geo import Coordinate, distance_m

DEFAULT_LOOKAHEAD_M = 2000.0


def closest_index(position: Coordinate, route: Sequence[Coordinate]) -> int:
    """Index of the route vertex nearest to `position`; ties go to the earliest. -1 for an empty route."""
    best = -1
    best_d = float("inf")
    for i, pt in enumerate(route):
        d = distance_m(position, pt)
        if d < best_d:
            best, best_d = i, d
    return best


def route_window(position: Coordinate, route: Sequence[Coordinate],
                 lookahead_m: float = DEFAULT_LOOKAHEAD_M) -> List[Coordinate]:
    """
    Forward slice of the route starting at the vertex closest to `position`.
    Vertices are added until the accumulated arc length reaches `lookahead_m`
    or the route ends.
    """
    start = closest_index(position, route)
    if start < 0:
        return []
    window: List[Coordinate] = []
    acc = 0.0
    for i in range(start, len(route)):
        window.append(route[i])
        if i < len(route) - 1:
            acc += distance_m(route[i], route[i + 1])
            if acc >= lookahead_m:
                break
    return window
