import pytest

from services.geo import offset_point
from services.geometry_hazards import detect_sharp_turn, turn_angle
from services.hazards import HazardKind, SharpTurn

P0 = (40.0, -75.0)


def _leg(start, distance, bearing):
    return offset_point(start[0], start[1], distance, bearing)


def test_colinear_points_are_not_a_turn():
    p1 = _leg(P0, 300, 0)
    p2 = _leg(p1, 300, 0)
    assert turn_angle(P0, p1, p2) == pytest.approx(0.0, abs=0.01)
    assert detect_sharp_turn(P0, [P0, p1, p2]) is None


def test_hundred_degree_turn_ahead():
    p1 = _leg(P0, 300, 0)
    p2 = _leg(p1, 300, 100)
    hit = detect_sharp_turn(P0, [P0, p1, p2])
    assert hit is not None
    assert hit.kind == HazardKind.SHARP_TURN
    assert hit.hazard == SharpTurn()
    assert hit.distance_m == pytest.approx(300.0, abs=0.5)
    assert hit.road_name is None


def test_right_angle_is_not_sharp():
    p1 = _leg(P0, 300, 0)
    p2 = _leg(p1, 300, 80)
    assert detect_sharp_turn(P0, [P0, p1, p2]) is None


def test_turn_too_close_or_too_far():
    close = _leg(P0, 30, 0)
    assert detect_sharp_turn(P0, [P0, close, _leg(close, 300, 120)]) is None
    far = _leg(P0, 1200, 0)
    assert detect_sharp_turn(P0, [P0, far, _leg(far, 300, 120)]) is None


def test_only_first_vertices_are_scanned():
    pts = [P0]
    for _ in range(11):
        pts.append(_leg(pts[-1], 50, 0))
    # Hairpin at index 11, ~550 m ahead but past the scan limit
    pts.append(_leg(pts[-1], 100, 170))
    assert detect_sharp_turn(P0, pts) is None


def test_first_qualifying_turn_wins():
    p1 = _leg(P0, 200, 0)
    p2 = _leg(p1, 200, 120)
    p3 = _leg(p2, 200, 0)
    hit = detect_sharp_turn(P0, [P0, p1, p2, p3])
    assert hit.distance_m == pytest.approx(200.0, abs=0.5)


def test_short_windows():
    assert detect_sharp_turn(P0, []) is None
    assert detect_sharp_turn(P0, [P0, _leg(P0, 100, 0)]) is None
