import pytest

from services.geo import bearing_deg, bearing_delta, distance_m, offset_point, sample_route
from services.route_window import closest_index, route_window


def test_window_stops_once_lookahead_reached(straight_route):
    route = straight_route(10, 100.0)
    window = route_window(route[0], route, lookahead_m=450)
    # 4 segments = 400 m < 450, the 5th vertex brings it to 500 m
    assert window == route[:5]


def test_window_starts_at_closest_vertex(straight_route):
    route = straight_route(10, 100.0)
    near_third = offset_point(route[3][0], route[3][1], 10.0, 90.0)
    window = route_window(near_third, route, lookahead_m=250)
    assert window[0] == route[3]
    assert window == route[3:6]


def test_window_runs_to_route_end(straight_route):
    route = straight_route(5, 100.0)
    window = route_window(route[2], route, lookahead_m=5000)
    assert window == route[2:]


def test_equidistant_position_prefers_earlier_vertex():
    a = (40.0, -75.0)
    b = (40.0, -74.5)
    c = (40.0, -74.0)
    # Same latitude, midway in longitude between a and b
    mid = (40.0, -74.75)
    assert distance_m(mid, a) == pytest.approx(distance_m(mid, b))
    assert closest_index(mid, [a, b, c]) == 0
    # A repeated vertex later in the route loses to its first occurrence
    assert closest_index(b, [a, b, c, b]) == 1


def test_degenerate_routes():
    assert route_window((40.0, -75.0), [], 2000) == []
    assert closest_index((40.0, -75.0), []) == -1
    assert route_window((40.0, -75.0), [(40.001, -75.0)], 2000) == [(40.001, -75.0)]


def test_sample_route_keeps_ends(straight_route):
    route = straight_route(23, 100.0)  # 2.2 km
    sampled = sample_route(route, 450)
    assert sampled[0] == route[0]
    assert sampled[-1] == route[-1]
    assert sampled[1:-1] == [route[5], route[10], route[15], route[20]]
    assert sample_route(route[:1], 500) == route[:1]
    assert sample_route([], 500) == []


def test_bearing_helpers():
    north = offset_point(40.0, -75.0, 1000, 0.0)
    east = offset_point(40.0, -75.0, 1000, 90.0)
    assert bearing_deg((40.0, -75.0), east) == pytest.approx(90.0, abs=0.01)
    assert bearing_delta(bearing_deg((40.0, -75.0), north), 0.0) == pytest.approx(0.0, abs=0.01)
    assert bearing_delta(350.0, 10.0) == pytest.approx(20.0)
    assert bearing_delta(0.0, 180.0) == pytest.approx(180.0)
    assert bearing_delta(10.0, 300.0) == pytest.approx(70.0)
